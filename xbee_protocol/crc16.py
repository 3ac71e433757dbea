# SPDX-License-Identifier: MIT
# Copyright (c) 2026 The xbee-protocol contributors

"""
CRC-16/XMODEM (CCITT polynomial 0x1021, initial value 0).

This is the checksum the bootloader expects at the end of every
128-byte block. Computed bit by bit, most significant bit first.
"""

CRC16_POLY = 0x1021


def crc16_xmodem(data: bytes) -> int:
    """
    Compute CRC-16/XMODEM checksum.

    Args:
        data: Bytes to compute checksum for

    Returns:
        16-bit CRC value
    """
    rem = 0
    for byte in data:
        rem ^= byte << 8
        for _ in range(8):
            if rem & 0x8000:
                rem = ((rem << 1) ^ CRC16_POLY) & 0xFFFF
            else:
                rem = (rem << 1) & 0xFFFF
    return rem
