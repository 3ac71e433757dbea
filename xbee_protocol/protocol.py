# SPDX-License-Identifier: MIT
# Copyright (c) 2026 The xbee-protocol contributors

"""
XBee bootloader protocol definitions and serialization.

This module defines the AT command frames used while the module runs its
application firmware, and the XMODEM-CRC block frames understood by the
bootloader.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Iterator

from .crc16 import crc16_xmodem
from .errors import ValidationError

# AT command mode
AT_PREFIX = b"AT"
CR = b"\r"
ESCAPE_SEQUENCE = b"+++"
OK_SENTINEL = ord("O")
MAX_COMMAND_FRAME = 256

# Bootloader menu: "1. upload ebl", "2. run"
MENU_UPLOAD = b"1"
MENU_RUN = b"2"
TRANSFER_CRC = ord("C")

# XMODEM control bytes
SOH = 0x01
EOT = 0x04
ACK = 0x06

BLOCK_SIZE = 128
PAD_BYTE = 0xFF


class ATCommand:
    """AT command codes."""
    FORCE_RESET = "FR"


class TransferState(IntEnum):
    """Phases of a firmware update, in the order they are reached."""
    OPERATIONAL = 0
    COMMAND_MODE = 1
    POWER_CYCLING = 2
    BAUD_SWITCH = 3
    BOOTLOADER_PROMPT = 4
    READY = 5
    PROTOCOL_SELECTED = 6
    TRANSFERRING = 7
    TRANSFERRED = 8
    RUNNING = 9

    def __str__(self) -> str:
        return self.name


def encode_command(code: str, argument: str = "") -> bytes:
    """
    Encode an AT command frame.

    Args:
        code: Two-character command code (e.g. "FR")
        argument: Already formatted argument, may be empty

    Returns:
        "AT" + code + argument + CR

    Raises:
        ValidationError: If the code is malformed or the frame exceeds
            MAX_COMMAND_FRAME bytes
    """
    if len(code) != 2 or not code.isascii():
        raise ValidationError(f"Invalid AT command code: {code!r}")

    try:
        arg = argument.encode("ascii")
    except UnicodeEncodeError:
        raise ValidationError(f"Non-ASCII AT command argument: {argument!r}") from None

    frame = AT_PREFIX + code.encode("ascii") + arg + CR
    if len(frame) > MAX_COMMAND_FRAME:
        raise ValidationError(
            f"AT{code} frame is {len(frame)} bytes, limit is {MAX_COMMAND_FRAME}"
        )
    return frame


def padded_length(size: int) -> int:
    """Round size up to the next multiple of BLOCK_SIZE."""
    return -(-size // BLOCK_SIZE) * BLOCK_SIZE


@dataclass(frozen=True)
class Block:
    """One 128-byte XMODEM block; number is its 1-based position in the image."""
    number: int
    payload: bytes

    @property
    def sequence(self) -> int:
        """Block number on the wire, wrapping after 255 to 0."""
        return self.number % 256

    @property
    def complement(self) -> int:
        return 255 - self.sequence

    @property
    def crc(self) -> int:
        return crc16_xmodem(self.payload)

    def encode(self) -> bytes:
        """SOH, seq, 255-seq, payload, CRC (big-endian)."""
        return (
            bytes([SOH, self.sequence, self.complement])
            + self.payload
            + self.crc.to_bytes(2, "big")
        )


@dataclass(frozen=True)
class FirmwareImage:
    """Firmware bytes padded with 0xFF to a whole number of blocks."""
    data: bytes
    padded: bytes = field(init=False, repr=False)

    def __post_init__(self):
        if not self.data:
            raise ValidationError("Empty firmware image")
        data = bytes(self.data)
        fill = bytes([PAD_BYTE]) * (padded_length(len(data)) - len(data))
        object.__setattr__(self, "data", data)
        object.__setattr__(self, "padded", data + fill)

    @classmethod
    def from_file(cls, path) -> "FirmwareImage":
        """Read an entire firmware file into memory."""
        return cls(Path(path).read_bytes())

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def block_count(self) -> int:
        return len(self.padded) // BLOCK_SIZE

    def block(self, index: int) -> Block:
        if not 0 <= index < self.block_count:
            raise IndexError(f"Block {index} out of range")
        start = index * BLOCK_SIZE
        return Block(index + 1, self.padded[start:start + BLOCK_SIZE])

    def blocks(self) -> Iterator[Block]:
        for index in range(self.block_count):
            yield self.block(index)
