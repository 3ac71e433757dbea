# SPDX-License-Identifier: MIT
# Copyright (c) 2026 The xbee-protocol contributors

"""
XBee Firmware Uploader - Python client library.

This package reprograms an XBee radio module over its serial port: it
drops the module into its bootloader via AT commands and a serial break,
then sends the firmware image with XMODEM-CRC.

Example usage:
    from xbee_protocol import Transport, FirmwareImage, run_firmware_update

    image = FirmwareImage.from_file("firmware.ebl")

    with Transport.open("/dev/ttyUSB0", 9600) as transport:
        run_firmware_update(
            transport,
            image,
            progress_callback=lambda sent, total: print(f"{sent}/{total}")
        )
"""

from .bootloader import ModeTransition
from .command import CommandChannel
from .config import UpdateConfig
from .crc16 import crc16_xmodem
from .errors import (
    FlashError,
    TransportError,
    TimeoutError,
    ProtocolError,
    ValidationError,
)
from .protocol import (
    ATCommand,
    Block,
    FirmwareImage,
    TransferState,
    encode_command,
)
from .transport import LineConfig, Transport
from .updater import FirmwareUpdater, UpdateError, run_firmware_update
from .xmodem import BlockTransfer

__version__ = "0.1.0"

__all__ = [
    # CRC
    "crc16_xmodem",
    # Protocol types
    "ATCommand",
    "Block",
    "FirmwareImage",
    "TransferState",
    "encode_command",
    # Transport
    "LineConfig",
    "Transport",
    # Errors
    "FlashError",
    "TransportError",
    "TimeoutError",
    "ProtocolError",
    "ValidationError",
    "UpdateError",
    # Protocol engine
    "CommandChannel",
    "ModeTransition",
    "BlockTransfer",
    "FirmwareUpdater",
    "UpdateConfig",
    "run_firmware_update",
]
