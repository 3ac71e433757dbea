#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2026 The xbee-protocol contributors

"""
Firmware upload tool for XBee modules via their serial bootloader.

Usage:
    python xbee_upload.py firmware.ebl
    python xbee_upload.py --port /dev/ttyUSB1 --baud 9600 firmware.ebl
    python xbee_upload.py --recovery firmware.ebl

Requirements:
    pip install pyserial
"""

import argparse
import logging
import sys
from pathlib import Path

from xbee_protocol import (
    FirmwareImage,
    Transport,
    TransferState,
    UpdateConfig,
    UpdateError,
    run_firmware_update,
)
from xbee_protocol.config import BOOTLOADER_BAUDRATE, DEFAULT_BAUDRATE
from xbee_protocol.errors import TransportError, ValidationError

EXIT_OK = 0
EXIT_SETUP = 1
EXIT_UPDATE = 2

STAGE_MESSAGES = {
    TransferState.COMMAND_MODE: "Entering bootloader...",
    TransferState.READY: "Beginning programming...",
    TransferState.TRANSFERRED: "Programming complete, running uploaded firmware...",
}


def print_stage(state: TransferState):
    """Print a banner when the update reaches a milestone."""
    message = STAGE_MESSAGES.get(state)
    if message:
        print(message, flush=True)


def print_progress(sent: int, total: int):
    """One dot per block, with a running count every 50 blocks."""
    print(".", end="")
    if sent % 50 == 0:
        print(f" {sent:4d}")
    if sent == total:
        print()
    sys.stdout.flush()


def cmd_upload(transport: Transport, image: FirmwareImage, config: UpdateConfig) -> int:
    """Run the update and map the outcome to an exit code."""
    if config.recovery:
        print("Recovery mode, looking for bootloader prompt...")
    else:
        print("Entering AT command mode...", flush=True)

    try:
        run_firmware_update(
            transport,
            image,
            config,
            progress_callback=print_progress,
            state_callback=print_stage,
        )
    except UpdateError as e:
        print()
        print(f"Failed to flash firmware: {e}")
        return EXIT_UPDATE

    print("Firmware uploaded successfully!")
    return EXIT_OK


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Program new firmware to an XBee module"
    )
    parser.add_argument("file", type=Path, help="Firmware image (.ebl)")
    parser.add_argument(
        "--port", "-p",
        default="/dev/ttyUSB0",
        help="Serial port (default: /dev/ttyUSB0)"
    )
    parser.add_argument("--baud", "-b", type=int, default=DEFAULT_BAUDRATE,
                        help="Application baud rate (default: 9600)")
    parser.add_argument("--bootloader-baud", type=int, default=BOOTLOADER_BAUDRATE,
                        help="Bootloader baud rate (default: 115200)")
    parser.add_argument("--recovery", action="store_true",
                        help="Module is already in its bootloader")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log serial traffic")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.file.exists():
        print(f"Error: File not found: {args.file}")
        return EXIT_SETUP

    try:
        image = FirmwareImage.from_file(args.file)
    except (OSError, ValidationError) as e:
        print(f"Error reading {args.file}: {e}")
        return EXIT_SETUP

    print(f"Read {image.size} byte firmware file ({image.block_count} blocks).")

    config = UpdateConfig(
        baudrate=args.baud,
        bootloader_baudrate=args.bootloader_baud,
        recovery=args.recovery,
    )

    try:
        transport = Transport.open(args.port, args.baud)
    except TransportError as e:
        print(f"Error opening {args.port}: {e}")
        return EXIT_SETUP

    with transport:
        return cmd_upload(transport, image, config)


if __name__ == "__main__":
    sys.exit(main())
