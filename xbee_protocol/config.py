# SPDX-License-Identifier: MIT
# Copyright (c) 2026 The xbee-protocol contributors

"""Tunable constants for a firmware update."""

from dataclasses import dataclass
from typing import Optional

DEFAULT_BAUDRATE = 9600
BOOTLOADER_BAUDRATE = 115200


@dataclass(frozen=True)
class UpdateConfig:
    """
    Settings for one update run.

    baudrate is the application baud rate the line is left at after the new
    firmware starts; None keeps the rate the transport had when the update
    began. sentinel_timeout and response_timeout default to None, meaning the
    corresponding reads wait for the device indefinitely.
    """
    baudrate: Optional[int] = None
    bootloader_baudrate: int = BOOTLOADER_BAUDRATE
    guard_time: float = 1.0
    power_cycle_delay: float = 2.0
    prompt_attempts: int = 20
    prompt_timeout_ds: int = 1
    reply_size: int = 128
    sentinel_timeout: Optional[float] = None
    response_timeout: Optional[float] = None
    recovery: bool = False
