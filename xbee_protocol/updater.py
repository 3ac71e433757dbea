# SPDX-License-Identifier: MIT
# Copyright (c) 2026 The xbee-protocol contributors

"""
Firmware update orchestration.

Runs the mode transition, the XMODEM upload and the final "run firmware"
menu choice, and reports any failure as a single UpdateError. Nothing is
rolled back: after a failure the module is left wherever the failing step
left it.
"""

import logging
from typing import Callable, Optional, Union

from .bootloader import ModeTransition
from .command import CommandChannel
from .config import UpdateConfig
from .errors import FlashError
from .protocol import MENU_RUN, FirmwareImage, TransferState
from .transport import LineConfig, Transport
from .xmodem import BlockTransfer

logger = logging.getLogger(__name__)


class UpdateError(Exception):
    """Terminal update failure, tagged with the stage it happened in."""

    def __init__(self, stage: TransferState, error: FlashError):
        super().__init__(f"{stage.name}: {error}")
        self.stage = stage
        self.error = error

    @property
    def kind(self) -> str:
        """Name of the originating error class, e.g. "ProtocolError"."""
        return type(self.error).__name__


class FirmwareUpdater:
    """
    Drives one firmware update over an exclusively owned Transport.

    state only moves forward; on failure it holds the last state reached.
    """

    def __init__(
        self,
        transport: Transport,
        config: Optional[UpdateConfig] = None,
        state_callback: Optional[Callable[[TransferState], None]] = None,
    ):
        self._transport = transport
        self._config = config or UpdateConfig()
        self._state_callback = state_callback
        self.state = TransferState.OPERATIONAL

    def run(
        self,
        firmware: Union[bytes, FirmwareImage],
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> None:
        """
        Upload firmware and start it.

        Args:
            firmware: Raw image bytes or a FirmwareImage
            progress_callback: Optional callback(blocks_sent, total_blocks)

        Raises:
            UpdateError: If any stage fails
        """
        image = self._attempt(self.state, lambda: self._as_image(firmware))
        original = self._transport.line_config

        commands = CommandChannel(self._transport, self._config.sentinel_timeout)
        start = TransferState.OPERATIONAL
        if self._config.recovery:
            logger.info("Recovery mode: assuming bootloader is already running")
            start = TransferState.POWER_CYCLING
            self._set_state(start)
        transition = ModeTransition(self._transport, commands, self._config, start)
        while not transition.is_ready:
            self._step(transition.next_state, transition.advance)

        transfer = BlockTransfer(self._transport, self._config.reply_size)
        self._step(TransferState.PROTOCOL_SELECTED, transfer.select_protocol)
        self._set_state(TransferState.TRANSFERRING)
        self._attempt(
            TransferState.TRANSFERRING,
            lambda: transfer.send(image, progress_callback),
        )
        self._step(TransferState.TRANSFERRED, transfer.finish)
        self._step(TransferState.RUNNING, lambda: self._run_firmware(original))
        logger.info("Firmware update complete")

    def _run_firmware(self, original: LineConfig):
        self._transport.write_all(MENU_RUN)
        baudrate = self._config.baudrate or original.baudrate
        self._transport.set_line_config(LineConfig.blocking(baudrate))

    def _step(self, target: TransferState, action: Callable[[], object]) -> None:
        self._attempt(target, action)
        self._set_state(target)

    def _set_state(self, state: TransferState) -> None:
        self.state = state
        if self._state_callback:
            self._state_callback(state)

    def _attempt(self, stage: TransferState, action: Callable[[], object]):
        try:
            return action()
        except FlashError as e:
            logger.warning("Update failed entering %s: %s", stage, e)
            raise UpdateError(stage, e) from e

    @staticmethod
    def _as_image(firmware) -> FirmwareImage:
        if isinstance(firmware, FirmwareImage):
            return firmware
        return FirmwareImage(firmware)


def run_firmware_update(
    transport: Transport,
    firmware: Union[bytes, FirmwareImage],
    config: Optional[UpdateConfig] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    state_callback: Optional[Callable[[TransferState], None]] = None,
) -> None:
    """
    Reprogram the module attached to transport.

    Performs command mode -> bootloader -> upload -> run, and leaves the line
    at its original baud rate on success.

    Raises:
        UpdateError: On any failure, with the stage and originating error
    """
    updater = FirmwareUpdater(transport, config, state_callback)
    updater.run(firmware, progress_callback)
