# SPDX-License-Identifier: MIT
# Copyright (c) 2026 The xbee-protocol contributors

"""
Mode transition from a running XBee application into its bootloader.

Sequence:
    OPERATIONAL -> COMMAND_MODE       escape sequence "+++"
    COMMAND_MODE -> POWER_CYCLING     ATFR, DTR set, break held for 2 s
    POWER_CYCLING -> BAUD_SWITCH      bootloader baud rate, 100 ms reads
    BAUD_SWITCH -> BOOTLOADER_PROMPT  CR probes until the prompt answers
    BOOTLOADER_PROMPT -> READY        back to blocking reads
"""

import logging
import time

from .command import CommandChannel
from .config import UpdateConfig
from .errors import TimeoutError
from .protocol import ATCommand, CR, TransferState
from .transport import LineConfig, Transport

logger = logging.getLogger(__name__)

PROMPT_READ_SIZE = 1024


class ModeTransition:
    """State machine that coerces the module into its bootloader."""

    def __init__(
        self,
        transport: Transport,
        commands: CommandChannel,
        config: UpdateConfig,
        state: TransferState = TransferState.OPERATIONAL,
    ):
        self._transport = transport
        self._commands = commands
        self._config = config
        self.state = state
        self._steps = {
            TransferState.OPERATIONAL: self._enter_command_mode,
            TransferState.COMMAND_MODE: self._power_cycle,
            TransferState.POWER_CYCLING: self._switch_baud,
            TransferState.BAUD_SWITCH: self._detect_prompt,
            TransferState.BOOTLOADER_PROMPT: self._enter_ready,
        }

    @property
    def is_ready(self) -> bool:
        return self.state == TransferState.READY

    @property
    def next_state(self) -> TransferState:
        if self.state not in self._steps:
            raise ValueError(f"No transition out of {self.state.name}")
        return TransferState(self.state + 1)

    def advance(self) -> TransferState:
        """
        Perform the next transition.

        Returns:
            The state reached

        Raises:
            ValueError: If already READY
            FlashError: If the step fails; the state is left unchanged
        """
        target = self.next_state
        self._steps[self.state]()
        self.state = target
        logger.info("Mode transition: %s", target)
        return target

    def run(self) -> None:
        """Advance until READY. There is no retry."""
        while not self.is_ready:
            self.advance()

    def _enter_command_mode(self):
        self._commands.enter_command_mode(self._config.guard_time)

    def _power_cycle(self):
        self._commands.send_command(ATCommand.FORCE_RESET)
        self._transport.assert_control_lines()
        self._transport.set_break()
        time.sleep(self._config.power_cycle_delay)
        self._transport.clear_break()
        # DTR/RTS tend to toggle during the break
        self._transport.assert_control_lines()

    def _switch_baud(self):
        self._transport.set_line_config(
            LineConfig.polling(
                self._config.bootloader_baudrate, self._config.prompt_timeout_ds
            )
        )

    def _detect_prompt(self):
        # any reply counts as the "BL >" prompt
        for attempt in range(1, self._config.prompt_attempts + 1):
            self._transport.write_all(CR)
            reply = self._transport.read_framed(PROMPT_READ_SIZE)
            if reply:
                logger.debug("Bootloader answered on attempt %d: %r", attempt, reply)
                return
        raise TimeoutError(
            f"No bootloader prompt after {self._config.prompt_attempts} attempts"
        )

    def _enter_ready(self):
        baudrate = self._config.bootloader_baudrate
        timeout = self._config.response_timeout
        if timeout is None:
            config = LineConfig.blocking(baudrate)
        else:
            config = LineConfig.polling(baudrate, min(255, max(1, round(timeout * 10))))
        self._transport.set_line_config(config)
