# SPDX-License-Identifier: MIT
# Copyright (c) 2026 The xbee-protocol contributors

"""
AT command channel.

Used while the module still runs its application firmware: the escape
sequence puts it into command mode, after which two-letter AT commands are
acknowledged with "OK\\r".
"""

import logging
import time
from typing import Optional

from .protocol import ESCAPE_SEQUENCE, OK_SENTINEL, encode_command
from .transport import Transport

logger = logging.getLogger(__name__)


class CommandChannel:
    """Sends AT commands over a Transport and waits for the OK reply."""

    def __init__(self, transport: Transport, sentinel_timeout: Optional[float] = None):
        """
        Args:
            transport: Open transport in blocking mode
            sentinel_timeout: Bound on each OK wait in seconds (None = forever)
        """
        self._transport = transport
        self._sentinel_timeout = sentinel_timeout

    def send_command(self, code: str, fmt: str = "", *args) -> int:
        """
        Send "AT<code><argument>\\r" and wait for the acknowledgment.

        Args:
            code: Two-character command code
            fmt: printf-style argument format, empty for no argument
            *args: Values for fmt

        Returns:
            Number of bytes written

        Raises:
            ValidationError: If the frame is malformed or too long
            TransportError: If writing fails
        """
        argument = fmt % args if args else fmt
        frame = encode_command(code, argument)
        logger.debug("AT%s%s", code, argument)
        written = self._transport.write_all(frame)
        self._transport.wait_for_sentinel(OK_SENTINEL, self._sentinel_timeout)
        return written

    def enter_command_mode(self, guard_time: float = 1.0) -> None:
        """Send the escape sequence surrounded by quiet periods."""
        time.sleep(guard_time)
        self._transport.write_all(ESCAPE_SEQUENCE)
        time.sleep(guard_time)
        self._transport.wait_for_sentinel(OK_SENTINEL, self._sentinel_timeout)
        logger.info("Command mode entered")
