# SPDX-License-Identifier: MIT
# Copyright (c) 2026 The xbee-protocol contributors

"""
Transport layer for XBee bootloader communication.

Handles raw serial port I/O. Responses carry no length field, so message
boundaries are inferred from a pause in traffic (the idle window).
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

import serial

from .errors import (
    FlashError,
    TransportError,
    TimeoutError,
    ProtocolError,
    ValidationError,
)

logger = logging.getLogger(__name__)

IDLE_WINDOW = 0.1
POLL_INTERVAL = 0.1


@dataclass(frozen=True)
class LineConfig:
    """
    Serial line timing regime.

    Mirrors the termios VMIN/VTIME pair:
        min_bytes=1, timeout_ds=0: block until at least one byte arrives
        min_bytes=0, timeout_ds=N: return after N tenths of a second
        min_bytes=0, timeout_ds=0: return immediately
    """
    baudrate: int
    min_bytes: int = 1
    timeout_ds: int = 0

    def __post_init__(self):
        if self.baudrate <= 0:
            raise ValidationError(f"Invalid baud rate: {self.baudrate}")
        if not 0 <= self.timeout_ds <= 255:
            raise ValidationError(f"Timeout out of range: {self.timeout_ds}")
        if self.min_bytes < 0:
            raise ValidationError(f"Invalid min_bytes: {self.min_bytes}")

    @classmethod
    def blocking(cls, baudrate: int) -> "LineConfig":
        """Wait indefinitely for at least one byte."""
        return cls(baudrate, min_bytes=1, timeout_ds=0)

    @classmethod
    def polling(cls, baudrate: int, timeout_ds: int = 1) -> "LineConfig":
        """Return whatever is available, or nothing after timeout_ds."""
        return cls(baudrate, min_bytes=0, timeout_ds=timeout_ds)

    @property
    def read_timeout(self) -> Optional[float]:
        """Equivalent pyserial read timeout in seconds (None = forever)."""
        if self.timeout_ds:
            return self.timeout_ds / 10
        if self.min_bytes:
            return None
        return 0


class Transport:
    """
    Serial transport for the XBee module and its bootloader.

    Wraps an already-open pyserial handle. Can be used as a context manager:
        with Transport.open("/dev/ttyUSB0") as t:
            t.write_all(b"+++")
    """

    def __init__(
        self,
        ser,
        idle_window: float = IDLE_WINDOW,
        poll_interval: float = POLL_INTERVAL,
    ):
        """
        Take ownership of an open serial handle.

        Args:
            ser: Open serial.Serial (or compatible) instance
            idle_window: Silence that ends a framed read, in seconds
            poll_interval: Sleep between sentinel polls, in seconds
        """
        self._ser = ser
        self._idle_window = idle_window
        self._poll_interval = poll_interval
        self._config = LineConfig.blocking(ser.baudrate)

    @classmethod
    def open(cls, port: str, baudrate: int = 9600, **kwargs) -> "Transport":
        """
        Open a serial port in blocking mode.

        Raises:
            TransportError: If the port cannot be opened
        """
        try:
            ser = serial.Serial(port, baudrate, timeout=None)
        except serial.SerialException as e:
            raise TransportError(f"Cannot open port {port}: {e}") from e
        logger.debug("Opened %s at %d bps", port, baudrate)
        return cls(ser, **kwargs)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self):
        """Close the serial connection."""
        if self._ser and self._ser.is_open:
            self._ser.close()
            logger.debug("Closed %s", self.port)

    @property
    def port(self) -> str:
        """Return the serial port name."""
        return self._ser.port

    @property
    def line_config(self) -> LineConfig:
        """Currently applied line configuration."""
        return self._config

    def set_line_config(self, config: LineConfig) -> None:
        """Apply a new baud rate and read-blocking regime."""
        try:
            self._ser.baudrate = config.baudrate
            self._ser.timeout = config.read_timeout
        except (serial.SerialException, ValueError) as e:
            raise TransportError(f"Failed to configure line: {e}") from e
        self._config = config
        logger.debug(
            "Line set to %d bps, VMIN=%d VTIME=%d",
            config.baudrate, config.min_bytes, config.timeout_ds,
        )

    def read(self, size: int = 1) -> bytes:
        """Single read; returns b"" if the line timed out."""
        data = self._ser_read(size)
        if data:
            logger.debug("RX %s", data.hex())
        return data

    def read_framed(self, max_bytes: int) -> bytes:
        """
        Read one reply whose end is marked by the line going idle.

        The first read follows the line configuration. After that, bytes are
        appended for as long as more arrive within the idle window and fewer
        than max_bytes have been collected.

        Returns:
            The reply, or b"" if the first read produced nothing
        """
        result = bytearray(self._read_available(1))
        if not result:
            return b""
        with self._read_timeout(self._idle_window):
            while len(result) < max_bytes:
                more = self._read_available(max_bytes - len(result))
                if not more:
                    break
                result += more
        logger.debug("RX %s", result.hex())
        return bytes(result)

    def write_all(self, data: bytes) -> int:
        """
        Write every byte, retrying partial writes.

        Returns:
            Number of bytes written

        Raises:
            TransportError: On a write error or a write that makes no progress
        """
        view = memoryview(data)
        written = 0
        try:
            while written < len(data):
                ret = self._ser.write(view[written:])
                if not ret or ret <= 0:
                    raise TransportError(
                        f"Write stalled after {written}/{len(data)} bytes"
                    )
                written += ret
            self._ser.flush()
        except serial.SerialException as e:
            raise TransportError(f"Write failed: {e}") from e
        logger.debug("TX %s", bytes(data).hex())
        return written

    def wait_for_sentinel(self, sentinel: int, timeout: Optional[float] = None) -> None:
        """
        Discard input until the sentinel byte is read, then two more bytes.

        The two trailing bytes are the rest of the reply line ("K\\r" after
        "O"). With timeout=None this waits forever. With a timeout, each read
        is limited to one poll interval for the duration of the wait, so a
        silent line cannot hold a blocking read.

        Raises:
            TimeoutError: If a timeout is given and no sentinel arrived
        """
        if timeout is None:
            polls = None
            read_timeout = self._config.read_timeout
        else:
            polls = max(1, round(timeout / self._poll_interval))
            read_timeout = self._poll_interval
        with self._read_timeout(read_timeout):
            while True:
                byte = self._ser_read(1)
                if byte and byte[0] == sentinel:
                    break
                if polls is not None:
                    polls -= 1
                    if polls <= 0:
                        raise TimeoutError(
                            f"No 0x{sentinel:02x} sentinel within {timeout}s"
                        )
                # an empty bounded read has already waited one interval
                if byte or polls is None:
                    time.sleep(self._poll_interval)
            self._ser_read(1)
            self._ser_read(1)
        logger.debug("Sentinel 0x%02x received", sentinel)

    def assert_control_lines(self) -> None:
        """Set DTR, clear RTS."""
        self._set_line("dtr", True)
        self._set_line("rts", False)

    def set_break(self) -> None:
        """Hold the TX line in a break condition."""
        self._set_line("break_condition", True)

    def clear_break(self) -> None:
        self._set_line("break_condition", False)

    def _set_line(self, name: str, value: bool) -> None:
        try:
            setattr(self._ser, name, value)
        except serial.SerialException as e:
            raise TransportError(f"Failed to set {name}: {e}") from e
        logger.debug("%s=%s", name, value)

    def _ser_read(self, size: int) -> bytes:
        try:
            return self._ser.read(size)
        except serial.SerialException as e:
            raise TransportError(f"Read failed: {e}") from e

    def _read_available(self, limit: int) -> bytes:
        """Read at least one byte (per line config), plus whatever is queued."""
        data = self._ser_read(1)
        if not data:
            return data
        try:
            pending = self._ser.in_waiting
        except serial.SerialException as e:
            raise TransportError(f"Read failed: {e}") from e
        if pending and limit > 1:
            data += self._ser_read(min(pending, limit - 1))
        return data

    @contextmanager
    def _read_timeout(self, seconds: Optional[float]):
        """Override the read timeout, restoring the line config's on exit."""
        try:
            self._ser.timeout = seconds
        except (serial.SerialException, ValueError) as e:
            raise TransportError(f"Failed to configure line: {e}") from e
        try:
            yield
        finally:
            self._ser.timeout = self._config.read_timeout


__all__ = [
    "FlashError",
    "TransportError",
    "TimeoutError",
    "ProtocolError",
    "ValidationError",
    "LineConfig",
    "Transport",
]
