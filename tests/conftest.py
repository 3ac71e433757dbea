# SPDX-License-Identifier: MIT
# Copyright (c) 2026 The xbee-protocol contributors

"""Pytest configuration: in-memory serial port and a scripted XBee."""

from unittest.mock import patch

import pytest

from xbee_protocol.protocol import ACK, BLOCK_SIZE, SOH
from xbee_protocol.transport import Transport

NAK = 0x15
FRAME_SIZE = BLOCK_SIZE + 5


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--device",
        action="store",
        default=None,
        help="Serial port of an attached XBee (e.g., /dev/ttyUSB0)",
    )
    parser.addoption(
        "--firmware",
        action="store",
        default=None,
        help="Firmware image to flash in integration tests",
    )


class FakeSerial:
    """
    In-memory stand-in for serial.Serial.

    Bytes queued in rx are returned by read(); every write is recorded and
    handed to an optional responder whose return value is queued as input.
    Chunks in trickle are released one at a time by reads that find rx
    empty, to model replies that arrive in pieces. Every timeout change is
    recorded in timeouts.
    """

    def __init__(self, rx=b"", responder=None, max_write=None, write_result=None):
        self.rx = bytearray(rx)
        self.responder = responder
        self.max_write = max_write
        self.write_result = write_result
        self.trickle = []
        self.writes = []
        self.events = []
        self.timeouts = []
        self.port = "/dev/ttyTEST"
        self.baudrate = 9600
        self._timeout = None
        self.is_open = True
        self._dtr = False
        self._rts = True
        self._break = False

    @property
    def written(self) -> bytes:
        return b"".join(self.writes)

    @property
    def timeout(self):
        return self._timeout

    @timeout.setter
    def timeout(self, value):
        self._timeout = value
        self.timeouts.append(value)

    @property
    def in_waiting(self) -> int:
        return len(self.rx)

    def read(self, size: int = 1) -> bytes:
        if not self.rx and self.trickle:
            self.rx += self.trickle.pop(0)
        data = bytes(self.rx[:size])
        del self.rx[:size]
        return data

    def write(self, data) -> int:
        if self.write_result is not None:
            return self.write_result
        data = bytes(data)
        if self.max_write is not None:
            data = data[:self.max_write]
        self.writes.append(data)
        if self.responder:
            self.rx += self.responder(data) or b""
        return len(data)

    def flush(self):
        pass

    def close(self):
        self.is_open = False

    @property
    def dtr(self):
        return self._dtr

    @dtr.setter
    def dtr(self, value):
        self._dtr = value
        self.events.append(("dtr", value))

    @property
    def rts(self):
        return self._rts

    @rts.setter
    def rts(self, value):
        self._rts = value
        self.events.append(("rts", value))

    @property
    def break_condition(self):
        return self._break

    @break_condition.setter
    def break_condition(self, value):
        self._break = value
        self.events.append(("break", value))


class BlockingSerial(FakeSerial):
    """
    FakeSerial whose reads honour timeout=None like a real port.

    A read with no timeout and nothing queued would never return, so it
    fails the test instead of hanging it.
    """

    def read(self, size: int = 1) -> bytes:
        if self.timeout is None and not self.rx and not self.trickle:
            raise AssertionError("read() with timeout=None on a silent line")
        return super().read(size)


class XBeeSimulator:
    """
    Scripted XBee module used as a FakeSerial responder.

    Answers "+++" and AT commands with "OK\\r", the CR probe with the "BL >"
    prompt once the line runs at the bootloader baud rate, the upload menu
    choice with the go-ahead, and every block frame with ACK (or with
    reject_byte on block number reject_block).
    """

    def __init__(
        self,
        ser,
        prompt=True,
        bootloader_baudrate=115200,
        go_ahead=b"\r\nbegin upload\r\nC",
        reject_block=None,
        reject_byte=NAK,
        confirmation=b"\x06\r\nSerial upload complete\r\n",
    ):
        self.ser = ser
        self.prompt = prompt
        self.bootloader_baudrate = bootloader_baudrate
        self.go_ahead = go_ahead
        self.reject_block = reject_block
        self.reject_byte = reject_byte
        self.confirmation = confirmation
        self.commands = []
        self.frames = []
        self.probes = 0
        ser.responder = self

    def __call__(self, data: bytes) -> bytes:
        if data == b"+++":
            return b"OK\r"
        if data.startswith(b"AT") and data.endswith(b"\r"):
            self.commands.append(data[2:-1].decode())
            return b"OK\r"
        if data == b"\r":
            self.probes += 1
            if self.prompt and self.ser.baudrate == self.bootloader_baudrate:
                return b"\r\nBL >"
            return b""
        if data == b"1":
            return self.go_ahead
        if len(data) == FRAME_SIZE and data[0] == SOH:
            self.frames.append(data)
            if len(self.frames) == self.reject_block:
                return bytes([self.reject_byte])
            return bytes([ACK])
        if data == b"\x04":
            return self.confirmation
        return b""


@pytest.fixture(autouse=True)
def no_sleep(request):
    """Skip real delays (guard times, power cycle, poll intervals)."""
    if request.node.get_closest_marker("integration"):
        yield None
        return
    with patch("xbee_protocol.transport.time.sleep") as mock_sleep:
        yield mock_sleep


@pytest.fixture
def fake_serial():
    return FakeSerial()


@pytest.fixture
def transport(fake_serial):
    return Transport(fake_serial)


@pytest.fixture
def xbee(fake_serial):
    """A simulated module wired to fake_serial."""
    return XBeeSimulator(fake_serial)


@pytest.fixture(scope="session")
def device_port(request):
    """Get the device port from command line (optional override)."""
    return request.config.getoption("--device")


@pytest.fixture(scope="session")
def firmware_path(request):
    return request.config.getoption("--firmware")
