# SPDX-License-Identifier: MIT
# Copyright (c) 2026 The xbee-protocol contributors

"""Exception hierarchy shared by all layers of the uploader."""


class FlashError(Exception):
    """Base exception for firmware upload errors."""
    pass


class TransportError(FlashError):
    """Serial read/write failed at the stream level."""
    pass


class TimeoutError(FlashError):
    """Retry budget exhausted without a usable response."""
    pass


class ProtocolError(FlashError):
    """Protocol-level error (unexpected response, etc.)."""

    def __init__(self, message: str, block_index=None, received=None):
        # block_index is the 1-based position of the failing block
        super().__init__(message)
        self.block_index = block_index
        self.received = received


class ValidationError(FlashError, ValueError):
    """Precondition violated before any I/O was attempted."""
    pass
