# SPDX-License-Identifier: MIT
# Copyright (c) 2026 The xbee-protocol contributors

"""
XMODEM-CRC sender for the XBee bootloader.

Each 128-byte block is sent as SOH, seq, 255-seq, payload, CRC-16 and must
be answered with a single ACK. A missing or wrong answer aborts the
transfer; blocks are never resent.
"""

import logging
from typing import Callable, Optional

from .errors import ProtocolError
from .protocol import ACK, EOT, MENU_UPLOAD, TRANSFER_CRC, FirmwareImage
from .transport import Transport

logger = logging.getLogger(__name__)


class BlockTransfer:
    """Sends a FirmwareImage to a bootloader sitting at its menu."""

    def __init__(self, transport: Transport, reply_size: int = 128):
        self._transport = transport
        self._reply_size = reply_size

    def select_protocol(self) -> None:
        """
        Pick "upload" from the bootloader menu.

        The reply ("\\r\\nbegin upload\\r\\nC") must end with 'C', the
        receiver's request for CRC mode.

        Raises:
            ProtocolError: If there is no reply or the transfer type is not CRC
        """
        self._transport.write_all(MENU_UPLOAD)
        reply = self._transport.read_framed(self._reply_size)
        if not reply:
            raise ProtocolError("failed to read programming go-ahead")
        if reply[-1] != TRANSFER_CRC:
            raise ProtocolError(
                f"unsupported transfer type: 0x{reply[-1]:02x}", received=reply[-1]
            )

    def send(
        self,
        image: FirmwareImage,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> None:
        """
        Send every block of the image.

        Args:
            image: Firmware to send
            progress_callback: Optional callback(blocks_sent, total_blocks)

        Raises:
            ProtocolError: If a block is not acknowledged
        """
        total = image.block_count
        logger.info("Sending %d bytes in %d blocks", image.size, total)

        for block in image.blocks():
            self._transport.write_all(block.encode())

            reply = self._transport.read(1)
            if reply != bytes([ACK]):
                received = reply[0] if reply else None
                shown = f"0x{received:02x}" if reply else "no reply"
                raise ProtocolError(
                    f"failed to transfer block {block.number} of {total}: {shown}",
                    block_index=block.number,
                    received=received,
                )

            if progress_callback:
                progress_callback(block.number, total)

    def finish(self) -> None:
        """
        Send EOT and wait for "\\x06\\r\\nSerial upload complete\\r\\n".

        Raises:
            ProtocolError: If the reply does not start with ACK
        """
        self._transport.write_all(bytes([EOT]))
        reply = self._transport.read_framed(self._reply_size)
        if not reply or reply[0] != ACK:
            raise ProtocolError(
                "failed to read programming confirmation",
                received=reply[0] if reply else None,
            )
        logger.info("Upload confirmed by bootloader")
