#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - Callback-based frame transport."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .. import exceptions as exc
from .base import TransportConfig, _BaseTransport

if TYPE_CHECKING:
    from ..interfaces import ProtocolInterface
    from ..typing import FrameDataT

_LOGGER = logging.getLogger(__name__)


class CallbackTransport(_BaseTransport):
    """A virtual transport that delegates I/O to external callbacks.

    The owner of the real socket feeds it events via open(), receive_frame(),
    receive_error() and remote_close(); outbound frames are handed to io_writer.
    """

    def __init__(
        self,
        protocol: ProtocolInterface,
        io_writer: Callable[[str], None],
        /,
        *,
        io_closer: Callable[[int | None, str], None] | None = None,
        config: TransportConfig | None = None,
        extra: dict[str, Any] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        autostart: bool = False,
    ) -> None:
        super().__init__(
            protocol, config=config or TransportConfig(), extra=extra, loop=loop
        )

        self._io_writer = io_writer
        self._io_closer = io_closer

        _LOGGER.info(f"CallbackTransport created with io_writer={io_writer}")

        if autostart:
            self.open()

    def open(self) -> None:
        """Report the open event to the protocol."""
        if self._closing:
            raise exc.TransportError("Transport is closing or has closed")
        self._make_connection()

    def receive_frame(self, data: FrameDataT) -> None:
        """Ingest a frame from the external source (Read Path)."""
        if not self._opened:
            _LOGGER.debug(f"Dropping received frame (transport not open): {data!r}")
            return
        self._frame_read(data)

    def receive_error(self, err: Exception) -> None:
        """Ingest an error from the external source."""
        self._error_read(err)

    def remote_close(self, code: int | None, reason: str = "") -> None:
        """Ingest the close event from the external source."""
        self._connection_lost(code, reason)

    def _write_frame(self, frame: str) -> None:
        """Pass the frame to the external writer."""
        try:
            self._io_writer(frame)
        except Exception as err:
            _LOGGER.error(f"External writer failed to send frame: {err}")
            raise exc.TransportError(f"External writer failed: {err}") from err

    def _close(self, code: int | None, reason: str) -> None:
        """Ask the external source to close, then report the close event."""
        if self._io_closer is not None:
            self._io_closer(code, reason)
        self._connection_lost(code, reason)
