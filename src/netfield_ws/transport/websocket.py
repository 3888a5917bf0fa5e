#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - WebSocket-based frame transport."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedError,
    WebSocketException,
)

from .. import exceptions as exc
from ..const import CLOSE_ABNORMAL, CLOSE_NORMAL, SZ_ENDPOINT, SZ_REMOTE_ADDRESS
from .base import TransportConfig, _BaseTransport

if TYPE_CHECKING:
    from ..interfaces import ProtocolInterface

_LOGGER = logging.getLogger(__name__)

_WS_SCHEMES = ("ws", "wss")


def validate_endpoint(endpoint: str) -> str:
    """Test the endpoint URI and return it.

    :param endpoint: The candidate endpoint, e.g. wss://api.netfield.io
    :type endpoint: str
    :return: The valid endpoint.
    :rtype: str
    :raises TransportSourceInvalid: If the endpoint is not a ws:// or wss:// URI.
    """
    url = urlparse(endpoint or "")
    if url.scheme not in _WS_SCHEMES or not url.hostname:
        raise exc.TransportSourceInvalid(f"Invalid endpoint: {endpoint}")
    return endpoint


class WebSocketTransport(_BaseTransport):
    """Send/receive frames to/from the relay server via a WebSocket.

    A reader task passes frames to the protocol in the order they are received, and
    a writer task sends frames in the order they were written. For full Rx/Tx
    logging, turn on debug logging.
    """

    def __init__(
        self,
        endpoint: str,
        protocol: ProtocolInterface,
        /,
        *,
        config: TransportConfig,
        extra: dict[str, Any] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        super().__init__(protocol, config=config, extra=extra, loop=loop)

        self._endpoint = validate_endpoint(endpoint)
        self._config = config

        self._ws: ClientConnection | None = None
        self._outbox: asyncio.Queue[str] = asyncio.Queue()

        self._reader_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None
        self._close_task: asyncio.Task[None] | None = None

        self._extra[SZ_ENDPOINT] = endpoint

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._endpoint})"

    async def connect(self) -> None:
        """Open the WebSocket, and start reading/writing frames.

        :raises TransportConnectFailed: If the WebSocket could not be opened.
        """
        if self._ws is not None:
            raise exc.TransportError("Transport has already been connected")

        _LOGGER.debug("%s: Opening the WebSocket...", self)
        try:
            self._ws = await connect(
                self._endpoint,
                open_timeout=self._config.connect_timeout,
                close_timeout=self._config.close_timeout,
                max_size=self._config.max_frame_size,
            )
        except (OSError, TimeoutError, WebSocketException) as err:
            _LOGGER.warning("%s: Unable to open the WebSocket: %s", self, err)
            raise exc.TransportConnectFailed(
                f"Unable to open the WebSocket at {self._endpoint}: {err}"
            ) from err

        _LOGGER.info("%s: WebSocket is open", self)
        self._extra[SZ_REMOTE_ADDRESS] = self._ws.remote_address

        self._writer_task = self._loop.create_task(
            self._write_loop(), name="WebSocketTransport._write_loop()"
        )
        self._make_connection()
        self._reader_task = self._loop.create_task(
            self._read_loop(), name="WebSocketTransport._read_loop()"
        )

    async def wait_closed(self) -> None:
        """Wait until the WebSocket has closed (and the protocol been told)."""
        if self._reader_task is not None:
            await asyncio.shield(self._reader_task)

    async def _read_loop(self) -> None:
        """Pass each received frame to the protocol, then report the close."""
        assert self._ws is not None

        try:
            async for data in self._ws:
                self._frame_read(data)

        except ConnectionClosedError as err:
            if not self._closing:
                self._error_read(exc.TransportError(f"Connection lost: {err}"))

        finally:
            if self._writer_task is not None:
                self._writer_task.cancel()

            code = self._ws.close_code
            self._connection_lost(
                CLOSE_ABNORMAL if code is None else code, self._ws.close_reason or ""
            )

    async def _write_loop(self) -> None:
        """Send the queued frames, in order."""
        assert self._ws is not None

        while True:
            frame = await self._outbox.get()
            try:
                await self._ws.send(frame)
            except ConnectionClosed:
                _LOGGER.debug("%s: Dropping write - WebSocket closed", self)
                return

    def _write_frame(self, frame: str) -> None:
        """Queue the frame for the writer task."""
        self._outbox.put_nowait(frame)

    def _close(self, code: int | None, reason: str) -> None:
        """Close the WebSocket (the reader task will then report the close)."""
        if self._ws is None:
            self._connection_lost(code, reason)
            return

        self._close_task = self._loop.create_task(
            self._close_ws(CLOSE_NORMAL if code is None else code, reason),
            name="WebSocketTransport._close_ws()",
        )

    async def _close_ws(self, code: int, reason: str) -> None:
        assert self._ws is not None

        try:
            await self._ws.close(code=code, reason=reason)
        except WebSocketException as err:  # e.g. a reserved close code
            _LOGGER.warning("%s: Unable to close with code=%s: %s", self, code, err)
            await self._ws.close()
