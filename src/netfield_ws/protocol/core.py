#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - the protocol implementation.

This module provides the concrete Protocol class that binds the transport, the
state machine, the session context and the event sink together.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeAlias

from ..const import (
    CLOSE_ABNORMAL,
    CLOSE_NORMAL,
    CLOSE_PROTOCOL_ERROR,
    DEFAULT_HELLO_TIMEOUT,
    DEFAULT_SUB_TIMEOUT,
    MsgType,
    Phase,
)
from ..exceptions import (
    FrameDecodeError,
    HandshakeTimeout,
    ServerErrorFrame,
    TransportError,
    TransportNotConnected,
)
from ..frame import Frame, encode_frame, hello_frame, ping_frame, sub_frame
from ..handlers import EventSink, invoke_handler
from ..interfaces import ProtocolInterface, TransportInterface
from ..session import SessionIdentity
from ..typing import ClientIdT, DeviceIdT, FrameDataT
from .fsm import ProtocolContext

_LOGGER = logging.getLogger(__name__)

PhaseHandlerT: TypeAlias = Callable[[Phase], None]


class NetFieldProtocol(ProtocolInterface):
    """The protocol for a single connection to the relay server.

    Inbound frames are decoded and classified in the order they are received:
    frames with a payload.error go to the error handler (whatever their type),
    frames of an unknown type go to the unexpected-message handler, and all others
    are passed to the state machine.
    """

    def __init__(
        self,
        session: SessionIdentity,
        sink: EventSink,
        /,
        *,
        hello_timeout: float = DEFAULT_HELLO_TIMEOUT,
        sub_timeout: float = DEFAULT_SUB_TIMEOUT,
        strict_send: bool = False,
        phase_handler: PhaseHandlerT | None = None,
    ) -> None:
        """Initialize the protocol.

        :param session: The session context (identity and counters).
        :type session: SessionIdentity
        :param sink: The callbacks for pubs, errors, closure & unexpected messages.
        :type sink: EventSink
        :param hello_timeout: Timeout for the hello ack (0 for no timeout).
        :type hello_timeout: float
        :param sub_timeout: Timeout for the sub ack (0 for no timeout).
        :type sub_timeout: float
        :param strict_send: Raise TransportNotConnected rather than drop a send.
        :type strict_send: bool
        :param phase_handler: An optional callback invoked on every phase change.
        :type phase_handler: PhaseHandlerT | None
        """
        self._session = session
        self._sink = sink
        self._strict_send = strict_send
        self._phase_handler = phase_handler

        self._loop = asyncio.get_running_loop()
        self._transport: TransportInterface | None = None

        self._closed_by_caller = False
        self._was_active = False

        self._wait_connection_made: asyncio.Future[TransportInterface] = (
            self._loop.create_future()
        )
        self._wait_connection_lost: asyncio.Future[tuple[int | None, str]] = (
            self._loop.create_future()
        )

        self._context = ProtocolContext(
            self, hello_timeout=hello_timeout, sub_timeout=sub_timeout
        )

    def __repr__(self) -> str:
        context = getattr(self, "_context", None)
        phase = context.phase if context and context.state else Phase.CONNECTING
        return f"{self.__class__.__name__}(id={self._session.client_id}, phase={phase})"

    @property
    def phase(self) -> Phase:
        """Return the phase of the connection."""
        return self._context.phase

    @property
    def client_id(self) -> ClientIdT:
        return self._session.client_id

    @property
    def session(self) -> SessionIdentity:
        return self._session

    @property
    def transport(self) -> TransportInterface | None:
        return self._transport

    @property
    def closed_by_caller(self) -> bool:
        """Return True if the connection was closed via close()."""
        return self._closed_by_caller

    @property
    def was_active(self) -> bool:
        """Return True if the connection has ever reached the active phase."""
        return self._was_active

    # Transport events

    def connection_made(self, transport: TransportInterface) -> None:
        """Called when the socket is open: say hello.

        If the connection was closed (by the caller) whilst the socket was still
        being opened, the socket is closed straight away.
        """
        if self._wait_connection_made.done():
            _LOGGER.warning("%s: connection_made() called more than once", self)
            return

        self._transport = transport
        self._wait_connection_made.set_result(transport)

        if self.phase is Phase.CLOSED:
            transport.close(CLOSE_NORMAL, "")
            return

        self._context.connection_made(transport)

    def connection_lost(self, code: int | None, reason: str) -> None:
        """Called when the socket has closed (or failed to open)."""
        if not self._wait_connection_lost.done():
            self._wait_connection_lost.set_result((code, reason))

        if self.phase is Phase.CLOSED:
            return

        _LOGGER.info("%s: Connection lost (code=%s, reason=%r)", self, code, reason)
        self._context.connection_lost()
        invoke_handler(self._sink.on_close, code, reason)

    def connection_failed(self, err: TransportError) -> None:
        """Called when the socket could not be opened: report error, then close."""
        self.error_received(err)
        self.connection_lost(CLOSE_ABNORMAL, str(err))

    def error_received(self, err: Exception) -> None:
        """Called when the transport reports an error (not terminal in itself)."""
        self._report_error(None, err)

    def _report_error(self, raw: FrameDataT | None, err: Exception) -> None:
        if self.phase is Phase.CLOSED:
            _LOGGER.debug("%s: Ignoring error after close: %s", self, err)
            return

        self._session.stats.errors_rcvd += 1
        invoke_handler(self._sink.on_error, raw, err)

    def frame_received(self, data: FrameDataT) -> None:
        """Called when a frame is received: decode, classify & dispatch it."""
        if self.phase is Phase.CLOSED:
            _LOGGER.debug("%s: Ignoring frame after close: %r", self, data)
            return

        self._session.stats.frames_rcvd += 1

        try:
            frame = Frame.from_raw(data)
        except FrameDecodeError as err:
            _LOGGER.warning("%s < Can't decode frame (%s)", data, err)
            self._report_error(data, err)
            return

        if frame.has_error:  # takes precedence over the type
            server_err = ServerErrorFrame(
                f"Server returned an error: {frame.error}", data, error=frame.error
            )
            _LOGGER.debug("%s < Server returned an error (%s)", data, frame.error)
            self._report_error(data, server_err)
            return

        if frame.type is MsgType.OTHER:
            invoke_handler(self._sink.on_unexpected_message, data)
            return

        self._context.frame_rcvd(frame)

    # Called by the state machine

    def _phase_changed(self, phase: Phase) -> None:
        if phase is Phase.ACTIVE:
            self._was_active = True
        if self._phase_handler is not None:
            invoke_handler(self._phase_handler, phase)

    def _send_hello(self) -> None:
        self._send_internal(
            hello_frame(self._session.client_id, self._session.authorization)
        )

    def _send_sub(self) -> None:
        session = self._session
        self._send_internal(
            sub_frame(session.client_id, session.device_id, session.topic)
        )

    def _send_ping(self) -> None:
        if self._send_internal(ping_frame(self._session.client_id)):
            self._session.stats.pings_answered += 1

    def _pub_received(self, message: Any) -> None:
        self._session.stats.pubs_rcvd += 1
        invoke_handler(self._sink.on_pub_message, message)

    def _handshake_expired(self, err: HandshakeTimeout) -> None:
        """Report the timeout, then close (the supervisor may reconnect)."""
        self.error_received(err)
        self._terminate(CLOSE_PROTOCOL_ERROR, str(err))

    # Operations (for the caller)

    def subscribe(self, device_id: DeviceIdT | str, topic: str) -> bool:
        """Send a sub frame for the device & (plaintext) topic.

        The session is retargeted, so any later connection subscribes to it too.

        :return: True if the frame was handed to the transport.
        :raises ProtocolFsmError: If the hello has not yet been acknowledged.
        """
        self._context.sub_sent()
        self._session.retarget(device_id, topic)
        return self.send_object(sub_frame(self._session.client_id, device_id, topic))

    def send(self, data: str) -> bool:
        """Send a (text) frame, if the transport is open.

        :return: True if the frame was handed to the transport, False if dropped.
        :raises TransportNotConnected: If not open, and strict_send is set.
        """
        transport = self._transport
        if (
            transport is None
            or self.phase is Phase.CLOSED
            or not transport.is_open()
        ):
            self._session.stats.frames_dropped += 1
            _LOGGER.debug("%s: Dropping send - transport not open: %s", self, data)
            if self._strict_send:
                raise TransportNotConnected(f"{self}: Transport is not open")
            return False

        transport.write_frame(data)
        self._session.stats.frames_sent += 1
        return True

    def send_object(self, value: Any) -> bool:
        """Send an object, serialized as a JSON text frame."""
        return self.send(encode_frame(value))

    def _send_internal(self, value: Any) -> bool:
        try:
            return self.send_object(value)
        except TransportError as err:
            self.error_received(err)
            return False

    def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Close the connection (idempotent): no further frames are processed."""
        if self.phase is not Phase.CLOSED:
            self._closed_by_caller = True
        self._terminate(code, reason)

    def _terminate(self, code: int, reason: str) -> None:
        if self.phase is Phase.CLOSED:
            return

        _LOGGER.info("%s: Closing connection (code=%s, reason=%r)", self, code, reason)
        self._context.connection_lost()
        if self._transport is not None:
            self._transport.close(code, reason)
        invoke_handler(self._sink.on_close, code, reason)

    # Courtesy waiters

    async def wait_for_connection_made(
        self, timeout: float | None = None
    ) -> TransportInterface:
        """A courtesy function to wait until connection_made() has been invoked.

        Will raise TransportError if isn't connected within timeout seconds.
        """
        try:
            return await asyncio.wait_for(
                asyncio.shield(self._wait_connection_made), timeout
            )
        except TimeoutError as err:
            raise TransportError(
                f"Transport did not bind to Protocol within {timeout} secs"
            ) from err

    async def wait_for_connection_lost(
        self, timeout: float | None = None
    ) -> tuple[int | None, str]:
        """A courtesy function to wait until connection_lost() has been invoked.

        Returns the close code & reason. Will raise TransportError if the
        connection isn't lost within timeout seconds.
        """
        try:
            return await asyncio.wait_for(
                asyncio.shield(self._wait_connection_lost), timeout
            )
        except TimeoutError as err:
            raise TransportError(
                f"Transport did not unbind from Protocol within {timeout} secs"
            ) from err
