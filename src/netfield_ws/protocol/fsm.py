#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - the connection protocol finite state machine.

This module manages the phase transitions of a single connection: the hello/sub
handshake (each with a deadline), then answering pings and passing on pubs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Final, TypeAlias

from ..const import DEFAULT_HELLO_TIMEOUT, DEFAULT_SUB_TIMEOUT, MsgType, Phase
from ..exceptions import HandshakeTimeout, ProtocolFsmError
from ..interfaces import StateMachineInterface, TransportInterface

if TYPE_CHECKING:
    from ..frame import Frame
    from .core import NetFieldProtocol


_DBG_MAINTAIN_STATE_CHAIN: Final[bool] = False

_LOGGER = logging.getLogger(__name__)


class ProtocolContext(StateMachineInterface):
    """The context for the protocol finite state machine."""

    def __init__(
        self,
        protocol: NetFieldProtocol,
        /,
        *,
        hello_timeout: float = DEFAULT_HELLO_TIMEOUT,
        sub_timeout: float = DEFAULT_SUB_TIMEOUT,
    ) -> None:
        """Initialize the protocol state machine context.

        :param protocol: The protocol instance using this context.
        :type protocol: NetFieldProtocol
        :param hello_timeout: Timeout for the hello ack (0 for no timeout).
        :type hello_timeout: float
        :param sub_timeout: Timeout for the sub ack (0 for no timeout).
        :type sub_timeout: float
        """
        self._protocol = protocol
        self.hello_timeout = hello_timeout
        self.sub_timeout = sub_timeout

        self._loop = protocol._loop
        self._expiry_timer: asyncio.Task[None] | None = None
        self._state: _ProtocolStateT = None  # type: ignore[assignment]

        self.set_state(Connecting)

    def __repr__(self) -> str:
        return f"<ProtocolContext state={self._state.phase}>"

    @property
    def state(self) -> _ProtocolStateT:
        """Return the current state of the FSM."""
        return self._state

    @property
    def phase(self) -> Phase:
        """Return the phase of the current state."""
        return self._state.phase

    def set_state(self, state_class: _ProtocolStateClassT) -> None:
        """Transition the state machine to a new state.

        Any deadline of the old state is cancelled, and that of the new state (if
        it has one) is started.

        :param state_class: The new state class to transition to.
        :type state_class: _ProtocolStateClassT
        """

        async def expire_state_on_timeout(delay: float) -> None:
            await asyncio.sleep(delay)

            ack = "hello" if isinstance(self._state, AwaitingHelloAck) else "sub"
            _LOGGER.warning(
                f"Timeout expired waiting for {ack} ack: {self} (delay={delay})"
            )
            self._expiry_timer = None
            self._protocol._handshake_expired(
                HandshakeTimeout(f"No {ack} ack received within {delay} secs")
            )

        if self._expiry_timer is not None:
            self._expiry_timer.cancel("Changing state")
            self._expiry_timer = None

        prev_state = self._state
        self._state = state_class(self)

        _LOGGER.debug(
            "FSM state changed %s->%s (protocol=%s)",
            prev_state.phase if prev_state else None,
            self._state.phase,
            self._protocol,
        )

        if _DBG_MAINTAIN_STATE_CHAIN:
            setattr(self._state, "_prev_state", prev_state)  # noqa: B010

        if isinstance(self._state, AwaitingHelloAck):
            delay = self.hello_timeout
        elif isinstance(self._state, Subscribing):
            delay = self.sub_timeout
        else:
            delay = 0

        if delay > 0:
            self._expiry_timer = self._loop.create_task(
                expire_state_on_timeout(delay),
                name=f"ProtocolContext.expire({self._state.phase})",
            )

        self._protocol._phase_changed(self._state.phase)

    def connection_made(self, transport: TransportInterface) -> None:
        """Handle the transport connection being made."""
        self._state.connection_made()

    def connection_lost(self) -> None:
        """Handle the transport connection being lost (or closed)."""
        self._state.connection_lost()

    def frame_rcvd(self, frame: Frame) -> None:
        """Process a received (valid, error-free) frame."""
        self._state.frame_rcvd(frame)

    def sub_sent(self) -> None:
        """Check that an explicit (re-)subscription is allowed."""
        self._state.sub_sent()


class ProtocolStateBase:
    """The base class for the protocol finite state machine states."""

    phase: Phase

    def __init__(self, context: ProtocolContext) -> None:
        self._context = context

    def __repr__(self) -> str:
        return f"<ProtocolState state={self.__class__.__name__}>"

    @property
    def _protocol(self) -> NetFieldProtocol:
        return self._context._protocol

    def connection_made(self) -> None:
        """Do nothing, as (except for Connecting) we're already connected."""
        _LOGGER.warning("%s: Invalid state to make a connection", self._context)

    def connection_lost(self) -> None:
        """Transition to Closed, regardless of current state."""
        self._context.set_state(Closed)

    def frame_rcvd(self, frame: Frame) -> None:
        """Dispatch the frame according to its type."""
        if frame.type is MsgType.HELLO:
            self.hello_rcvd(frame)
        elif frame.type is MsgType.SUB:
            self.sub_rcvd(frame)
        elif frame.type is MsgType.PING:
            self.ping_rcvd(frame)
        elif frame.type is MsgType.PUB:
            self.pub_rcvd(frame)

    def _out_of_phase(self, frame: Frame) -> None:
        _LOGGER.warning(
            "%s: Invalid state to receive a %s frame (ignoring)",
            self._context,
            frame.type,
        )

    def hello_rcvd(self, frame: Frame) -> None:
        self._out_of_phase(frame)

    def sub_rcvd(self, frame: Frame) -> None:
        self._out_of_phase(frame)

    def ping_rcvd(self, frame: Frame) -> None:
        self._out_of_phase(frame)

    def pub_rcvd(self, frame: Frame) -> None:
        self._out_of_phase(frame)

    def sub_sent(self) -> None:
        """Raise an error as, by default, states cannot (re-)subscribe."""
        raise ProtocolFsmError(f"Invalid state to subscribe: {self._context}")


class Connecting(ProtocolStateBase):
    """The socket is not yet open."""

    phase = Phase.CONNECTING

    def connection_made(self) -> None:
        """Say hello (authenticate), then transition to AwaitingHelloAck."""
        self._protocol._send_hello()
        self._context.set_state(AwaitingHelloAck)

    def sub_sent(self) -> None:
        """Do nothing, the send will be dropped as the transport is not open."""


class AwaitingHelloAck(ProtocolStateBase):
    """The hello has been sent, and the hello ack is awaited."""

    phase = Phase.AWAITING_HELLO_ACK

    def hello_rcvd(self, frame: Frame) -> None:
        """Subscribe to the topic, then transition to Subscribing."""
        self._protocol._send_sub()
        self._context.set_state(Subscribing)


class Subscribing(ProtocolStateBase):
    """The sub has been sent, and the sub ack is awaited."""

    phase = Phase.SUBSCRIBING

    def sub_rcvd(self, frame: Frame) -> None:
        """Transition to Active."""
        self._context.set_state(Active)

    def ping_rcvd(self, frame: Frame) -> None:
        """Respond to the heartbeat (these are not held up by the sub ack)."""
        self._protocol._send_ping()

    def sub_sent(self) -> None:
        """Allow a re-subscription."""


class Active(ProtocolStateBase):
    """The subscription is active: answer pings and pass on pubs."""

    phase = Phase.ACTIVE

    def sub_rcvd(self, frame: Frame) -> None:
        """Do nothing (the ack of an explicit re-subscription)."""

    def ping_rcvd(self, frame: Frame) -> None:
        """Respond to the heartbeat."""
        self._protocol._send_ping()

    def pub_rcvd(self, frame: Frame) -> None:
        """Pass the message on to the publish handler."""
        self._protocol._pub_received(frame.message)

    def sub_sent(self) -> None:
        """Allow a re-subscription."""


class Closed(ProtocolStateBase):
    """The connection has closed (the terminal state)."""

    phase = Phase.CLOSED

    def connection_lost(self) -> None:
        """Do nothing, as we're already closed."""

    def frame_rcvd(self, frame: Frame) -> None:
        """Ignore all frames."""

    def sub_sent(self) -> None:
        """Do nothing, the send will be dropped as the transport is not open."""


_ProtocolStateT: TypeAlias = (
    Connecting | AwaitingHelloAck | Subscribing | Active | Closed
)
_ProtocolStateClassT: TypeAlias = (
    type[Connecting]
    | type[AwaitingHelloAck]
    | type[Subscribing]
    | type[Active]
    | type[Closed]
)
