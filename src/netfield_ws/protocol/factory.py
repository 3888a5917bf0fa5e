#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - protocol factory.

A new protocol (and so a new state machine) is created for every connection.
"""

from __future__ import annotations

import logging

from ..const import DEFAULT_HELLO_TIMEOUT, DEFAULT_SUB_TIMEOUT
from ..handlers import EventSink
from ..session import SessionIdentity
from .core import NetFieldProtocol, PhaseHandlerT

_LOGGER = logging.getLogger(__name__)


def protocol_factory(
    session: SessionIdentity,
    sink: EventSink,
    /,
    *,
    hello_timeout: float = DEFAULT_HELLO_TIMEOUT,
    sub_timeout: float = DEFAULT_SUB_TIMEOUT,
    strict_send: bool = False,
    phase_handler: PhaseHandlerT | None = None,
) -> NetFieldProtocol:
    """Create and return a protocol for a single connection.

    Architecture: client -> protocol (phases) -> transport (frames) -> WebSocket
    - send frames via Protocol.send() / Protocol.send_object()
    - receive pub messages via the EventSink
    """
    if strict_send:
        _LOGGER.debug("NetFieldProtocol: Sends will raise when not connected")

    return NetFieldProtocol(
        session,
        sink,
        hello_timeout=hello_timeout,
        sub_timeout=sub_timeout,
        strict_send=strict_send,
        phase_handler=phase_handler,
    )
