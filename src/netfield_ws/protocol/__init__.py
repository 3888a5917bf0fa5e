#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - the connection protocol package."""

from __future__ import annotations

from .core import NetFieldProtocol, PhaseHandlerT
from .factory import protocol_factory
from .fsm import ProtocolContext

__all__ = [
    "NetFieldProtocol",
    "PhaseHandlerT",
    "ProtocolContext",
    "protocol_factory",
]
