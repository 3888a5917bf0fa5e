#!/usr/bin/env python3
"""A client for the netFIELD Proxy WebSocket (a nes-style relay server).

Operates at the protocol layer of: app - client - protocol - transport - WebSocket
"""

from __future__ import annotations

from .backoff import ReconnectPolicy
from .client import ClientConfig, NetFieldProxyClient
from .const import MsgType, Phase
from .exceptions import (
    FrameDecodeError,
    HandshakeTimeout,
    NetFieldException,
    ProtocolError,
    ProtocolFsmError,
    ReconnectFailed,
    ServerErrorFrame,
    TransportConnectFailed,
    TransportError,
    TransportNotConnected,
    TransportSourceInvalid,
)
from .frame import Frame, sub_path
from .handlers import EventSink
from .session import ConnectionStats, SessionIdentity

__version__ = "0.1.0"

__all__ = [
    "ClientConfig",
    "ConnectionStats",
    "EventSink",
    "Frame",
    "FrameDecodeError",
    "HandshakeTimeout",
    "MsgType",
    "NetFieldException",
    "NetFieldProxyClient",
    "Phase",
    "ProtocolError",
    "ProtocolFsmError",
    "ReconnectFailed",
    "ReconnectPolicy",
    "ServerErrorFrame",
    "SessionIdentity",
    "TransportConnectFailed",
    "TransportError",
    "TransportNotConnected",
    "TransportSourceInvalid",
    "sub_path",
]
