#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - frame transports.

Operates at the frame layer of: app - protocol - frame - socket

"""

from __future__ import annotations

from .base import TransportConfig as TransportConfig
from .callback import CallbackTransport as CallbackTransport
from .factory import (
    NetFieldTransportT as NetFieldTransportT,
    TransportConstructorT as TransportConstructorT,
    transport_factory as transport_factory,
)
from .websocket import (
    WebSocketTransport as WebSocketTransport,
    validate_endpoint as validate_endpoint,
)

__all__ = [
    "CallbackTransport",
    "NetFieldTransportT",
    "TransportConfig",
    "TransportConstructorT",
    "WebSocketTransport",
    "transport_factory",
    "validate_endpoint",
]
