#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - schemas for the configuration."""

from __future__ import annotations

from typing import Any, Final

import voluptuous as vol

from .const import (
    DEFAULT_CLOSE_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_HELLO_TIMEOUT,
    DEFAULT_MAX_FRAME_SIZE,
    DEFAULT_MAX_RECONNECT_ATTEMPTS,
    DEFAULT_MAX_RECONNECT_INTERVAL,
    DEFAULT_RECONNECT_BACKOFF,
    DEFAULT_RECONNECT_INTERVAL,
    DEFAULT_SUB_TIMEOUT,
    SZ_CLOSE_TIMEOUT,
    SZ_CONNECT_TIMEOUT,
    SZ_HELLO_TIMEOUT,
    SZ_LOG_ALL,
    SZ_MAX_FRAME_SIZE,
    SZ_MAX_RECONNECT_ATTEMPTS,
    SZ_MAX_RECONNECT_INTERVAL,
    SZ_RECONNECT_BACKOFF,
    SZ_RECONNECT_INTERVAL,
    SZ_STRICT_SEND,
    SZ_SUB_TIMEOUT,
    SZ_TRANSPORT,
)

MAX_RECONNECT_ATTEMPTS: Final[int] = 1000
MAX_RECONNECT_BACKOFF: Final[float] = 10.0

# 0 means no timeout (for the handshake deadlines)
_SCH_SECONDS = vol.All(vol.Coerce(float), vol.Range(min=0))
_SCH_POSITIVE_SECONDS = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))

#
# 1/2: Schemas for the transport
SCH_TRANSPORT_CONFIG_DICT: Final[dict[vol.Optional, Any]] = {
    vol.Optional(SZ_CONNECT_TIMEOUT, default=DEFAULT_CONNECT_TIMEOUT): (
        _SCH_POSITIVE_SECONDS
    ),
    vol.Optional(SZ_CLOSE_TIMEOUT, default=DEFAULT_CLOSE_TIMEOUT): _SCH_SECONDS,
    vol.Optional(SZ_MAX_FRAME_SIZE, default=DEFAULT_MAX_FRAME_SIZE): vol.Any(
        None, vol.All(int, vol.Range(min=1))
    ),
    vol.Optional(SZ_LOG_ALL, default=False): bool,
}
SCH_TRANSPORT_CONFIG = vol.Schema(SCH_TRANSPORT_CONFIG_DICT, extra=vol.PREVENT_EXTRA)

#
# 2/2: Schemas for the client (the protocol, and the reconnection policy)
SCH_CLIENT_CONFIG_DICT: Final[dict[vol.Optional, Any]] = {
    vol.Optional(SZ_HELLO_TIMEOUT, default=DEFAULT_HELLO_TIMEOUT): _SCH_SECONDS,
    vol.Optional(SZ_SUB_TIMEOUT, default=DEFAULT_SUB_TIMEOUT): _SCH_SECONDS,
    vol.Optional(SZ_RECONNECT_INTERVAL, default=DEFAULT_RECONNECT_INTERVAL): (
        _SCH_SECONDS
    ),
    vol.Optional(SZ_RECONNECT_BACKOFF, default=DEFAULT_RECONNECT_BACKOFF): vol.All(
        vol.Coerce(float), vol.Range(min=1.0, max=MAX_RECONNECT_BACKOFF)
    ),
    vol.Optional(
        SZ_MAX_RECONNECT_INTERVAL, default=DEFAULT_MAX_RECONNECT_INTERVAL
    ): _SCH_SECONDS,
    vol.Optional(
        SZ_MAX_RECONNECT_ATTEMPTS, default=DEFAULT_MAX_RECONNECT_ATTEMPTS
    ): vol.All(int, vol.Range(min=0, max=MAX_RECONNECT_ATTEMPTS)),
    vol.Optional(SZ_STRICT_SEND, default=False): bool,
    vol.Optional(SZ_TRANSPORT, default=dict): SCH_TRANSPORT_CONFIG,
}
SCH_CLIENT_CONFIG = vol.Schema(SCH_CLIENT_CONFIG_DICT, extra=vol.PREVENT_EXTRA)
