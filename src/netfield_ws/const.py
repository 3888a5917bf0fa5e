#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - constants."""

from __future__ import annotations

from enum import StrEnum
from typing import Final

PROTOCOL_VERSION: Final[str] = "2"  # nes protocol version sent in the hello

SUB_PATH_TEMPLATE: Final[str] = "/devices/{device_id}/netfieldproxy/{topic_b64}"

# WebSocket close codes (RFC 6455)
CLOSE_NORMAL: Final[int] = 1000
CLOSE_PROTOCOL_ERROR: Final[int] = 1002
CLOSE_ABNORMAL: Final[int] = 1006

DEFAULT_CONNECT_TIMEOUT: Final[float] = 10.0
DEFAULT_CLOSE_TIMEOUT: Final[float] = 5.0
DEFAULT_MAX_FRAME_SIZE: Final[int] = 2**20

DEFAULT_HELLO_TIMEOUT: Final[float] = 10.0
DEFAULT_SUB_TIMEOUT: Final[float] = 10.0

DEFAULT_RECONNECT_INTERVAL: Final[float] = 5.0
DEFAULT_RECONNECT_BACKOFF: Final[float] = 1.5
DEFAULT_MAX_RECONNECT_INTERVAL: Final[float] = 300.0  # 5 minutes max
DEFAULT_MAX_RECONNECT_ATTEMPTS: Final[int] = 10

# extra info keys, see: TransportInterface.get_extra_info()
SZ_ENDPOINT: Final = "endpoint"
SZ_REMOTE_ADDRESS: Final = "remote_address"

# config keys, see: schemas.py
SZ_CLOSE_TIMEOUT: Final = "close_timeout"
SZ_CONNECT_TIMEOUT: Final = "connect_timeout"
SZ_HELLO_TIMEOUT: Final = "hello_timeout"
SZ_LOG_ALL: Final = "log_all"
SZ_MAX_FRAME_SIZE: Final = "max_frame_size"
SZ_MAX_RECONNECT_ATTEMPTS: Final = "max_reconnect_attempts"
SZ_MAX_RECONNECT_INTERVAL: Final = "max_reconnect_interval"
SZ_RECONNECT_BACKOFF: Final = "reconnect_backoff"
SZ_RECONNECT_INTERVAL: Final = "reconnect_interval"
SZ_STRICT_SEND: Final = "strict_send"
SZ_SUB_TIMEOUT: Final = "sub_timeout"
SZ_TRANSPORT: Final = "transport"

# frame keys
SZ_AUTH: Final = "auth"
SZ_AUTHORIZATION: Final = "authorization"
SZ_ERROR: Final = "error"
SZ_HEADERS: Final = "headers"
SZ_ID: Final = "id"
SZ_MESSAGE: Final = "message"
SZ_PATH: Final = "path"
SZ_PAYLOAD: Final = "payload"
SZ_TYPE: Final = "type"
SZ_VERSION: Final = "version"


class MsgType(StrEnum):
    """The types of frame exchanged with the relay server."""

    HELLO = "hello"
    SUB = "sub"
    PING = "ping"
    PUB = "pub"
    OTHER = "other"  # anything else (not a wire value)


class Phase(StrEnum):
    """The phases of a single connection."""

    CONNECTING = "connecting"
    AWAITING_HELLO_ACK = "awaiting_hello_ack"
    SUBSCRIBING = "subscribing"
    ACTIVE = "active"
    CLOSED = "closed"
