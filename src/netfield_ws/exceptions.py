#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - exceptions within the protocol/transport layer."""

from __future__ import annotations

from typing import Any


class _NetFieldBaseError(Exception):
    """Base class for all netfield_ws exceptions."""

    HINT: str | None = None

    def __init__(self, *args: object) -> None:
        super().__init__(*args)
        self.message: str | None = args[0] if args else None  # type: ignore[assignment]

    def __str__(self) -> str:
        if self.message and self.HINT:
            return f"{self.message} (hint: {self.HINT})"
        if self.message:
            return self.message
        if self.HINT:
            return f"Hint: {self.HINT}"
        return ""


class NetFieldException(_NetFieldBaseError):
    """Base class for all netfield_ws exceptions."""


########################################################################################
# Errors at/below the protocol/transport layer, incl. frame decoding


class ProtocolError(NetFieldException):
    """An error occurred when exchanging frames with the relay server."""


class ProtocolFsmError(ProtocolError):
    """The protocol FSM was asked to do something invalid for its phase."""


class HandshakeTimeout(ProtocolError):
    """The server did not acknowledge the hello/sub frame in time."""


class _RawFrameError(ProtocolError):
    """An error that relates to a single inbound frame."""

    def __init__(self, message: str, raw: Any) -> None:
        super().__init__(message)
        self.raw = raw


class FrameDecodeError(_RawFrameError):
    """The inbound frame is not a well-formed JSON object."""


class ServerErrorFrame(_RawFrameError):
    """The inbound frame carries a payload.error from the server."""

    HINT = "check the authorization, device id and topic"

    def __init__(self, message: str, raw: Any, error: Any = None) -> None:
        super().__init__(message, raw)
        self.error = error


class TransportError(NetFieldException):
    """An error when sending or receiving frames (bytes)."""


class TransportSourceInvalid(TransportError):
    """The endpoint does not exist/is invalid."""

    HINT = "the endpoint must be a ws:// or wss:// URI"


class TransportConnectFailed(TransportError):
    """The WebSocket could not be opened."""


class TransportNotConnected(TransportError):
    """A frame was sent while the WebSocket is not open."""


########################################################################################
# Errors above the protocol/transport layer


class ReconnectFailed(NetFieldException):
    """The client gave up after too many consecutive failed connections."""

    HINT = "check the endpoint is reachable and the authorization is valid"
