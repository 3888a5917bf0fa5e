#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - typing."""

from collections.abc import Callable
from typing import Any, NewType, TypeAlias, TypedDict

# Core Types
ClientIdT = NewType("ClientIdT", str)
DeviceIdT = NewType("DeviceIdT", str)

FrameDataT: TypeAlias = str | bytes


class PubMessageT(TypedDict, total=False):
    """The message carried by a pub frame (forwarded verbatim)."""

    createdAt: int  # epoch, in milliseconds
    topic: str  # plaintext, not base64
    data: Any


# Event Sink callbacks
PubHandlerT: TypeAlias = Callable[[PubMessageT], None]
# the raw frame (None if the error did not arrive as a frame), then the exception
ErrorHandlerT: TypeAlias = Callable[[FrameDataT | None, Exception], None]
CloseHandlerT: TypeAlias = Callable[[int | None, str], None]
UnexpectedHandlerT: TypeAlias = Callable[[FrameDataT], None]
