#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - the event sink (callbacks owned by the caller)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .typing import (
    CloseHandlerT,
    ErrorHandlerT,
    FrameDataT,
    PubHandlerT,
    PubMessageT,
    UnexpectedHandlerT,
)

_LOGGER = logging.getLogger(__name__)


def log_pub_message(message: PubMessageT) -> None:
    _LOGGER.info("Received a netFIELD proxy message: %s", message)


def log_error(raw: FrameDataT | None, err: Exception) -> None:
    if raw is None:
        _LOGGER.error("An error occurred: %s", err)
    else:
        _LOGGER.error("An error occurred: %s (frame: %s)", err, raw)


def log_close(code: int | None, reason: str) -> None:
    _LOGGER.info("Connection to WebSocket closed: code=%s, reason=%r", code, reason)


def log_unexpected_message(raw: FrameDataT) -> None:
    _LOGGER.warning("Received an unexpected message: %s", raw)


@dataclass
class EventSink:
    """The callbacks invoked by the protocol; each defaults to logging.

    The callbacks are expected to be cheap and non-blocking: they are invoked from
    the event loop, in the order the frames were received.

    The error handler is passed the raw frame that carried the error (a server
    error, or an undecodable frame), or None otherwise, and then the exception.
    """

    on_pub_message: PubHandlerT = log_pub_message
    on_error: ErrorHandlerT = log_error
    on_close: CloseHandlerT = log_close
    on_unexpected_message: UnexpectedHandlerT = log_unexpected_message

    @classmethod
    def from_handlers(
        cls,
        *,
        on_pub_message: PubHandlerT | None = None,
        on_error: ErrorHandlerT | None = None,
        on_close: CloseHandlerT | None = None,
        on_unexpected_message: UnexpectedHandlerT | None = None,
    ) -> EventSink:
        """Create an event sink, using the defaults for any handler that is None."""
        return cls(
            on_pub_message=on_pub_message or log_pub_message,
            on_error=on_error or log_error,
            on_close=on_close or log_close,
            on_unexpected_message=on_unexpected_message or log_unexpected_message,
        )


def invoke_handler(handler: Callable[..., None], *args: Any) -> None:
    """Invoke a callback; any exception it raises is logged, not propagated."""
    try:
        handler(*args)
    except Exception as err:
        _LOGGER.exception("Exception from handler %s: %s", handler, err)
