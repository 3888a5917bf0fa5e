#!/usr/bin/env python3
"""Test the event sink, its default handlers, and how handlers are invoked."""

import logging
from unittest.mock import Mock

import pytest

from netfield_ws.exceptions import ServerErrorFrame, TransportError
from netfield_ws.handlers import EventSink, invoke_handler, log_error


def test_from_handlers_uses_defaults() -> None:
    on_error = Mock()

    sink = EventSink.from_handlers(on_error=on_error)

    assert sink.on_error is on_error
    assert sink == EventSink(on_error=on_error)


def test_invoke_handler() -> None:
    handler = Mock()

    invoke_handler(handler, 1000, "")

    handler.assert_called_once_with(1000, "")


def test_invoke_handler_contains_exception(caplog: pytest.LogCaptureFixture) -> None:
    """Test an exception raised by a handler is logged, and not propagated."""
    handler = Mock(side_effect=RuntimeError("handler failed"))

    with caplog.at_level(logging.ERROR):
        invoke_handler(handler, None, TransportError("boom"))

    handler.assert_called_once()
    assert "handler failed" in caplog.text


def test_log_error(caplog: pytest.LogCaptureFixture) -> None:
    """Test the default error handler logs the frame, if there is one."""
    raw = '{"type":"hello","payload":{"error":"Unauthorized"}}'

    with caplog.at_level(logging.ERROR):
        log_error(raw, ServerErrorFrame("Server returned an error", raw))
        log_error(None, TransportError("Connection refused"))

    assert raw in caplog.records[0].getMessage()
    assert "Connection refused" in caplog.records[1].getMessage()
