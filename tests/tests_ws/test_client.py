#!/usr/bin/env python3
"""Test the NetFieldProxyClient (and its reconnection supervisor)."""

import asyncio
import json
from collections.abc import Callable
from typing import Any
from unittest.mock import Mock

import pytest

from netfield_ws import (
    ClientConfig,
    EventSink,
    NetFieldProxyClient,
    Phase,
    ProtocolError,
    ReconnectFailed,
    ServerErrorFrame,
    TransportConnectFailed,
    TransportNotConnected,
    TransportSourceInvalid,
)
from netfield_ws.transport import CallbackTransport

DEVICE_ID = "D1"
TOPIC = "/t"
AUTHORIZATION = "Bearer X"


def _mock_sink() -> EventSink:
    return EventSink(
        on_pub_message=Mock(),
        on_error=Mock(),
        on_close=Mock(),
        on_unexpected_message=Mock(),
    )


def _config(**kwargs: Any) -> ClientConfig:
    kwargs.setdefault("hello_timeout", 2.0)
    kwargs.setdefault("sub_timeout", 2.0)
    kwargs.setdefault("reconnect_interval", 0.01)
    return ClientConfig(**kwargs)


def _scripted_constructor(script: list[str], calls: list[Any]) -> Callable[..., Any]:
    """Return a transport constructor that fails, or goes active then drops.

    The last step of the script is repeated, as required.
    """

    async def constructor(protocol: Any, endpoint: str, **kwargs: Any) -> Any:
        step = script[min(len(calls), len(script) - 1)]
        calls.append(protocol)

        if step == "fail":
            raise TransportConnectFailed("Connection refused")

        transport = CallbackTransport(protocol, Mock(), autostart=True)
        transport.receive_frame('{"type":"hello"}')
        transport.receive_frame('{"type":"sub"}')
        asyncio.get_running_loop().call_soon(
            transport.remote_close, 1001, "going away"
        )
        return transport

    return constructor


async def test_invalid_endpoint() -> None:
    with pytest.raises(TransportSourceInvalid):
        NetFieldProxyClient("https://api.netfield.io", AUTHORIZATION, DEVICE_ID, TOPIC)


async def test_send_before_start() -> None:
    """Test sends before a connection is made are dropped (or raise, if strict)."""
    client = NetFieldProxyClient(
        "wss://api.netfield.io", AUTHORIZATION, DEVICE_ID, TOPIC
    )

    assert client.phase is Phase.CONNECTING
    assert client.send('{"type":"foo"}') is False
    assert client.subscribe("D2", "/u") is False

    client = NetFieldProxyClient(
        "wss://api.netfield.io",
        AUTHORIZATION,
        DEVICE_ID,
        TOPIC,
        config=ClientConfig(strict_send=True),
    )
    with pytest.raises(TransportNotConnected):
        client.send_object({"type": "foo"})


async def test_listen(virtual_proxy: Any, wait_until: Callable[..., Any]) -> None:
    """Test the handshake, the heartbeat and the pub messages, end to end."""
    sink = _mock_sink()
    client = NetFieldProxyClient(
        virtual_proxy.url,
        AUTHORIZATION,
        DEVICE_ID,
        TOPIC,
        handlers=sink,
        config=_config(),
    )

    await client.start()
    await client.wait_for_active(timeout=2)
    assert client.is_active

    await wait_until(lambda: sink.on_pub_message.call_count == len(virtual_proxy.pubs))
    await wait_until(lambda: len(virtual_proxy.frames_of_type("ping")) == 1)

    assert [c.args[0] for c in sink.on_pub_message.call_args_list] == virtual_proxy.pubs

    hello, sub = virtual_proxy.received[:2]
    assert hello["auth"] == {"headers": {"authorization": AUTHORIZATION}}
    assert hello["version"] == "2"
    assert sub["path"] == "/devices/D1/netfieldproxy/L3Q="
    assert hello["id"] == sub["id"] == client.client_id

    assert virtual_proxy.frames_of_type("ping") == [
        {"type": "ping", "id": client.client_id}
    ]
    assert client.stats.pings_answered == 1

    client.close()
    client.close()
    await asyncio.wait_for(client.wait_closed(), 2)

    sink.on_close.assert_called_once_with(1000, "")
    sink.on_error.assert_not_called()
    assert client.phase is Phase.CLOSED
    assert len(virtual_proxy.connections) == 1


async def test_context_manager(virtual_proxy: Any) -> None:
    sink = _mock_sink()

    async with NetFieldProxyClient(
        virtual_proxy.url,
        AUTHORIZATION,
        DEVICE_ID,
        TOPIC,
        handlers=sink,
        config=_config(),
    ) as client:
        await client.wait_for_active(timeout=2)

    assert client.phase is Phase.CLOSED
    sink.on_close.assert_called_once()


async def test_wait_for_active_timeout(virtual_proxy: Any) -> None:
    virtual_proxy.ignore_hello = True

    client = NetFieldProxyClient(
        virtual_proxy.url,
        AUTHORIZATION,
        DEVICE_ID,
        TOPIC,
        handlers=_mock_sink(),
        config=_config(hello_timeout=0),
    )
    await client.start()

    with pytest.raises(ProtocolError):
        await client.wait_for_active(timeout=0.1)

    assert client.phase is Phase.AWAITING_HELLO_ACK

    client.close()
    await asyncio.wait_for(client.wait_closed(), 2)


async def test_reconnect_after_server_close(
    virtual_proxy: Any, wait_until: Callable[..., Any]
) -> None:
    """Test a new connection (with a new client id) follows a close by the server."""
    virtual_proxy.close_after_sub = (1001, "going away")
    sink = _mock_sink()

    client = NetFieldProxyClient(
        virtual_proxy.url,
        AUTHORIZATION,
        DEVICE_ID,
        TOPIC,
        handlers=sink,
        config=_config(),
    )
    await client.start()

    await wait_until(lambda: len(virtual_proxy.frames_of_type("hello")) >= 2)

    client.close()
    await asyncio.wait_for(client.wait_closed(), 2)

    ids = [f["id"] for f in virtual_proxy.frames_of_type("hello")]
    assert len(set(ids)) == len(ids)
    assert sink.on_close.call_args_list[0].args == (1001, "going away")


async def test_rejected_hello(virtual_proxy: Any) -> None:
    """Test an error ack is reported, and no reconnection if it is disabled."""
    virtual_proxy.reject_hello = "Unauthorized"
    sink = _mock_sink()

    client = NetFieldProxyClient(
        virtual_proxy.url,
        AUTHORIZATION,
        DEVICE_ID,
        TOPIC,
        handlers=sink,
        config=_config(max_reconnect_attempts=0),
    )
    await client.start()
    await asyncio.wait_for(client.wait_closed(), 2)

    data, err = sink.on_error.call_args_list[0].args
    assert json.loads(data) == {
        "type": "hello",
        "id": client.client_id,
        "payload": {"error": "Unauthorized"},
    }
    assert isinstance(err, ServerErrorFrame)
    assert err.error == "Unauthorized"

    sink.on_close.assert_called_once_with(1008, "Unauthorized")
    assert not any(
        isinstance(c.args[1], ReconnectFailed) for c in sink.on_error.call_args_list
    )
    assert len(virtual_proxy.connections) == 1
    assert client.phase is Phase.CLOSED


async def test_give_up_after_max_attempts() -> None:
    """Test the client gives up after too many consecutive failed connections."""
    calls: list[Any] = []
    sink = _mock_sink()

    client = NetFieldProxyClient(
        "wss://api.netfield.io",
        AUTHORIZATION,
        DEVICE_ID,
        TOPIC,
        handlers=sink,
        config=_config(max_reconnect_attempts=2),
        transport_constructor=_scripted_constructor(["fail"], calls),
    )
    await client.start()
    await asyncio.wait_for(client.wait_closed(), 2)

    assert len(calls) == 3  # the first attempt, then two retries

    errors = [c.args for c in sink.on_error.call_args_list]
    assert [type(e) for _, e in errors] == (
        [TransportConnectFailed] * 3 + [ReconnectFailed]
    )
    assert [raw for raw, _ in errors] == [None] * 4
    assert [c.args[0] for c in sink.on_close.call_args_list] == [1006] * 3


async def test_failures_reset_once_active() -> None:
    """Test a connection that went active resets the count of failures."""
    calls: list[Any] = []
    sink = _mock_sink()

    client = NetFieldProxyClient(
        "wss://api.netfield.io",
        AUTHORIZATION,
        DEVICE_ID,
        TOPIC,
        handlers=sink,
        config=_config(max_reconnect_attempts=1),
        transport_constructor=_scripted_constructor(["fail", "active", "fail"], calls),
    )
    await client.start()
    await asyncio.wait_for(client.wait_closed(), 2)

    # fail (1), active (back to 1), fail (2: gives up); without the reset, the
    # client would have given up after the active connection
    assert len(calls) == 3
    assert [p.was_active for p in calls] == [False, True, False]
    assert isinstance(sink.on_error.call_args.args[1], ReconnectFailed)


async def test_close_stops_reconnecting() -> None:
    """Test a close during the backoff delay stops any further attempts."""
    calls: list[Any] = []
    sink = _mock_sink()

    client = NetFieldProxyClient(
        "wss://api.netfield.io",
        AUTHORIZATION,
        DEVICE_ID,
        TOPIC,
        handlers=sink,
        config=_config(reconnect_interval=30.0),
        transport_constructor=_scripted_constructor(["fail"], calls),
    )
    await client.start()
    await asyncio.sleep(0.05)

    client.close()
    await asyncio.wait_for(client.wait_closed(), 1)

    assert len(calls) == 1
    assert not any(
        isinstance(c.args[1], ReconnectFailed) for c in sink.on_error.call_args_list
    )
    assert client.phase is Phase.CLOSED


async def test_close_before_first_connection() -> None:
    """Test a close, before any connection is attempted, is still reported."""
    calls: list[Any] = []
    sink = _mock_sink()

    client = NetFieldProxyClient(
        "wss://api.netfield.io",
        AUTHORIZATION,
        DEVICE_ID,
        TOPIC,
        handlers=sink,
        config=_config(),
        transport_constructor=_scripted_constructor(["active"], calls),
    )
    await client.start()
    client.close()
    client.close()
    await asyncio.wait_for(client.wait_closed(), 1)

    assert calls == []
    sink.on_close.assert_called_once_with(1000, "")
    sink.on_error.assert_not_called()
    assert client.phase is Phase.CLOSED


async def test_error_handler_exception_on_give_up() -> None:
    """Test an exception from the error handler does not break the supervisor."""
    calls: list[Any] = []
    on_error = Mock(side_effect=RuntimeError("handler failed"))
    sink = EventSink(on_error=on_error, on_close=Mock())

    client = NetFieldProxyClient(
        "wss://api.netfield.io",
        AUTHORIZATION,
        DEVICE_ID,
        TOPIC,
        handlers=sink,
        config=_config(max_reconnect_attempts=1),
        transport_constructor=_scripted_constructor(["fail"], calls),
    )
    await client.start()
    await asyncio.wait_for(client.wait_closed(), 2)

    assert len(calls) == 2
    assert on_error.call_count == 3  # two failed connections, then giving up
    assert isinstance(on_error.call_args.args[1], ReconnectFailed)
    assert client.phase is Phase.CLOSED


async def test_subscribe_persists_across_reconnect(
    wait_until: Callable[..., Any],
) -> None:
    """Test a reconnection subscribes to the most recently subscribed topic."""
    transports: list[CallbackTransport] = []
    writers: list[Mock] = []

    async def constructor(protocol: Any, endpoint: str, **kwargs: Any) -> Any:
        writers.append(Mock())
        transport = CallbackTransport(protocol, writers[-1], autostart=True)
        transport.receive_frame('{"type":"hello"}')
        transports.append(transport)
        return transport

    client = NetFieldProxyClient(
        "wss://api.netfield.io",
        AUTHORIZATION,
        DEVICE_ID,
        TOPIC,
        handlers=_mock_sink(),
        config=_config(),
        transport_constructor=constructor,
    )
    await client.start()
    await wait_until(lambda: len(transports) == 1)

    transports[0].receive_frame('{"type":"sub"}')
    assert client.is_active
    assert client.subscribe("D2", "/u") is True

    transports[0].remote_close(1001, "going away")
    await wait_until(lambda: len(transports) == 2)

    sub = json.loads(writers[1].call_args_list[1].args[0])
    assert sub["type"] == "sub"
    assert sub["path"] == "/devices/D2/netfieldproxy/L3U="

    client.close()
    await asyncio.wait_for(client.wait_closed(), 2)
