#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - a virtual relay server used for testing."""

import asyncio
import json
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed

PUB_MESSAGES = [
    {"createdAt": 1700000000000, "topic": "/t", "data": {"seq": 0}},
    {"createdAt": 1700000001000, "topic": "/t", "data": {"seq": 1}},
]


class VirtualProxy:
    """A pseudo relay server that speaks (just enough of) the nes protocol.

    Acknowledges the hello & the sub, then sends a ping and the pub messages. The
    behaviour can be altered via the attributes (e.g. to reject the hello).
    """

    def __init__(self) -> None:
        self.url = ""
        self.received: list[dict[str, Any]] = []
        self.connections: list[ServerConnection] = []

        self.reject_hello: str | None = None  # the error to return
        self.ignore_hello = False
        self.close_after_sub: tuple[int, str] | None = None
        self.pubs: list[dict[str, Any]] = list(PUB_MESSAGES)

    def frames_of_type(self, msg_type: str) -> list[dict[str, Any]]:
        return [f for f in self.received if f.get("type") == msg_type]

    async def handler(self, ws: ServerConnection) -> None:
        self.connections.append(ws)
        try:
            async for data in ws:
                frame = json.loads(data)
                self.received.append(frame)
                await self._frame_rcvd(ws, frame)
        except ConnectionClosed:
            pass

    async def _frame_rcvd(self, ws: ServerConnection, frame: dict[str, Any]) -> None:
        if frame["type"] == "hello":
            if self.ignore_hello:
                return
            if self.reject_hello:
                error = {"error": self.reject_hello}
                await ws.send(_dumps("hello", frame["id"], payload=error))
                await ws.close(1008, self.reject_hello)
                return
            await ws.send(_dumps("hello", frame["id"]))

        elif frame["type"] == "sub":
            await ws.send(_dumps("sub", frame["id"], path=frame["path"]))
            await ws.send(_dumps("ping"))
            for message in self.pubs:
                await ws.send(_dumps("pub", path=frame["path"], message=message))
            if self.close_after_sub:
                await ws.close(*self.close_after_sub)


def _dumps(msg_type: str, msg_id: str | None = None, **kwargs: Any) -> str:
    frame: dict[str, Any] = {"type": msg_type, **kwargs}
    if msg_id is not None:
        frame["id"] = msg_id
    return json.dumps(frame)


@pytest.fixture
async def virtual_proxy() -> AsyncGenerator[VirtualProxy, None]:
    """Yield a VirtualProxy, listening on a random port of localhost."""
    proxy = VirtualProxy()
    async with serve(proxy.handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        proxy.url = f"ws://127.0.0.1:{port}"
        yield proxy


@pytest.fixture
def wait_until() -> Callable[..., Any]:
    """Return a courtesy function to wait until a condition is True."""

    async def _wait_until(condition: Callable[[], bool], timeout: float = 2.0) -> None:
        async with asyncio.timeout(timeout):
            while not condition():
                await asyncio.sleep(0.01)

    return _wait_until
