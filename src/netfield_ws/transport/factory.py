#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - Factory for frame transports."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeAlias

from ..interfaces import TransportInterface
from .base import TransportConfig
from .websocket import WebSocketTransport, validate_endpoint

if TYPE_CHECKING:
    from ..interfaces import ProtocolInterface

_LOGGER = logging.getLogger(__name__)

NetFieldTransportT: TypeAlias = TransportInterface
TransportConstructorT: TypeAlias = Callable[..., Awaitable[NetFieldTransportT]]


async def transport_factory(
    protocol: ProtocolInterface,
    endpoint: str,
    /,
    *,
    config: TransportConfig,
    transport_constructor: TransportConstructorT | None = None,
    extra: dict[str, Any] | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> NetFieldTransportT:
    """Create, connect and return a transport for the endpoint.

    The protocol's connection_made() will have been invoked before this returns.

    :param protocol: The protocol instance that will use this transport.
    :type protocol: ProtocolInterface
    :param endpoint: The WebSocket URI, e.g. wss://api.netfield.io
    :type endpoint: str
    :param config: Extracted setup configuration for transports.
    :type config: TransportConfig
    :param transport_constructor: Custom async callable to create a transport.
    :type transport_constructor: TransportConstructorT | None, optional
    :param extra: Extra configuration options, defaults to None.
    :type extra: dict[str, Any] | None, optional
    :param loop: Asyncio event loop, defaults to None.
    :type loop: asyncio.AbstractEventLoop | None, optional
    :return: A connected transport.
    :rtype: NetFieldTransportT
    :raises exc.TransportSourceInvalid: If the endpoint is invalid.
    :raises exc.TransportConnectFailed: If the WebSocket could not be opened.
    """

    # If a constructor is provided, delegate entirely to it.
    if transport_constructor:
        _LOGGER.debug("transport_factory: Delegating to external transport_constructor")
        return await transport_constructor(
            protocol,
            endpoint,
            config=config,
            extra=extra,
            loop=loop,
        )

    transport = WebSocketTransport(
        validate_endpoint(endpoint),
        protocol,
        config=config,
        extra=extra,
        loop=loop,
    )
    await transport.connect()
    return transport
