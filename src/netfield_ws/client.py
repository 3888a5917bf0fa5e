#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - the client (with its reconnection supervisor)."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

from .backoff import ReconnectPolicy
from .const import (
    CLOSE_NORMAL,
    DEFAULT_HELLO_TIMEOUT,
    DEFAULT_MAX_RECONNECT_ATTEMPTS,
    DEFAULT_MAX_RECONNECT_INTERVAL,
    DEFAULT_RECONNECT_BACKOFF,
    DEFAULT_RECONNECT_INTERVAL,
    DEFAULT_SUB_TIMEOUT,
    SZ_TRANSPORT,
    Phase,
)
from .exceptions import (
    ProtocolError,
    ReconnectFailed,
    TransportError,
    TransportNotConnected,
)
from .handlers import EventSink, invoke_handler
from .protocol import NetFieldProtocol, protocol_factory
from .schemas import SCH_CLIENT_CONFIG
from .session import ConnectionStats, SessionIdentity
from .transport import (
    TransportConfig,
    TransportConstructorT,
    transport_factory,
    validate_endpoint,
)
from .typing import ClientIdT, DeviceIdT

_LOGGER = logging.getLogger(__name__)


@dataclass
class ClientConfig:
    """Configuration parameters for the client (and its transports)."""

    hello_timeout: float = DEFAULT_HELLO_TIMEOUT
    sub_timeout: float = DEFAULT_SUB_TIMEOUT
    reconnect_interval: float = DEFAULT_RECONNECT_INTERVAL
    reconnect_backoff: float = DEFAULT_RECONNECT_BACKOFF
    max_reconnect_interval: float = DEFAULT_MAX_RECONNECT_INTERVAL
    max_reconnect_attempts: int = DEFAULT_MAX_RECONNECT_ATTEMPTS
    strict_send: bool = False
    transport: TransportConfig = field(default_factory=TransportConfig)

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> ClientConfig:
        """Create a config from a dict, which is validated (may raise vol.Invalid)."""
        config = SCH_CLIENT_CONFIG(config)
        transport = TransportConfig(**config.pop(SZ_TRANSPORT))
        return cls(transport=transport, **config)

    @property
    def reconnect_policy(self) -> ReconnectPolicy:
        return ReconnectPolicy(
            interval=self.reconnect_interval,
            backoff=self.reconnect_backoff,
            max_interval=self.max_reconnect_interval,
            max_attempts=self.max_reconnect_attempts,
        )


class NetFieldProxyClient:
    """WebSocket client to communicate with the netFIELD Proxy WebSocket.

    Authenticates (hello), subscribes (sub) to a single topic of a device, and
    then answers the server's heartbeat pings whilst passing the pub messages to
    the event sink.

    If the connection fails or is closed by the server, a new connection (with a
    new client id) is attempted after a bounded, exponentially increasing delay.
    The client gives up (reporting ReconnectFailed to the error handler) after too
    many consecutive failures; a connection that became active resets the count.

    Usage:
        client = NetFieldProxyClient(endpoint, authorization, device_id, topic)
        await client.start()
        ...
        client.close()
        await client.wait_closed()
    """

    def __init__(
        self,
        endpoint: str,
        authorization: str,
        device_id: DeviceIdT | str,
        topic: str,
        /,
        *,
        handlers: EventSink | None = None,
        config: ClientConfig | None = None,
        transport_constructor: TransportConstructorT | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """Create the client (it will not connect until started).

        :param endpoint: WebSocket endpoint, e.g. wss://api.netfield.io/v1
        :param authorization: Access token or API key.
        :param device_id: The id of the device running netFIELD Proxy.
        :param topic: The topic to subscribe to (plaintext, sent as base64).
        :param handlers: The event sink (callbacks), defaults to logging them all.
        :param config: The client config, defaults to ClientConfig().
        :param transport_constructor: Custom async callable to create a transport.
        :param loop: Asyncio event loop, defaults to the running loop.
        :raises TransportSourceInvalid: If the endpoint is not a ws(s):// URI.
        """
        if transport_constructor is None:
            validate_endpoint(endpoint)

        self._endpoint = endpoint
        self._session = SessionIdentity(DeviceIdT(device_id), topic, authorization)
        self._sink = handlers or EventSink()
        self.config = config or ClientConfig()

        self._policy = self.config.reconnect_policy
        self._transport_constructor = transport_constructor
        self._loop = loop

        self._protocol: NetFieldProtocol | None = None
        self._supervisor: asyncio.Task[None] | None = None

        self._closing = False
        self._stop_event = asyncio.Event()
        self._active = asyncio.Event()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self._endpoint}, "
            f"device_id={self._session.device_id}, phase={self.phase})"
        )

    async def __aenter__(self) -> NetFieldProxyClient:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
        await self.wait_closed()

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def session(self) -> SessionIdentity:
        return self._session

    @property
    def client_id(self) -> ClientIdT:
        """Return the client id (of the current connection)."""
        return self._session.client_id

    @property
    def stats(self) -> ConnectionStats:
        """Return the counters of the current connection."""
        return self._session.stats

    @property
    def phase(self) -> Phase:
        """Return the phase of the current connection."""
        if self._protocol is not None:
            return self._protocol.phase
        return Phase.CLOSED if self._closing else Phase.CONNECTING

    @property
    def is_active(self) -> bool:
        return self.phase is Phase.ACTIVE

    async def start(self) -> None:
        """Start connecting (and reconnecting), in the background."""
        if self._supervisor is not None or self._closing:
            raise RuntimeError("The client can only be started once")

        self._loop = self._loop or asyncio.get_running_loop()
        self._supervisor = self._loop.create_task(
            self._supervise(), name="NetFieldProxyClient._supervise()"
        )

    async def wait_for_active(self, timeout: float | None = None) -> None:
        """A courtesy function to wait until the subscription is active.

        Will raise ProtocolError if it isn't active within timeout seconds.
        """
        try:
            await asyncio.wait_for(self._active.wait(), timeout)
        except TimeoutError as err:
            raise ProtocolError(
                f"Subscription did not become active within {timeout} secs"
            ) from err

    async def wait_closed(self) -> None:
        """Wait until the client has stopped (closed, or given up reconnecting)."""
        if self._supervisor is not None:
            await asyncio.shield(self._supervisor)

    def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Close the connection, and stop reconnecting (idempotent)."""
        if self._closing:
            return
        self._closing = True
        self._stop_event.set()

        _LOGGER.info("%s: Closing (code=%s, reason=%r)", self, code, reason)
        if self._protocol is not None:
            self._protocol.close(code, reason)
        else:  # the supervisor will not now make a connection
            invoke_handler(self._sink.on_close, code, reason)

    def subscribe(self, device_id: DeviceIdT | str, topic: str) -> bool:
        """Subscribe to the (plaintext) topic of a device.

        The device & topic replace those of the session, so that any reconnection
        subscribes to them (rather than to those the client was created with).

        :return: True if the sub frame was handed to the transport.
        :raises ProtocolFsmError: If the hello has not yet been acknowledged.
        """
        if self._protocol is None:
            self._session.retarget(device_id, topic)
            return self._not_connected()
        return self._protocol.subscribe(device_id, topic)

    def send(self, data: str) -> bool:
        """Send a string (a raw frame); a no-op returning False if not connected."""
        if self._protocol is None:
            return self._not_connected()
        return self._protocol.send(data)

    def send_object(self, value: Any) -> bool:
        """Send an object as JSON; a no-op returning False if not connected."""
        if self._protocol is None:
            return self._not_connected()
        return self._protocol.send_object(value)

    def _not_connected(self) -> bool:
        if self.config.strict_send:
            raise TransportNotConnected(f"{self}: Not connected")
        return False

    def _phase_changed(self, phase: Phase) -> None:
        if phase is Phase.ACTIVE:
            self._active.set()
        else:
            self._active.clear()

    async def _supervise(self) -> None:
        """Connect, and keep reconnecting until closed (or too many failures)."""
        failures = 0

        while not self._closing:
            protocol = await self._connect_once()

            if self._closing or protocol.closed_by_caller:
                break

            failures = 1 if protocol.was_active else failures + 1

            if not self._policy.should_retry(failures):
                self._give_up(failures)
                break

            delay = self._policy.delay(failures)
            _LOGGER.info(
                f"Scheduling reconnect in {delay} seconds (failures={failures})"
            )
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), delay)

            if not self._closing:
                _LOGGER.info("Attempting reconnection...")

        self._closing = True
        self._active.clear()

    async def _connect_once(self) -> NetFieldProtocol:
        """Make a single connection, and return its protocol once it has closed."""
        self._session.renew()

        protocol = protocol_factory(
            self._session,
            self._sink,
            hello_timeout=self.config.hello_timeout,
            sub_timeout=self.config.sub_timeout,
            strict_send=self.config.strict_send,
            phase_handler=self._phase_changed,
        )
        self._protocol = protocol

        try:
            await transport_factory(
                protocol,
                self._endpoint,
                config=self.config.transport,
                transport_constructor=self._transport_constructor,
                loop=self._loop,
            )
        except TransportError as err:
            protocol.connection_failed(err)
            return protocol

        await protocol.wait_for_connection_lost()
        return protocol

    def _give_up(self, failures: int) -> None:
        if self._policy.max_attempts == 0:
            _LOGGER.info("%s: Reconnection is disabled, not reconnecting", self)
            return

        err = ReconnectFailed(
            f"Gave up after {failures} consecutive failed connections"
        )
        _LOGGER.error("%s: %s", self, err)
        invoke_handler(self._sink.on_error, None, err)
