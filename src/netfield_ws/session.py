#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - the session context.

The identity outlives any one connection, whilst the counters are reset whenever a
new connection is attempted (as is the client id).
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field, fields

from .typing import ClientIdT, DeviceIdT

_LOGGER = logging.getLogger(__name__)

_CLIENT_ID_NBYTES = 8


def new_client_id() -> ClientIdT:
    """Return a random, non-empty client id (for server-side correlation only)."""
    return ClientIdT(secrets.token_hex(_CLIENT_ID_NBYTES))


@dataclass
class ConnectionStats:
    """Counters scoped to a single connection."""

    frames_rcvd: int = 0
    frames_sent: int = 0
    frames_dropped: int = 0
    pings_answered: int = 0
    pubs_rcvd: int = 0
    errors_rcvd: int = 0

    def reset(self) -> None:
        for f in fields(self):
            setattr(self, f.name, 0)


@dataclass
class SessionIdentity:
    """The identity of a logical client: who it is, and what it subscribes to."""

    device_id: DeviceIdT
    topic: str
    authorization: str = field(repr=False)
    client_id: ClientIdT = field(default_factory=new_client_id)
    stats: ConnectionStats = field(default_factory=ConnectionStats, compare=False)

    def __post_init__(self) -> None:
        self.retarget(self.device_id, self.topic)

    def renew(self) -> ClientIdT:
        """Prepare the session for a new connection attempt.

        Generates a fresh client id and resets the connection counters.
        """
        self.client_id = new_client_id()
        self.stats.reset()
        _LOGGER.debug("Session renewed: client_id=%s", self.client_id)
        return self.client_id

    def retarget(self, device_id: DeviceIdT | str, topic: str) -> None:
        """Change the device & topic subscribed to (now, and after any reconnect)."""
        if not device_id:
            raise ValueError("A device id is required")
        if not topic:
            raise ValueError("A topic is required")
        self.device_id = DeviceIdT(device_id)
        self.topic = topic
