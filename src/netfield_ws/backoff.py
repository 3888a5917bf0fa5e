#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - the reconnection (backoff) policy."""

from __future__ import annotations

from dataclasses import dataclass

from .const import (
    DEFAULT_MAX_RECONNECT_ATTEMPTS,
    DEFAULT_MAX_RECONNECT_INTERVAL,
    DEFAULT_RECONNECT_BACKOFF,
    DEFAULT_RECONNECT_INTERVAL,
)

_MAX_EXPONENT = 32


@dataclass(frozen=True)
class ReconnectPolicy:
    """An exponential, bounded delay between consecutive failed connections.

    A max_attempts of 0 disables reconnection altogether.
    """

    interval: float = DEFAULT_RECONNECT_INTERVAL
    backoff: float = DEFAULT_RECONNECT_BACKOFF
    max_interval: float = DEFAULT_MAX_RECONNECT_INTERVAL
    max_attempts: int = DEFAULT_MAX_RECONNECT_ATTEMPTS

    def __post_init__(self) -> None:
        if self.interval < 0 or self.max_interval < 0:
            raise ValueError("Reconnect intervals must be non-negative")
        if self.backoff < 1.0:
            raise ValueError("Reconnect backoff must be at least 1.0")
        if self.max_attempts < 0:
            raise ValueError("Reconnect attempts must be non-negative")

    def delay(self, failures: int) -> float:
        """Return the delay (secs) before the next attempt, after n failures."""
        if failures < 1:
            return 0.0
        exponent = min(failures - 1, _MAX_EXPONENT)  # avoid float overflow
        return min(self.interval * self.backoff**exponent, self.max_interval)

    def should_retry(self, failures: int) -> bool:
        """Return True if another attempt is allowed after n consecutive failures."""
        return failures <= self.max_attempts
