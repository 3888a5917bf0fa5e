#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - Interfaces for the protocol stack."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .frame import Frame
    from .typing import FrameDataT


class TransportInterface(ABC):
    """Interface for the (WebSocket) Transport layer."""

    @abstractmethod
    def close(self, code: int | None = None, reason: str = "") -> None:
        """Close the transport (idempotent)."""

    @abstractmethod
    def get_extra_info(self, name: str, default: Any = None) -> Any:
        """Get extra information about the transport."""

    @abstractmethod
    def is_open(self) -> bool:
        """Return True if frames can be sent."""

    @abstractmethod
    def write_frame(self, frame: str) -> None:
        """Write a (text) frame, in order, without waiting for it to be sent."""


class ProtocolInterface(ABC):
    """Interface for the Protocol layer (the receiver of transport events)."""

    @abstractmethod
    def connection_made(self, transport: TransportInterface) -> None:
        """Called when the socket is open."""

    @abstractmethod
    def connection_lost(self, code: int | None, reason: str) -> None:
        """Called when the socket has closed (or failed to open)."""

    @abstractmethod
    def error_received(self, err: Exception) -> None:
        """Called when the transport reports an error."""

    @abstractmethod
    def frame_received(self, data: "FrameDataT") -> None:
        """Called when a frame is received."""


class StateMachineInterface(ABC):
    """Interface for the Protocol State Machine."""

    @abstractmethod
    def connection_made(self, transport: TransportInterface) -> None:
        """Called when a connection is made."""

    @abstractmethod
    def connection_lost(self) -> None:
        """Called when the connection is lost (or closed)."""

    @abstractmethod
    def frame_rcvd(self, frame: "Frame") -> None:
        """Called when a (valid, error-free) frame is received."""
