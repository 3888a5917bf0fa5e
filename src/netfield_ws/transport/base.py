#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - Base classes for frame transports."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from .. import exceptions as exc
from ..const import (
    DEFAULT_CLOSE_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MAX_FRAME_SIZE,
)
from ..interfaces import TransportInterface

if TYPE_CHECKING:
    from ..interfaces import ProtocolInterface
    from ..typing import FrameDataT

_LOGGER = logging.getLogger(__name__)

# NOTE: All debug flags should be False for deployment to end-users
_DBG_FORCE_FRAME_LOGGING: Final[bool] = False


@dataclass
class TransportConfig:
    """Configuration parameters for the transports."""

    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    close_timeout: float = DEFAULT_CLOSE_TIMEOUT
    max_frame_size: int | None = DEFAULT_MAX_FRAME_SIZE
    log_all: bool = False


class _BaseTransport(TransportInterface):
    """Base class for all transports.

    A transport is used for a single connection: it reports the open event (once),
    then each frame as it is received, and finally the close event (once).
    """

    _protocol: ProtocolInterface
    _loop: asyncio.AbstractEventLoop

    def __init__(
        self,
        protocol: ProtocolInterface,
        /,
        *,
        config: TransportConfig,
        extra: dict[str, Any] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._protocol = protocol
        self._loop = loop or asyncio.get_running_loop()
        self._extra: dict[str, Any] = {} if extra is None else extra

        self._log_all = config.log_all

        self._opened: bool = False
        self._closing: bool = False
        self._lost: bool = False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._protocol})"

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """The asyncio event loop of this transport."""
        return self._loop

    def get_extra_info(self, name: str, default: Any = None) -> Any:
        """Get extra information about the transport."""
        return self._extra.get(name, default)

    def is_closing(self) -> bool:
        """Return True if the transport is closing or has closed."""
        return self._closing

    def is_open(self) -> bool:
        """Return True if the transport is open (and not closing)."""
        return self._opened and not self._closing

    def _log_frame(self, direction: str, data: FrameDataT) -> None:
        if _DBG_FORCE_FRAME_LOGGING:
            _LOGGER.warning("%s: %s", direction, data)
        elif self._log_all and _LOGGER.getEffectiveLevel() <= logging.INFO:
            _LOGGER.info("%s: %s", direction, data)
        else:
            _LOGGER.debug("%s: %s", direction, data)

    def _make_connection(self) -> None:
        """Register the (open) connection with the protocol."""
        if self._opened:
            return
        self._opened = True
        self._protocol.connection_made(self)

    def _frame_read(self, data: FrameDataT) -> None:
        """Pass the frame to the protocol, unless the transport has closed."""
        if self._lost:
            _LOGGER.debug("%s: Dropping received frame (transport closed)", self)
            return

        self._log_frame("Rx", data)

        try:
            self._protocol.frame_received(data)
        except exc.NetFieldException as err:
            _LOGGER.error("%s < exception from protocol layer: %s", data, err)

    def _error_read(self, err: Exception) -> None:
        """Pass a transport error to the protocol."""
        if self._lost:
            return
        self._protocol.error_received(err)

    def _connection_lost(self, code: int | None, reason: str) -> None:
        """Inform the protocol that this transport has closed (only once)."""
        if self._lost:
            return
        self._lost = self._closing = True
        self._protocol.connection_lost(code, reason)

    def close(self, code: int | None = None, reason: str = "") -> None:
        """Close the transport gracefully (a no-op if already closing)."""
        if self._closing:
            return
        self._closing = True
        self._close(code, reason)

    def _close(self, code: int | None, reason: str) -> None:
        """Release the underlying socket."""
        raise NotImplementedError("_close() not implemented here")

    def write_frame(self, frame: str) -> None:
        """Transmit a frame via the underlying socket."""
        if not self.is_open():
            raise exc.TransportNotConnected("Transport is not open")

        self._log_frame("Tx", frame)
        self._write_frame(frame)

    def _write_frame(self, frame: str) -> None:
        """Write the frame to the underlying socket."""
        raise NotImplementedError("_write_frame() not implemented here")
