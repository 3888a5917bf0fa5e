#!/usr/bin/env python3
"""netFIELD Proxy WebSocket client - nes-style frame decoder & builders.

Decode/classify an inbound frame (a frame that was received), and build the
outbound control frames (hello, sub and the ping response).
"""

from __future__ import annotations

import json
from base64 import b64encode
from typing import Any

from .const import (
    PROTOCOL_VERSION,
    SUB_PATH_TEMPLATE,
    SZ_AUTH,
    SZ_AUTHORIZATION,
    SZ_ERROR,
    SZ_HEADERS,
    SZ_ID,
    SZ_MESSAGE,
    SZ_PATH,
    SZ_PAYLOAD,
    SZ_TYPE,
    SZ_VERSION,
    MsgType,
)
from .exceptions import FrameDecodeError
from .typing import ClientIdT, DeviceIdT, FrameDataT

_KNOWN_TYPES = {t.value: t for t in MsgType if t is not MsgType.OTHER}


class Frame:
    """The Frame class (frames that were received).

    A frame is a JSON object with (at least) a type. Any frame may carry a
    payload.error, which takes precedence over its type.
    """

    def __init__(self, raw: FrameDataT, data: dict[str, Any], /) -> None:
        self.raw = raw
        self._data = data

        raw_type = data.get(SZ_TYPE)
        self.raw_type: Any = raw_type
        self.type: MsgType = (
            _KNOWN_TYPES.get(raw_type, MsgType.OTHER)
            if isinstance(raw_type, str)
            else MsgType.OTHER
        )

    def __repr__(self) -> str:
        return f"Frame(type={self.raw_type!r}, error={self.error!r})"

    def __str__(self) -> str:
        return self.raw if isinstance(self.raw, str) else repr(self.raw)

    @classmethod
    def from_raw(cls, raw: FrameDataT) -> Frame:
        """Create a frame from the data of a WebSocket message.

        :param raw: The text (or binary) data, as received.
        :type raw: FrameDataT
        :return: The decoded frame.
        :rtype: Frame
        :raises FrameDecodeError: If the data is not a JSON object.
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as err:  # incl. JSONDecodeError
            raise FrameDecodeError(f"Unable to decode frame: {err}", raw) from err

        if not isinstance(data, dict):
            raise FrameDecodeError(
                f"Frame is not an object: {type(data).__name__}", raw
            )
        return cls(raw, data)

    @property
    def data(self) -> dict[str, Any]:
        """Return the decoded JSON object."""
        return self._data

    @property
    def message(self) -> Any:
        """Return the message field (of a pub frame), if any."""
        return self._data.get(SZ_MESSAGE)

    @property
    def error(self) -> Any:
        """Return payload.error if it is truthy, otherwise None."""
        payload = self._data.get(SZ_PAYLOAD)
        if isinstance(payload, dict) and payload.get(SZ_ERROR):
            return payload[SZ_ERROR]
        return None

    @property
    def has_error(self) -> bool:
        """Return True if the frame is to be routed to the error path."""
        return self.error is not None


def encode_topic(topic: str) -> str:
    """Return the topic in the base64 form used on the wire."""
    return b64encode(topic.encode("utf-8")).decode("ascii")


def sub_path(device_id: DeviceIdT | str, topic: str) -> str:
    """Return the subscription path for a device's (plaintext) topic.

    e.g. ("D1", "/t") -> "/devices/D1/netfieldproxy/L3Q="
    """
    return SUB_PATH_TEMPLATE.format(device_id=device_id, topic_b64=encode_topic(topic))


def hello_frame(client_id: ClientIdT | str, authorization: str) -> dict[str, Any]:
    """Return a hello frame, which authenticates this client.

    See: https://github.com/hapijs/nes/blob/master/PROTOCOL.md#hello
    """
    return {
        SZ_TYPE: MsgType.HELLO.value,
        SZ_ID: client_id,
        SZ_VERSION: PROTOCOL_VERSION,
        SZ_AUTH: {SZ_HEADERS: {SZ_AUTHORIZATION: authorization}},
    }


def sub_frame(
    client_id: ClientIdT | str, device_id: DeviceIdT | str, topic: str
) -> dict[str, Any]:
    """Return a sub frame for the given device & (plaintext) topic."""
    return {
        SZ_TYPE: MsgType.SUB.value,
        SZ_ID: client_id,
        SZ_PATH: sub_path(device_id, topic),
    }


def ping_frame(client_id: ClientIdT | str) -> dict[str, Any]:
    """Return a heartbeat (keep-alive) ping response frame.

    See: https://github.com/hapijs/nes/blob/master/PROTOCOL.md#heartbeat
    """
    return {SZ_TYPE: MsgType.PING.value, SZ_ID: client_id}


def encode_frame(value: Any) -> str:
    """Serialize an object as a compact JSON text frame."""
    return json.dumps(value, separators=(",", ":"))
