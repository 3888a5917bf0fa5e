#!/usr/bin/env python3
"""Test the config schemas, and ClientConfig.from_dict()."""

import pytest
import voluptuous as vol

from netfield_ws.client import ClientConfig
from netfield_ws.const import DEFAULT_MAX_FRAME_SIZE, DEFAULT_MAX_RECONNECT_ATTEMPTS
from netfield_ws.schemas import SCH_CLIENT_CONFIG, SCH_TRANSPORT_CONFIG
from netfield_ws.transport import TransportConfig


def test_client_config_defaults() -> None:
    """Test that an empty dict gives the default config."""
    assert ClientConfig.from_dict({}) == ClientConfig()


def test_client_config_from_dict() -> None:
    config = ClientConfig.from_dict(
        {
            "hello_timeout": 2,
            "max_reconnect_attempts": 3,
            "strict_send": True,
            "transport": {"connect_timeout": 1.5, "log_all": True},
        }
    )

    assert config.hello_timeout == 2.0
    assert config.max_reconnect_attempts == 3
    assert config.strict_send is True
    assert config.transport == TransportConfig(connect_timeout=1.5, log_all=True)
    assert config.transport.max_frame_size == DEFAULT_MAX_FRAME_SIZE


def test_client_config_reconnect_policy() -> None:
    config = ClientConfig(reconnect_interval=1.0, reconnect_backoff=2.0)
    policy = config.reconnect_policy

    assert policy.delay(3) == 4.0
    assert policy.max_attempts == DEFAULT_MAX_RECONNECT_ATTEMPTS


@pytest.mark.parametrize(
    "config",
    [
        {"hello_timeout": -1},
        {"reconnect_backoff": 0.5},
        {"reconnect_backoff": 11},
        {"max_reconnect_attempts": -1},
        {"max_reconnect_attempts": 1.5},
        {"strict_send": "yes"},
        {"unknown_key": True},
        {"transport": {"connect_timeout": 0}},
        {"transport": {"unknown_key": True}},
    ],
)
def test_client_config_invalid(config: dict) -> None:
    with pytest.raises(vol.Invalid):
        SCH_CLIENT_CONFIG(config)


def test_transport_config_max_frame_size() -> None:
    assert SCH_TRANSPORT_CONFIG({"max_frame_size": None})["max_frame_size"] is None

    with pytest.raises(vol.Invalid):
        SCH_TRANSPORT_CONFIG({"max_frame_size": 0})
