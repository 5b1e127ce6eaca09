"""Connection settings for the message broker."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import timedelta

_INT_PREFIX = re.compile(r"\s*([+-]?[0-9]+)")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass
class MqttConfig:
    """How to reach and authenticate with the broker."""

    broker_url: str = "localhost"
    port: int = 1883
    client_id: str = "freekiosk-hub"
    username: str = ""
    password: str = ""
    use_tls: bool = False
    keep_alive: timedelta = timedelta(seconds=60)
    clean_start: bool = False
    auto_reconnect: bool = True

    def broker_address(self) -> str:
        """Return ``host:port`` of the broker."""
        return f"{self.broker_url}:{self.port}"


def _get_env(key: str, default: str) -> str:
    return os.environ.get(key) or default


def _get_env_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    if value:
        match = _INT_PREFIX.match(value)
        if match is not None:
            number = int(match.group(1))
            if _INT64_MIN <= number <= _INT64_MAX:
                return number
    return default


def _get_env_bool(key: str, default: bool) -> bool:
    value = os.environ.get(key)
    if value:
        return value.lower() == "true" or value == "1"
    return default


def config_from_env() -> MqttConfig:
    """Build the broker settings from ``MQTT_*`` environment variables.

    Empty variables count as unset and leave the default in place.
    """
    return MqttConfig(
        broker_url=_get_env("MQTT_BROKER_URL", "localhost"),
        port=_get_env_int("MQTT_PORT", 1883),
        client_id=_get_env("MQTT_CLIENT_ID", "freekiosk-hub"),
        username=os.environ.get("MQTT_USERNAME", ""),
        password=os.environ.get("MQTT_PASSWORD", ""),
        use_tls=_get_env_bool("MQTT_USE_TLS", False),
        keep_alive=timedelta(seconds=60),
        clean_start=False,
        auto_reconnect=True,
    )