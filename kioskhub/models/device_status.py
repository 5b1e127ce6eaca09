"""Status, events and telemetry published by devices over the broker."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Mapping, TypeVar

from kioskhub.models.command import _format_time, _parse_time, _require_mapping, _take

_T = TypeVar("_T")


def _encode(obj: Any, time_attr: str, keys: Mapping[str, str]) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for item in fields(obj):
        key = keys[item.name]
        value = getattr(obj, item.name)
        if item.name == time_attr:
            data[key] = _format_time(value)
        elif isinstance(value, dict):
            data[key] = dict(value)
        else:
            data[key] = value
    return data


def _decode(
    cls: type[_T],
    data: Any,
    time_attr: str,
    keys: Mapping[str, str],
    kinds: Mapping[str, type],
) -> _T:
    data = _require_mapping(data)
    values: dict[str, Any] = {}
    for item in fields(cls):  # type: ignore[arg-type]
        key = keys[item.name]
        if item.name == time_attr:
            values[item.name] = _parse_time(data.get(key))
        else:
            kind = kinds[item.name]
            values[item.name] = _take(data, key, kind, kind())
    return cls(**values)


@dataclass
class DeviceStatusInfo:
    """The latest state of a device, published as a retained message."""

    device_id: str = ""
    tenant_id: str = ""
    updated_at: datetime | None = None
    battery_level: int = 0
    battery_charging: bool = False
    screen_on: bool = False
    screen_brightness: int = 0
    volume: int = 0
    wifi_ssid: str = ""
    wifi_strength: int = 0
    ip_address: str = ""
    current_url: str = ""
    loading: bool = False
    storage_used_mb: int = 0
    storage_total_mb: int = 0
    app_version: str = ""
    uptime: int = 0

    def to_dict(self) -> dict[str, Any]:
        return _encode(self, "updated_at", _STATUS_KEYS)

    @classmethod
    def from_dict(cls, data: Any) -> DeviceStatusInfo:
        """Build a status from decoded JSON; raise ValueError on mistyped fields."""
        return _decode(cls, data, "updated_at", _STATUS_KEYS, _STATUS_KINDS)


_STATUS_KEYS = {
    "device_id": "deviceId",
    "tenant_id": "tenantId",
    "updated_at": "timestamp",
    "battery_level": "batteryLevel",
    "battery_charging": "batteryCharging",
    "screen_on": "screenOn",
    "screen_brightness": "screenBrightness",
    "volume": "volume",
    "wifi_ssid": "wifiSsid",
    "wifi_strength": "wifiStrength",
    "ip_address": "ipAddress",
    "current_url": "currentUrl",
    "loading": "loading",
    "storage_used_mb": "storageUsedMb",
    "storage_total_mb": "storageTotalMb",
    "app_version": "appVersion",
    "uptime": "uptime",
}

_STATUS_KINDS = {
    "device_id": str,
    "tenant_id": str,
    "battery_level": int,
    "battery_charging": bool,
    "screen_on": bool,
    "screen_brightness": int,
    "volume": int,
    "wifi_ssid": str,
    "wifi_strength": int,
    "ip_address": str,
    "current_url": str,
    "loading": bool,
    "storage_used_mb": int,
    "storage_total_mb": int,
    "app_version": str,
    "uptime": int,
}


@dataclass
class DeviceEvent:
    """A discrete event reported by a device."""

    device_id: str = ""
    tenant_id: str = ""
    type: str = ""
    timestamp: datetime | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return _encode(self, "timestamp", _EVENT_KEYS)

    @classmethod
    def from_dict(cls, data: Any) -> DeviceEvent:
        """Build an event from decoded JSON; raise ValueError on mistyped fields."""
        return _decode(cls, data, "timestamp", _EVENT_KEYS, _EVENT_KINDS)


_EVENT_KEYS = {
    "device_id": "deviceId",
    "tenant_id": "tenantId",
    "type": "type",
    "timestamp": "timestamp",
    "data": "data",
}

_EVENT_KINDS = {"device_id": str, "tenant_id": str, "type": str, "data": dict}


@dataclass
class DeviceTelemetry:
    """High-frequency performance figures of a device."""

    device_id: str = ""
    tenant_id: str = ""
    timestamp: datetime | None = None
    cpu_usage: float = 0.0
    memory_usage: float = 0.0
    network_tx: int = 0
    network_rx: int = 0
    temperature: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return _encode(self, "timestamp", _TELEMETRY_KEYS)

    @classmethod
    def from_dict(cls, data: Any) -> DeviceTelemetry:
        """Build telemetry from decoded JSON; raise ValueError on mistyped fields."""
        return _decode(cls, data, "timestamp", _TELEMETRY_KEYS, _TELEMETRY_KINDS)


_TELEMETRY_KEYS = {
    "device_id": "deviceId",
    "tenant_id": "tenantId",
    "timestamp": "timestamp",
    "cpu_usage": "cpuUsage",
    "memory_usage": "memoryUsage",
    "network_tx": "networkTx",
    "network_rx": "networkRx",
    "temperature": "temperature",
}

_TELEMETRY_KINDS = {
    "device_id": str,
    "tenant_id": str,
    "cpu_usage": float,
    "memory_usage": float,
    "network_tx": int,
    "network_rx": int,
    "temperature": float,
}