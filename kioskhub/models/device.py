"""Registered kiosk devices, their details, registration and groups."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


@dataclass
class Device:
    """A registered kiosk device."""

    id: str = ""
    tenant_id: str = ""
    device_key: str = ""
    name: str = ""
    status: str = ""
    device_info: dict[str, Any] = field(default_factory=dict)
    security_policy_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_seen_at: datetime | None = None


class DeviceStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    DISABLED = "disabled"
    DELETED = "deleted"


@dataclass
class DeviceInfo:
    """Hardware and software details reported by a device."""

    brand: str = ""
    model: str = ""
    android_version: str = ""
    sdk_version: int = 0
    serial_number: str = ""
    imei: str = ""
    wifi_mac: str = ""
    battery_level: int = 0
    battery_charging: bool = False
    screen_on: bool = False
    screen_brightness: int = 0
    volume: int = 0
    app_version: str = ""
    free_storage: int = 0
    total_storage: int = 0
    free_memory: int = 0
    total_memory: int = 0

    def to_map(self) -> dict[str, Any]:
        """Return the set fields for JSON storage; the two flags are always present."""
        result: dict[str, Any] = {}
        for name in ("brand", "model", "android_version"):
            if getattr(self, name):
                result[name] = getattr(self, name)
        if self.sdk_version > 0:
            result["sdk_version"] = self.sdk_version
        for name in ("serial_number", "imei", "wifi_mac"):
            if getattr(self, name):
                result[name] = getattr(self, name)
        if self.battery_level > 0:
            result["battery_level"] = self.battery_level
        result["battery_charging"] = self.battery_charging
        result["screen_on"] = self.screen_on
        if self.screen_brightness > 0:
            result["screen_brightness"] = self.screen_brightness
        if self.volume > 0:
            result["volume"] = self.volume
        if self.app_version:
            result["app_version"] = self.app_version
        for name in ("free_storage", "total_storage", "free_memory", "total_memory"):
            if getattr(self, name) > 0:
                result[name] = getattr(self, name)
        return result


@dataclass
class DeviceRegistration:
    """A device's request to register."""

    tenant_id: str
    device_key: str
    csr_pem: str
    integrity_token: str = ""
    device_info: DeviceInfo = field(default_factory=DeviceInfo)
    nonce: str = ""


@dataclass
class DeviceCredentials:
    """Credentials handed to a device after registration."""

    device_id: str
    access_token: str
    refresh_token: str
    expires_at: datetime
    certificate_pem: str
    serial_number: str
    cert_expires_at: datetime


@dataclass
class DeviceGroup:
    """A group of devices, possibly nested in a parent group."""

    id: str = ""
    tenant_id: str = ""
    name: str = ""
    parent_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None