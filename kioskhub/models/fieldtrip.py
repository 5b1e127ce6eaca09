"""Field-trip devices, groups, GPS reports, broadcasts and queued commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class FieldTripDevice:
    """A tablet managed for a field trip; times are Unix seconds."""

    id: str = ""
    name: str = ""
    group_id: str = ""
    api_key_hash: str = ""
    hub_url: str = ""
    last_seen: int | None = None
    last_lat: float | None = None
    last_lng: float | None = None
    status: str = ""
    signing_pubkey: str = ""
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the public view; the API key hash is never included."""
        return {
            "id": self.id,
            "name": self.name,
            "group_id": self.group_id,
            "hub_url": self.hub_url,
            "last_seen": self.last_seen,
            "last_lat": self.last_lat,
            "last_lng": self.last_lng,
            "status": self.status,
            "signing_pubkey": self.signing_pubkey,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class FieldTripGroup:
    """A group of field-trip tablets sharing a join key."""

    id: str = ""
    name: str = ""
    group_key: str = ""
    broadcast_sound: str = ""
    update_policy: str = ""
    created_at: int = 0
    updated_at: int = 0


@dataclass
class BindRequest:
    """What a tablet sends after scanning its binding code."""

    device_id: str = ""
    group_key: str = ""
    api_key: str = ""
    hub_url: str = ""


@dataclass
class BindResponse:
    """What a tablet receives after binding, including broker details."""

    device_id: str = ""
    group_id: str = ""
    group_name: str = ""
    device_name: str = ""
    signing_pubkey: str = ""
    broadcast_sound: str = ""
    update_policy: str = ""
    mqtt_broker_url: str = ""
    mqtt_port: int = 0


@dataclass
class GPSReport:
    """A location fix sent by a tablet."""

    device_id: str = ""
    lat: float = 0.0
    lng: float = 0.0
    accuracy: float = 0.0
    timestamp: int = 0


@dataclass
class CommandPoll:
    """Pending instructions returned to a polling tablet."""

    whitelist: list[str] = field(default_factory=list)
    ota_url: str = ""
    broadcast: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.whitelist:
            data["whitelist"] = list(self.whitelist)
        if self.ota_url:
            data["ota_url"] = self.ota_url
        if self.broadcast:
            data["broadcast"] = self.broadcast
        return data


@dataclass
class Broadcast:
    """A message broadcast to a group, with delivery counts."""

    id: str = ""
    group_id: str = ""
    message: str = ""
    sound: str = ""
    created_by: str = ""
    created_at: int = 0
    delivered_count: int = 0
    failed_count: int = 0


@dataclass
class PendingCommand:
    """A command queued for a tablet until it next polls."""

    id: str = ""
    device_id: str = ""
    command_type: str = ""
    payload: str = ""
    status: str = ""
    created_at: int = 0
    delivered_at: int | None = None


@dataclass
class FieldTripDeviceInfo:
    """System details reported by a tablet."""

    battery_level: int = 0
    battery_charging: bool = False
    imei: str = ""
    phone_number: str = ""
    serial_number: str = ""
    android_version: str = ""
    app_version: str = ""
    free_storage: int = 0
    total_storage: int = 0
    free_memory: int = 0
    total_memory: int = 0


@dataclass
class DeviceConfig:
    """Kiosk-mode settings of a tablet."""

    kiosk_mode: bool = False
    allowed_apps: list[str] = field(default_factory=list)
    screen_locked: bool = False
    permissions: list[str] = field(default_factory=list)