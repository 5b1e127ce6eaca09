"""Commands sent to devices, their results and their history records."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from kioskhub.models.certificate import _rfc3339

_ZERO_TIME = "0001-01-01T00:00:00Z"
_RFC3339_PATTERN = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|z|[+-]\d{2}:\d{2})"
)


def _format_time(moment: datetime | None) -> str:
    """Format a timestamp as RFC 3339; a missing one becomes the zero time."""
    return _ZERO_TIME if moment is None else _rfc3339(moment)


def _parse_time(value: Any) -> datetime | None:
    """Parse an RFC 3339 timestamp; null and the zero time give None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")
    match = _RFC3339_PATTERN.fullmatch(value)
    if match is None:
        raise ValueError(f"invalid RFC 3339 timestamp: {value!r}")
    year, month, day, hour, minute, second = (int(part) for part in match.groups()[:6])
    fraction, zone = match.group(7), match.group(8)
    microsecond = int((fraction or "").ljust(6, "0")[:6])
    if zone in ("Z", "z"):
        offset = timedelta(0)
    else:
        sign = 1 if zone[0] == "+" else -1
        offset = sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6]))
    if (year, month, day, hour, minute, second, microsecond) == (1, 1, 1, 0, 0, 0, 0) and not offset:
        return None
    try:
        return datetime(
            year, month, day, hour, minute, second, microsecond,
            tzinfo=timezone(offset),
        )
    except ValueError as exc:
        raise ValueError(f"invalid RFC 3339 timestamp: {value!r}") from exc


def _require_mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _take(data: Mapping[str, Any], key: str, kind: type, default: Any) -> Any:
    """Read ``key`` from decoded JSON, checking its type; null or absent gives ``default``."""
    value = data.get(key)
    if value is None:
        return default
    if kind is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif kind is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif kind is dict:
        if isinstance(value, dict):
            return dict(value)
    elif kind is list:
        if isinstance(value, list):
            return list(value)
    elif isinstance(value, kind):
        return value
    raise ValueError(
        f"field {key!r}: expected {kind.__name__}, got {type(value).__name__}"
    )


def _enum_value(value: Enum | str) -> str:
    return value.value if isinstance(value, Enum) else value


class CommandType(str, Enum):
    SET_BRIGHTNESS = "setBrightness"
    SET_SCREEN = "setScreen"
    SET_VOLUME = "setVolume"
    NAVIGATE = "navigate"
    RELOAD = "reload"
    REBOOT = "reboot"
    CLEAR_CACHE = "clearCache"
    UPDATE_APP = "updateApp"
    SCREENSHOT = "screenshot"
    GET_LOGS = "getLogs"
    GET_WIFI_INFO = "getWifiInfo"
    INSTALL_APP = "installApp"
    UNINSTALL_APP = "uninstallApp"
    SET_ROTATION = "setRotation"
    SET_KIOSK_MODE = "setKioskMode"
    PLAY_SOUND = "playSound"
    STOP_SOUND = "stopSound"
    SPEAK = "speak"
    WAKE_UP = "wakeUp"
    SLEEP = "sleep"
    SET_PIN = "setPin"


class CommandStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    CANCELED = "canceled"


@dataclass
class Command:
    """A command sent to a device; ``timeout`` is in seconds."""

    id: str
    type: CommandType | str
    timestamp: datetime | None = None
    params: dict[str, Any] = field(default_factory=dict)
    timeout: int = 0
    priority: int = 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": _enum_value(self.type),
            "timestamp": _format_time(self.timestamp),
        }
        if self.params:
            data["params"] = dict(self.params)
        if self.timeout:
            data["timeout"] = self.timeout
        if self.priority:
            data["priority"] = self.priority
        return data


@dataclass
class CommandResult:
    """The outcome of a command; ``duration`` is in milliseconds."""

    command_id: str = ""
    success: bool = False
    result: dict[str, Any] = field(default_factory=dict)
    error: str = ""
    timestamp: datetime | None = None
    duration: int = 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"commandId": self.command_id, "success": self.success}
        if self.result:
            data["result"] = dict(self.result)
        if self.error:
            data["error"] = self.error
        data["timestamp"] = _format_time(self.timestamp)
        if self.duration:
            data["duration"] = self.duration
        return data

    @classmethod
    def from_dict(cls, data: Any) -> CommandResult:
        """Build a result from decoded JSON; raise ValueError on mistyped fields."""
        data = _require_mapping(data)
        return cls(
            command_id=_take(data, "commandId", str, ""),
            success=_take(data, "success", bool, False),
            result=_take(data, "result", dict, {}),
            error=_take(data, "error", str, ""),
            timestamp=_parse_time(data.get("timestamp")),
            duration=_take(data, "duration", int, 0),
        )


@dataclass
class CommandTarget:
    """The devices a command goes to."""

    device_ids: list[str] = field(default_factory=list)
    group_ids: list[str] = field(default_factory=list)
    all: bool = False


@dataclass
class DeviceCommandResult:
    """The outcome of a command on one device."""

    device_id: str
    success: bool = False
    result: CommandResult | None = None
    error: str = ""


@dataclass
class BatchCommandResult:
    """The outcome of a command sent to several devices."""

    batch_id: str
    total_count: int = 0
    success_count: int = 0
    failed_count: int = 0
    results: list[DeviceCommandResult] = field(default_factory=list)
    created_at: datetime | None = None


@dataclass
class CommandRecord:
    """A command kept in the history."""

    id: str
    tenant_id: str
    device_id: str
    command_type: CommandType | str
    command_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    result: dict[str, Any] = field(default_factory=dict)
    status: str = CommandStatus.PENDING.value
    created_at: datetime | None = None
    completed_at: datetime | None = None
    duration: int = 0
    error_message: str = ""