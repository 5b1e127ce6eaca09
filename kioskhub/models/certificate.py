"""Certificates, tokens, access rules and integrity checks of devices."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


def _rfc3339(moment: datetime) -> str:
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    if offset is None:
        return text
    seconds = int(offset.total_seconds())
    if seconds == 0:
        return text + "Z"
    sign = "+" if seconds > 0 else "-"
    hours, remainder = divmod(abs(seconds), 3600)
    return f"{text}{sign}{hours:02d}:{remainder // 60:02d}"


@dataclass
class DeviceCertificate:
    """An X.509 certificate issued to a device."""

    id: str
    device_id: str
    certificate_pem: str
    serial_number: str
    issued_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None
    revoked_reason: str = ""


@dataclass
class RefreshToken:
    """A stored refresh token, kept only as a hash."""

    id: str
    device_id: str
    token_hash: str
    issued_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None
    previous_token_hash: str = ""


@dataclass
class TokenPair:
    """An access token with its refresh token."""

    access_token: str
    refresh_token: str
    expires_at: datetime
    token_type: str

    def to_dict(self) -> dict[str, str]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": _rfc3339(self.expires_at),
            "token_type": self.token_type,
        }


@dataclass
class DeviceACL:
    """An access-control rule for a device's broker topics."""

    id: str
    device_id: str
    permission: str
    action: str
    topic: str
    priority: int = 0
    created_at: datetime | None = None


@dataclass
class IntegrityCheck:
    """The record of one platform integrity verification."""

    id: str
    device_id: str
    request_hash: str
    device_recognition_verdict: str = ""
    app_recognition_verdict: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    checked_at: datetime | None = None


class IntegrityVerdict(str, Enum):
    MEETS_DEVICE_INTEGRITY = "MEETS_DEVICE_INTEGRITY"
    MEETS_BASIC_INTEGRITY = "MEETS_BASIC_INTEGRITY"
    MEETS_STRONG_INTEGRITY = "MEETS_STRONG_INTEGRITY"
    NO_INTEGRITY = "NO_INTEGRITY"