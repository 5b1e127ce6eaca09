"""Storage of registered devices and their group membership."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Any

from kioskhub.models.command import _enum_value
from kioskhub.models.device import Device, DeviceGroup
from kioskhub.repositories.report import _from_db_time, _to_db_time
from kioskhub.repositories.tablet import _fetch


class DeviceNotFoundError(LookupError):
    """No device matches the request."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _optional_time(moment: datetime | None) -> str | None:
    return None if moment is None else _to_db_time(moment)


def _load_json(raw: Any) -> dict[str, Any]:
    if isinstance(raw, bytes):
        raw = raw.decode()
    if raw is None or raw == "":
        return {}
    value = json.loads(raw)
    return dict(value) if isinstance(value, dict) else {}


def _to_device(row: dict[str, Any]) -> Device:
    return Device(
        id=row["id"],
        tenant_id=row["tenant_id"] or "",
        device_key=row["device_key"] or "",
        name=row["name"] or "",
        status=row["status"] or "",
        device_info=_load_json(row.get("device_info")),
        security_policy_id=row.get("security_policy_id"),
        created_at=_from_db_time(row.get("created_at")),
        updated_at=_from_db_time(row.get("updated_at")),
        last_seen_at=_from_db_time(row.get("last_seen_at")),
    )


def _to_group(row: dict[str, Any]) -> DeviceGroup:
    return DeviceGroup(
        id=row["id"],
        tenant_id=row.get("tenant_id") or "",
        name=row.get("name") or "",
        parent_id=row.get("parent_id"),
        metadata=_load_json(row.get("metadata")),
        created_at=_from_db_time(row.get("created_at")),
    )


def _status_filter(status: str) -> bool:
    return status not in ("", "all")


class DeviceRepository:
    """Devices kept in the ``devices`` table, groups in ``device_groups``."""

    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def create(self, device: Device) -> None:
        """Insert the device and fill in its creation and update times."""
        now = _now()
        with self._db:
            self._db.execute(
                "INSERT INTO devices (id, tenant_id, device_key, name, status, device_info, "
                "security_policy_id, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    device.id,
                    device.tenant_id,
                    device.device_key,
                    device.name,
                    _enum_value(device.status),
                    json.dumps(device.device_info),
                    device.security_policy_id,
                    _to_db_time(now),
                    _to_db_time(now),
                ),
            )
        stored = self.get_by_id(device.id)
        device.created_at = stored.created_at
        device.updated_at = stored.updated_at

    def _get_one(self, query: str, params: tuple[Any, ...], label: str) -> Device:
        rows = _fetch(self._db.execute(query, params))
        if not rows:
            raise DeviceNotFoundError(f"device not found: {label}")
        return _to_device(rows[0])

    def get_by_id(self, device_id: str) -> Device:
        return self._get_one("SELECT * FROM devices WHERE id = ?", (device_id,), device_id)

    def get_by_device_key(self, device_key: str) -> Device:
        return self._get_one(
            "SELECT * FROM devices WHERE device_key = ?", (device_key,), device_key
        )

    def get_by_tenant_and_key(self, tenant_id: str, device_key: str) -> Device:
        return self._get_one(
            "SELECT * FROM devices WHERE tenant_id = ? AND device_key = ?",
            (tenant_id, device_key),
            f"{tenant_id}/{device_key}",
        )

    def update(self, device: Device) -> None:
        """Store the editable fields and refresh ``updated_at``."""
        with self._db:
            cursor = self._db.execute(
                "UPDATE devices SET name = ?, status = ?, device_info = ?, "
                "security_policy_id = ?, last_seen_at = ?, updated_at = ? WHERE id = ?",
                (
                    device.name,
                    _enum_value(device.status),
                    json.dumps(device.device_info),
                    device.security_policy_id,
                    _optional_time(device.last_seen_at),
                    _to_db_time(_now()),
                    device.id,
                ),
            )
        if cursor.rowcount == 0:
            raise DeviceNotFoundError(f"device not found: {device.id}")
        device.updated_at = self.get_by_id(device.id).updated_at

    def delete(self, device_id: str) -> None:
        with self._db:
            cursor = self._db.execute("DELETE FROM devices WHERE id = ?", (device_id,))
        if cursor.rowcount == 0:
            raise DeviceNotFoundError(f"device not found: {device_id}")

    def list(
        self, tenant_id: str, status: str, limit: int, offset: int
    ) -> tuple[list[Device], int]:
        """Return a page of the tenant's devices, newest first, and their total.

        A status of ``""`` or ``"all"`` does not filter.
        """
        where = "WHERE tenant_id = ?"
        params: list[Any] = [tenant_id]
        if _status_filter(status):
            where += " AND status = ?"
            params.append(status)
        cursor = self._db.execute(
            f"SELECT * FROM devices {where} ORDER BY created_at DESC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        )
        devices = [_to_device(row) for row in _fetch(cursor)]
        (total,) = self._db.execute(
            f"SELECT COUNT(*) FROM devices {where}", tuple(params)
        ).fetchone()
        return devices, total

    def update_last_seen(self, device_id: str, last_seen: datetime) -> None:
        with self._db:
            self._db.execute(
                "UPDATE devices SET last_seen_at = ? WHERE id = ?",
                (_to_db_time(last_seen), device_id),
            )

    def update_status(self, device_id: str, status: str) -> None:
        with self._db:
            self._db.execute(
                "UPDATE devices SET status = ? WHERE id = ?",
                (_enum_value(status), device_id),
            )

    def add_to_group(self, device_id: str, group_id: str) -> None:
        """Add the device to the group; adding it twice changes nothing."""
        with self._db:
            self._db.execute(
                "INSERT INTO device_group_members (device_id, group_id) VALUES (?, ?) "
                "ON CONFLICT DO NOTHING",
                (device_id, group_id),
            )

    def remove_from_group(self, device_id: str, group_id: str) -> None:
        with self._db:
            self._db.execute(
                "DELETE FROM device_group_members WHERE device_id = ? AND group_id = ?",
                (device_id, group_id),
            )

    def get_groups(self, device_id: str) -> list[DeviceGroup]:
        cursor = self._db.execute(
            "SELECT g.* FROM device_groups g "
            "INNER JOIN device_group_members m ON g.id = m.group_id "
            "WHERE m.device_id = ?",
            (device_id,),
        )
        return [_to_group(row) for row in _fetch(cursor)]

    def count_by_tenant(self, tenant_id: str) -> int:
        (count,) = self._db.execute(
            "SELECT COUNT(*) FROM devices WHERE tenant_id = ?", (tenant_id,)
        ).fetchone()
        return count