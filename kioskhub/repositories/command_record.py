"""Storage of the history of commands sent to devices."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Any

from kioskhub.models.command import CommandRecord, CommandType, _enum_value
from kioskhub.repositories.report import _from_db_time, _to_db_time
from kioskhub.repositories.tablet import _fetch


class CommandRecordNotFoundError(LookupError):
    """No command record matches the request."""


def _load_json(text: Any) -> dict[str, Any]:
    if text is None or text == "":
        return {}
    value = json.loads(text)
    return dict(value) if isinstance(value, dict) else {}


def _command_type(value: str) -> CommandType | str:
    try:
        return CommandType(value)
    except ValueError:
        return value


def _to_record(row: dict[str, Any]) -> CommandRecord:
    return CommandRecord(
        id=row["id"],
        tenant_id=row["tenant_id"],
        device_id=row["device_id"],
        command_type=_command_type(row["command_type"]),
        command_id=row["command_id"],
        payload=_load_json(row.get("payload")),
        result=_load_json(row.get("result")),
        status=row["status"],
        created_at=_from_db_time(row.get("created_at")),
        completed_at=_from_db_time(row.get("completed_at")),
        duration=row.get("duration") or 0,
        error_message=row.get("error_message") or "",
    )


def _optional_time(moment: datetime | None) -> str | None:
    return None if moment is None else _to_db_time(moment)


class CommandRecordRepository:
    """Command history stored in the ``command_history`` table."""

    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def create(self, record: CommandRecord) -> None:
        """Store a new record, stamping it with the current time if it has none."""
        if record.created_at is None:
            record.created_at = datetime.now(timezone.utc)
        with self._db:
            self._db.execute(
                "INSERT INTO command_history "
                "(id, tenant_id, device_id, command_type, command_id, payload, status, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    record.tenant_id,
                    record.device_id,
                    _enum_value(record.command_type),
                    record.command_id,
                    json.dumps(record.payload),
                    _enum_value(record.status),
                    _to_db_time(record.created_at),
                ),
            )

    def update(self, record: CommandRecord) -> None:
        """Store the outcome fields of an existing record."""
        with self._db:
            self._db.execute(
                "UPDATE command_history "
                "SET result = ?, status = ?, completed_at = ?, duration = ?, error_message = ? "
                "WHERE id = ?",
                (
                    json.dumps(record.result),
                    _enum_value(record.status),
                    _optional_time(record.completed_at),
                    record.duration,
                    record.error_message,
                    record.id,
                ),
            )

    def _get_one(self, column: str, value: str) -> CommandRecord:
        cursor = self._db.execute(
            f"SELECT * FROM command_history WHERE {column} = ?", (value,)
        )
        rows = _fetch(cursor)
        if not rows:
            raise CommandRecordNotFoundError(f"command record not found: {value}")
        return _to_record(rows[0])

    def get_by_id(self, record_id: str) -> CommandRecord:
        return self._get_one("id", record_id)

    def get_by_command_id(self, command_id: str) -> CommandRecord:
        return self._get_one("command_id", command_id)

    def list_by_device(
        self, tenant_id: str, device_id: str, limit: int, offset: int
    ) -> tuple[list[CommandRecord], int]:
        """Return a page of the device's records, newest first, and their total count."""
        cursor = self._db.execute(
            "SELECT * FROM command_history WHERE tenant_id = ? AND device_id = ? "
            "ORDER BY created_at DESC LIMIT ? OFFSET ?",
            (tenant_id, device_id, limit, offset),
        )
        records = [_to_record(row) for row in _fetch(cursor)]
        (total,) = self._db.execute(
            "SELECT COUNT(*) FROM command_history WHERE tenant_id = ? AND device_id = ?",
            (tenant_id, device_id),
        ).fetchone()
        return records, total

    def list_by_tenant(
        self, tenant_id: str, limit: int, offset: int
    ) -> tuple[list[CommandRecord], int]:
        """Return a page of the tenant's records, newest first, and their total count."""
        cursor = self._db.execute(
            "SELECT * FROM command_history WHERE tenant_id = ? "
            "ORDER BY created_at DESC LIMIT ? OFFSET ?",
            (tenant_id, limit, offset),
        )
        records = [_to_record(row) for row in _fetch(cursor)]
        (total,) = self._db.execute(
            "SELECT COUNT(*) FROM command_history WHERE tenant_id = ?", (tenant_id,)
        ).fetchone()
        return records, total

    def list_pending(self, limit: int) -> list[CommandRecord]:
        """Return up to ``limit`` pending records, oldest first."""
        cursor = self._db.execute(
            "SELECT * FROM command_history WHERE status = 'pending' "
            "ORDER BY created_at ASC LIMIT ?",
            (limit,),
        )
        return [_to_record(row) for row in _fetch(cursor)]

    def delete_old_records(self, before: datetime) -> int:
        """Delete records created before ``before`` and return how many went."""
        with self._db:
            cursor = self._db.execute(
                "DELETE FROM command_history WHERE created_at < ?", (_to_db_time(before),)
            )
        return cursor.rowcount