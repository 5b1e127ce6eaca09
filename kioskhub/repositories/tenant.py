"""Storage of tenants, the organisations that own devices."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Any

from kioskhub.models.command import _enum_value
from kioskhub.models.tenant import Tenant
from kioskhub.repositories.tablet import _fetch

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_CREATE_TABLE = """CREATE TABLE IF NOT EXISTS tenants (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    slug TEXT UNIQUE NOT NULL,
    plan TEXT NOT NULL DEFAULT 'starter',
    status TEXT NOT NULL DEFAULT 'active',
    settings TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
)"""

_COLUMNS = "id, name, slug, plan, status, settings, created_at, updated_at"


class TenantNotFoundError(LookupError):
    """No tenant matches the request."""


def _parse_time(value: Any) -> datetime | None:
    """Parse SQLite's ``YYYY-MM-DD HH:MM:SS`` text as UTC; empty text gives None."""
    if value is None or value == "" or value == b"":
        return None
    if isinstance(value, bytes):
        value = value.decode()
    if not isinstance(value, str):
        raise TypeError(f"cannot read {type(value).__name__} as a timestamp")
    return datetime.strptime(value, _TIME_FORMAT).replace(tzinfo=timezone.utc)


def _parse_settings(raw: Any) -> dict[str, Any]:
    """Decode the settings column; anything that is not a JSON object gives ``{}``."""
    if isinstance(raw, bytes):
        raw = raw.decode()
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        return {}
    return dict(value) if isinstance(value, dict) else {}


def _to_tenant(row: dict[str, Any]) -> Tenant:
    return Tenant(
        id=row["id"],
        name=row["name"],
        slug=row["slug"],
        plan=row["plan"],
        status=row["status"],
        settings=_parse_settings(row["settings"]),
        created_at=_parse_time(row["created_at"]),
        updated_at=_parse_time(row["updated_at"]),
    )


class TenantRepository:
    """Tenants stored in SQLite."""

    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def init_table(self) -> None:
        with self._db:
            self._db.execute(_CREATE_TABLE)

    def create(self, tenant: Tenant) -> None:
        """Insert the tenant and fill in the timestamps the database gave it."""
        settings = json.dumps(tenant.settings)
        with self._db:
            self._db.execute(
                "INSERT INTO tenants (id, name, slug, plan, status, settings) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    tenant.id,
                    tenant.name,
                    tenant.slug,
                    _enum_value(tenant.plan),
                    _enum_value(tenant.status),
                    settings,
                ),
            )
        created = self.get_by_id(tenant.id)
        tenant.created_at = created.created_at
        tenant.updated_at = created.updated_at

    def _get_one(self, column: str, value: str) -> Tenant:
        cursor = self._db.execute(
            f"SELECT {_COLUMNS} FROM tenants WHERE {column} = ?", (value,)
        )
        rows = _fetch(cursor)
        if not rows:
            raise TenantNotFoundError(f"tenant not found: {value}")
        return _to_tenant(rows[0])

    def get_by_id(self, tenant_id: str) -> Tenant:
        return self._get_one("id", tenant_id)

    def get_by_slug(self, slug: str) -> Tenant:
        return self._get_one("slug", slug)

    def update(self, tenant: Tenant) -> None:
        """Store name, plan, status and settings, then refresh ``updated_at``."""
        settings = json.dumps(tenant.settings)
        with self._db:
            self._db.execute(
                "UPDATE tenants SET name = ?, plan = ?, status = ?, settings = ? WHERE id = ?",
                (
                    tenant.name,
                    _enum_value(tenant.plan),
                    _enum_value(tenant.status),
                    settings,
                    tenant.id,
                ),
            )
        updated = self.get_by_id(tenant.id)
        tenant.updated_at = updated.updated_at

    def delete(self, tenant_id: str) -> None:
        with self._db:
            cursor = self._db.execute("DELETE FROM tenants WHERE id = ?", (tenant_id,))
        if cursor.rowcount == 0:
            raise TenantNotFoundError(f"tenant not found: {tenant_id}")

    def list(self, limit: int, offset: int) -> tuple[list[Tenant], int]:
        """Return a page of tenants, newest first, and the total number of tenants."""
        cursor = self._db.execute(
            f"SELECT {_COLUMNS} FROM tenants ORDER BY created_at DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        tenants = [_to_tenant(row) for row in _fetch(cursor)]
        (total,) = self._db.execute("SELECT COUNT(*) FROM tenants").fetchone()
        return tenants, total