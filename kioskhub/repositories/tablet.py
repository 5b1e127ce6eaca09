"""Storage of kiosk tablets."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any


class TabletNotFoundError(LookupError):
    """No tablet has the requested id."""


@dataclass
class Tablet:
    """A kiosk tablet known to the hub."""

    id: int = 0
    ip: str = ""
    name: str = ""
    version: str = ""
    online: bool = False
    last_seen: datetime | None = None


_CREATE_TABLE = """CREATE TABLE IF NOT EXISTS tablets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    ip TEXT NOT NULL UNIQUE,
    name TEXT,
    version TEXT,
    online BOOLEAN DEFAULT 0,
    last_seen DATETIME
)"""

_UPSERT = """INSERT INTO tablets (id, ip, name, version, online, last_seen)
    VALUES (NULLIF(:id, 0), :ip, :name, :version, :online, :last_seen)
    ON CONFLICT(id) DO UPDATE SET
        ip=excluded.ip,
        name=excluded.name,
        version=excluded.version,
        online=excluded.online,
        last_seen=excluded.last_seen
    ON CONFLICT(ip) DO UPDATE SET
        name=excluded.name,
        version=excluded.version,
        online=excluded.online,
        last_seen=excluded.last_seen"""


def _parse_time(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _to_tablet(row: dict[str, Any]) -> Tablet:
    return Tablet(
        id=row["id"],
        ip=row["ip"],
        name=row["name"] or "",
        version=row["version"] or "",
        online=bool(row["online"]),
        last_seen=_parse_time(row["last_seen"]),
    )


def _fetch(cursor: sqlite3.Cursor) -> list[dict[str, Any]]:
    names = [column[0] for column in cursor.description]
    return [dict(zip(names, row)) for row in cursor.fetchall()]


class TabletRepository:
    """Tablets stored in SQLite."""

    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def init_table(self) -> None:
        with self._db:
            self._db.execute(_CREATE_TABLE)

    def save(self, tablet: Tablet) -> None:
        """Insert the tablet, or update the one with the same id or IP address."""
        if tablet.last_seen is None:
            tablet.last_seen = datetime.now().astimezone()
        params = {
            "id": tablet.id,
            "ip": tablet.ip,
            "name": tablet.name,
            "version": tablet.version,
            "online": int(tablet.online),
            "last_seen": tablet.last_seen.isoformat(sep=" "),
        }
        with self._db:
            self._db.execute(_UPSERT, params)

    def get_all(self) -> list[Tablet]:
        cursor = self._db.execute("SELECT * FROM tablets")
        return [_to_tablet(row) for row in _fetch(cursor)]

    def get_by_id(self, tablet_id: int) -> Tablet:
        cursor = self._db.execute("SELECT * FROM tablets WHERE id = ?", (tablet_id,))
        rows = _fetch(cursor)
        if not rows:
            raise TabletNotFoundError(f"tablet {tablet_id} not found")
        return _to_tablet(rows[0])