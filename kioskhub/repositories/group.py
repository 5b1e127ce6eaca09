"""Storage of tablet groups and of tablet membership in them."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any

from kioskhub.repositories.tablet import Tablet, _fetch, _to_tablet


class GroupNotFoundError(LookupError):
    """No group has the requested id."""


@dataclass
class Group:
    """A named, coloured set of tablets."""

    id: int = 0
    name: str = ""
    description: str = ""
    color: str = ""


_CREATE_GROUPS = """CREATE TABLE IF NOT EXISTS groups (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    color TEXT DEFAULT '#64748b'
)"""

_CREATE_MEMBERSHIP = """CREATE TABLE IF NOT EXISTS tablet_groups (
    tablet_id INTEGER NOT NULL,
    group_id INTEGER NOT NULL,
    PRIMARY KEY (tablet_id, group_id),
    FOREIGN KEY (tablet_id) REFERENCES tablets(id) ON DELETE CASCADE,
    FOREIGN KEY (group_id) REFERENCES groups(id) ON DELETE CASCADE
)"""


def _to_group(row: dict[str, Any]) -> Group:
    return Group(
        id=row["id"],
        name=row["name"],
        description=row["description"] or "",
        color=row["color"] or "",
    )


def _params(group: Group) -> dict[str, Any]:
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "color": group.color,
    }


class GroupRepository:
    """Groups stored in SQLite."""

    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def init_table(self) -> None:
        with self._db:
            self._db.execute(_CREATE_GROUPS)
            self._db.execute(_CREATE_MEMBERSHIP)

    def create(self, group: Group) -> int:
        """Insert the group and return its new id."""
        with self._db:
            cursor = self._db.execute(
                "INSERT INTO groups (name, description, color) "
                "VALUES (:name, :description, :color)",
                _params(group),
            )
        return cursor.lastrowid

    def get_all(self) -> list[Group]:
        cursor = self._db.execute("SELECT * FROM groups ORDER BY name ASC")
        return [_to_group(row) for row in _fetch(cursor)]

    def get_by_id(self, group_id: int) -> Group:
        cursor = self._db.execute("SELECT * FROM groups WHERE id = ?", (group_id,))
        rows = _fetch(cursor)
        if not rows:
            raise GroupNotFoundError(f"group {group_id} not found")
        return _to_group(rows[0])

    def update(self, group: Group) -> None:
        with self._db:
            self._db.execute(
                "UPDATE groups SET name=:name, description=:description, color=:color "
                "WHERE id=:id",
                _params(group),
            )

    def delete(self, group_id: int) -> None:
        with self._db:
            self._db.execute("DELETE FROM groups WHERE id = ?", (group_id,))

    def add_tablet_to_group(self, tablet_id: int, group_id: int) -> None:
        """Add the tablet to the group; adding it twice changes nothing."""
        with self._db:
            self._db.execute(
                "INSERT OR IGNORE INTO tablet_groups (tablet_id, group_id) VALUES (?, ?)",
                (tablet_id, group_id),
            )

    def remove_tablet_from_group(self, tablet_id: int, group_id: int) -> None:
        with self._db:
            self._db.execute(
                "DELETE FROM tablet_groups WHERE tablet_id = ? AND group_id = ?",
                (tablet_id, group_id),
            )

    def get_groups_by_tablet(self, tablet_id: int) -> list[Group]:
        cursor = self._db.execute(
            "SELECT g.* FROM groups g "
            "JOIN tablet_groups tg ON g.id = tg.group_id "
            "WHERE tg.tablet_id = ?",
            (tablet_id,),
        )
        return [_to_group(row) for row in _fetch(cursor)]

    def get_tablets_by_group(self, group_id: int) -> list[Tablet]:
        cursor = self._db.execute(
            "SELECT t.* FROM tablets t "
            "JOIN tablet_groups tg ON t.id = tg.tablet_id "
            "WHERE tg.group_id = ?",
            (group_id,),
        )
        return [_to_tablet(row) for row in _fetch(cursor)]