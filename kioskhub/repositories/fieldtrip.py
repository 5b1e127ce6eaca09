"""Storage of field-trip groups, devices, locations, broadcasts and commands."""

from __future__ import annotations

import sqlite3
import time
from typing import Any

from kioskhub.models.fieldtrip import (
    Broadcast,
    FieldTripDevice,
    FieldTripGroup,
    GPSReport,
    PendingCommand,
)
from kioskhub.repositories.tablet import _fetch

_KEY_CACHE_SECONDS = 30 * 24 * 60 * 60

_DEVICE_COLUMNS = (
    "id, name, group_id, api_key_hash, hub_url, last_seen, last_lat, last_lng, "
    "status, signing_pubkey, created_at, updated_at"
)

_SCHEMA = (
    """CREATE TABLE IF NOT EXISTS fieldtrip_groups (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        group_key TEXT UNIQUE NOT NULL,
        broadcast_sound TEXT DEFAULT 'default',
        update_policy TEXT DEFAULT 'manual',
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS fieldtrip_devices (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        group_id TEXT REFERENCES fieldtrip_groups(id),
        api_key_hash TEXT NOT NULL,
        hub_url TEXT NOT NULL,
        last_seen INTEGER,
        last_lat REAL,
        last_lng REAL,
        status TEXT DEFAULT 'active',
        signing_pubkey TEXT,
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL,
        device_info TEXT,
        device_config TEXT
    )""",
    "CREATE INDEX IF NOT EXISTS idx_ftd_group ON fieldtrip_devices(group_id)",
    "CREATE INDEX IF NOT EXISTS idx_ftd_status ON fieldtrip_devices(status)",
    """CREATE TABLE IF NOT EXISTS gps_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        device_id TEXT REFERENCES fieldtrip_devices(id) ON DELETE CASCADE,
        lat REAL NOT NULL,
        lng REAL NOT NULL,
        accuracy REAL,
        timestamp INTEGER NOT NULL,
        created_at INTEGER NOT NULL
    )""",
    "CREATE INDEX IF NOT EXISTS idx_gps_device ON gps_logs(device_id)",
    "CREATE INDEX IF NOT EXISTS idx_gps_timestamp ON gps_logs(timestamp)",
    """CREATE TABLE IF NOT EXISTS broadcasts (
        id TEXT PRIMARY KEY,
        group_id TEXT REFERENCES fieldtrip_groups(id),
        message TEXT NOT NULL,
        sound TEXT DEFAULT 'default',
        created_by TEXT NOT NULL,
        created_at INTEGER NOT NULL,
        delivered_count INTEGER DEFAULT 0,
        failed_count INTEGER DEFAULT 0
    )""",
    "CREATE INDEX IF NOT EXISTS idx_bc_group ON broadcasts(group_id)",
    """CREATE TABLE IF NOT EXISTS pending_commands (
        id TEXT PRIMARY KEY,
        device_id TEXT NOT NULL,
        command_type TEXT NOT NULL,
        payload TEXT NOT NULL,
        status TEXT DEFAULT 'pending',
        created_at INTEGER NOT NULL,
        delivered_at INTEGER
    )""",
    "CREATE INDEX IF NOT EXISTS idx_pc_device ON pending_commands(device_id, status)",
    # Plaintext keys kept for printing QR sheets; valid 30 days after creation.
    """CREATE TABLE IF NOT EXISTS device_key_cache (
        device_id TEXT PRIMARY KEY REFERENCES fieldtrip_devices(id) ON DELETE CASCADE,
        plaintext_key TEXT NOT NULL,
        created_at INTEGER NOT NULL,
        expires_at INTEGER NOT NULL
    )""",
    # Older databases lack these columns; on newer ones these fail and are skipped.
    "ALTER TABLE fieldtrip_devices ADD COLUMN device_info TEXT",
    "ALTER TABLE fieldtrip_devices ADD COLUMN device_config TEXT",
)


class FieldTripGroupNotFoundError(LookupError):
    """No field-trip group matches the request."""


class FieldTripDeviceNotFoundError(LookupError):
    """No field-trip device matches the request."""


class ApiKeyNotFoundError(LookupError):
    """No plaintext API key is cached for the device."""


class ApiKeyExpiredError(Exception):
    """The cached API key of the device has expired."""


def _to_group(row: dict[str, Any]) -> FieldTripGroup:
    return FieldTripGroup(
        id=row["id"],
        name=row["name"],
        group_key=row["group_key"],
        broadcast_sound=row["broadcast_sound"] or "",
        update_policy=row["update_policy"] or "",
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _to_device(row: dict[str, Any]) -> FieldTripDevice:
    return FieldTripDevice(
        id=row["id"],
        name=row["name"],
        group_id=row["group_id"] or "",
        api_key_hash=row["api_key_hash"],
        hub_url=row["hub_url"],
        last_seen=row["last_seen"],
        last_lat=row["last_lat"],
        last_lng=row["last_lng"],
        status=row["status"] or "",
        signing_pubkey=row["signing_pubkey"] or "",
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _to_command(row: dict[str, Any]) -> PendingCommand:
    return PendingCommand(
        id=row["id"],
        device_id=row["device_id"],
        command_type=row["command_type"],
        payload=row["payload"],
        status=row["status"] or "",
        created_at=row["created_at"],
        delivered_at=row["delivered_at"],
    )


class FieldTripRepository:
    """Field-trip data stored in SQLite."""

    def __init__(self, db: sqlite3.Connection, hub_url: str) -> None:
        self._db = db
        self._hub_url = hub_url

    @property
    def hub_url(self) -> str:
        """The address tablets use to reach this hub."""
        return self._hub_url

    def init_schema(self) -> None:
        """Create the tables and indexes; statements that fail are skipped."""
        for statement in _SCHEMA:
            try:
                self._db.execute(statement)
            except sqlite3.Error:
                continue

    def _execute(self, query: str, params: Any = ()) -> sqlite3.Cursor:
        with self._db:
            return self._db.execute(query, params)

    def create_group(self, group: FieldTripGroup) -> None:
        self._execute(
            "INSERT INTO fieldtrip_groups "
            "(id, name, group_key, broadcast_sound, update_policy, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                group.id,
                group.name,
                group.group_key,
                group.broadcast_sound,
                group.update_policy,
                group.created_at,
                group.updated_at,
            ),
        )

    def _get_group(self, column: str, value: str) -> FieldTripGroup:
        rows = _fetch(
            self._db.execute(f"SELECT * FROM fieldtrip_groups WHERE {column} = ?", (value,))
        )
        if not rows:
            raise FieldTripGroupNotFoundError(f"group not found: {value}")
        return _to_group(rows[0])

    def get_group_by_key(self, key: str) -> FieldTripGroup:
        return self._get_group("group_key", key)

    def get_group_by_id(self, group_id: str) -> FieldTripGroup:
        return self._get_group("id", group_id)

    def list_groups(self) -> list[FieldTripGroup]:
        """Return all groups ordered by name."""
        cursor = self._db.execute("SELECT * FROM fieldtrip_groups ORDER BY name")
        return [_to_group(row) for row in _fetch(cursor)]

    def create_device(self, device: FieldTripDevice) -> None:
        self._execute(
            "INSERT INTO fieldtrip_devices "
            "(id, name, group_id, api_key_hash, hub_url, status, signing_pubkey, "
            "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                device.id,
                device.name,
                device.group_id,
                device.api_key_hash,
                device.hub_url,
                device.status,
                device.signing_pubkey,
                device.created_at,
                device.updated_at,
            ),
        )

    def get_device_by_id(self, device_id: str) -> FieldTripDevice:
        rows = _fetch(
            self._db.execute(
                f"SELECT {_DEVICE_COLUMNS} FROM fieldtrip_devices WHERE id = ?", (device_id,)
            )
        )
        if not rows:
            raise FieldTripDeviceNotFoundError(f"device not found: {device_id}")
        return _to_device(rows[0])

    def list_devices(self) -> list[FieldTripDevice]:
        """Return all devices ordered by name."""
        cursor = self._db.execute(
            f"SELECT {_DEVICE_COLUMNS} FROM fieldtrip_devices ORDER BY name"
        )
        return [_to_device(row) for row in _fetch(cursor)]

    def list_devices_by_group(self, group_id: str) -> list[FieldTripDevice]:
        """Return the devices of one group ordered by name."""
        cursor = self._db.execute(
            f"SELECT {_DEVICE_COLUMNS} FROM fieldtrip_devices WHERE group_id = ? ORDER BY name",
            (group_id,),
        )
        return [_to_device(row) for row in _fetch(cursor)]

    def update_device_location(
        self, device_id: str, lat: float, lng: float, last_seen: int
    ) -> None:
        """Record the position, mark the device active and stamp it as seen."""
        self._execute(
            "UPDATE fieldtrip_devices SET last_lat=?, last_lng=?, last_seen=?, "
            "status='active', updated_at=? WHERE id=?",
            (lat, lng, last_seen, last_seen, device_id),
        )

    def set_device_status(self, device_id: str, status: str, last_seen: int) -> None:
        self._execute(
            "UPDATE fieldtrip_devices SET status=?, last_seen=?, updated_at=? WHERE id=?",
            (status, last_seen, last_seen, device_id),
        )

    def update_device_name(self, device_id: str, name: str, updated_at: int) -> None:
        self._execute(
            "UPDATE fieldtrip_devices SET name=?, updated_at=? WHERE id=?",
            (name, updated_at, device_id),
        )

    def delete_device(self, device_id: str) -> None:
        self._execute("DELETE FROM fieldtrip_devices WHERE id=?", (device_id,))

    def delete_group(self, group_id: str) -> None:
        self._execute("DELETE FROM fieldtrip_groups WHERE id=?", (group_id,))

    def insert_gps_log(
        self,
        device_id: str,
        lat: float,
        lng: float,
        accuracy: float,
        ts: int,
        created_at: int,
    ) -> None:
        self._execute(
            "INSERT INTO gps_logs (device_id, lat, lng, accuracy, timestamp, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (device_id, lat, lng, accuracy, ts, created_at),
        )

    def get_gps_history(self, device_id: str, limit: int) -> list[GPSReport]:
        """Return up to ``limit`` positions of the device, newest first."""
        cursor = self._db.execute(
            "SELECT lat, lng, accuracy, timestamp FROM gps_logs "
            "WHERE device_id=? ORDER BY timestamp DESC LIMIT ?",
            (device_id, limit),
        )
        return [
            GPSReport(
                device_id=device_id,
                lat=row["lat"],
                lng=row["lng"],
                accuracy=row["accuracy"] if row["accuracy"] is not None else 0.0,
                timestamp=row["timestamp"],
            )
            for row in _fetch(cursor)
        ]

    def create_broadcast(self, broadcast: Broadcast) -> None:
        self._execute(
            "INSERT INTO broadcasts (id, group_id, message, sound, created_by, created_at, "
            "delivered_count, failed_count) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                broadcast.id,
                broadcast.group_id,
                broadcast.message,
                broadcast.sound,
                broadcast.created_by,
                broadcast.created_at,
                broadcast.delivered_count,
                broadcast.failed_count,
            ),
        )

    def increment_broadcast_counts(self, broadcast_id: str, delivered: int, failed: int) -> None:
        self._execute(
            "UPDATE broadcasts SET delivered_count=delivered_count+?, "
            "failed_count=failed_count+? WHERE id=?",
            (delivered, failed, broadcast_id),
        )

    def push_pending_command(self, command: PendingCommand) -> None:
        self._execute(
            "INSERT INTO pending_commands "
            "(id, device_id, command_type, payload, status, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                command.id,
                command.device_id,
                command.command_type,
                command.payload,
                command.status,
                command.created_at,
            ),
        )

    def pop_pending_commands(self, device_id: str) -> list[PendingCommand]:
        """Return the device's pending commands, oldest first, and mark them delivered."""
        cursor = self._db.execute(
            "SELECT * FROM pending_commands WHERE device_id=? AND status='pending' "
            "ORDER BY created_at",
            (device_id,),
        )
        commands = [_to_command(row) for row in _fetch(cursor)]
        for command in commands:
            self._execute(
                "UPDATE pending_commands SET status='delivered', delivered_at=? WHERE id=?",
                (command.created_at, command.id),
            )
        return commands

    def cache_api_key(self, device_id: str, plaintext_key: str) -> None:
        """Keep the plaintext key of the device for 30 days."""
        now = int(time.time())
        self._execute(
            "INSERT OR REPLACE INTO device_key_cache "
            "(device_id, plaintext_key, created_at, expires_at) VALUES (?, ?, ?, ?)",
            (device_id, plaintext_key, now, now + _KEY_CACHE_SECONDS),
        )

    def get_cached_api_key(self, device_id: str) -> str:
        """Return the cached plaintext key; raise if none is cached or it has expired."""
        row = self._db.execute(
            "SELECT plaintext_key, expires_at FROM device_key_cache WHERE device_id = ?",
            (device_id,),
        ).fetchone()
        if row is None:
            raise ApiKeyNotFoundError(f"no cached API key for device {device_id}")
        key, expires_at = row[0], row[1]
        if int(time.time()) > expires_at:
            raise ApiKeyExpiredError(f"API key expired for device {device_id}")
        return key

    def delete_api_key_cache(self, device_id: str) -> None:
        self._execute("DELETE FROM device_key_cache WHERE device_id = ?", (device_id,))

    def update_device_info(self, device_id: str, device_info_json: str, updated_at: int) -> None:
        self._execute(
            "UPDATE fieldtrip_devices SET device_info=?, updated_at=? WHERE id=?",
            (device_info_json, updated_at, device_id),
        )

    def _get_text_column(self, column: str, device_id: str) -> str:
        row = self._db.execute(
            f"SELECT {column} FROM fieldtrip_devices WHERE id = ?", (device_id,)
        ).fetchone()
        if row is None:
            raise FieldTripDeviceNotFoundError(f"device not found: {device_id}")
        return row[0] or ""

    def get_device_info(self, device_id: str) -> str:
        """Return the stored system information JSON, or ``""`` if none."""
        return self._get_text_column("device_info", device_id)

    def update_device_config(self, device_id: str, config_json: str, updated_at: int) -> None:
        self._execute(
            "UPDATE fieldtrip_devices SET device_config=?, updated_at=? WHERE id=?",
            (config_json, updated_at, device_id),
        )

    def get_device_config(self, device_id: str) -> str:
        """Return the stored configuration JSON, or ``""`` if none."""
        return self._get_text_column("device_config", device_id)