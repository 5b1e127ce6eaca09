"""Storage of status reports collected from tablets."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any

from kioskhub.repositories.tablet import _fetch


class ReportNotFoundError(LookupError):
    """No report matches the request."""


@dataclass
class TabletReport:
    """A full status snapshot of a tablet; storage and memory are in MB."""

    id: int = 0
    tablet_id: int = 0
    success: bool = False

    battery_level: int = 0
    battery_charging: bool = False
    battery_plugged: str = ""

    screen_on: bool = False
    screen_brightness: int = 0
    screensaver_active: bool = False

    audio_volume: int = 0

    current_url: str = ""
    webview_can_go_back: bool = False
    webview_loading: bool = False

    device_ip: str = ""
    device_hostname: str = ""
    device_version: str = ""
    is_device_owner: bool = False
    kiosk_mode: bool = False

    wifi_ssid: str = ""
    wifi_signal_strength: int = 0
    wifi_signal_level: int = 0
    wifi_connected: bool = False
    wifi_link_speed: int = 0
    wifi_frequency: int = 0

    rotation_enabled: bool = False
    rotation_interval: int = 0
    rotation_current_index: int = 0

    light_level: float = 0.0
    proximity: float = 0.0
    accel_x: float = 0.0
    accel_y: float = 0.0
    accel_z: float = 0.0

    auto_brightness_enabled: bool = False
    auto_brightness_min: float = 0.0
    auto_brightness_max: float = 0.0
    auto_brightness_current: float = 0.0

    storage_total_mb: int = 0
    storage_available_mb: int = 0
    storage_used_mb: int = 0
    storage_used_percent: int = 0

    memory_total_mb: int = 0
    memory_available_mb: int = 0
    memory_used_mb: int = 0
    memory_used_percent: int = 0
    low_memory: bool = False

    timestamp: datetime | None = None


_CREATE_TABLE = """CREATE TABLE IF NOT EXISTS reports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tablet_id INTEGER NOT NULL,
    success BOOLEAN,
    battery_level INTEGER, battery_charging BOOLEAN, battery_plugged TEXT,
    screen_on BOOLEAN, screen_brightness INTEGER, screensaver_active BOOLEAN,
    audio_volume INTEGER,
    current_url TEXT, webview_can_go_back BOOLEAN, webview_loading BOOLEAN,
    device_ip TEXT, device_hostname TEXT, device_version TEXT, is_device_owner BOOLEAN, kiosk_mode BOOLEAN,
    wifi_ssid TEXT, wifi_signal_strength INTEGER, wifi_signal_level INTEGER, wifi_connected BOOLEAN, wifi_link_speed INTEGER, wifi_frequency INTEGER,
    rotation_enabled BOOLEAN, rotation_interval INTEGER, rotation_current_index INTEGER,
    light_level REAL, proximity REAL, accel_x REAL, accel_y REAL, accel_z REAL,
    auto_brightness_enabled BOOLEAN, auto_brightness_min REAL, auto_brightness_max REAL, auto_brightness_current REAL,
    storage_total_mb INTEGER, storage_available_mb INTEGER, storage_used_mb INTEGER, storage_used_percent INTEGER,
    memory_total_mb INTEGER, memory_available_mb INTEGER, memory_used_mb INTEGER, memory_used_percent INTEGER, low_memory BOOLEAN,
    timestamp DATETIME,
    FOREIGN KEY(tablet_id) REFERENCES tablets(id)
);
CREATE INDEX IF NOT EXISTS idx_reports_tablet_id ON reports(tablet_id);"""

_FIELDS = tuple(fields(TabletReport))
_INSERT_COLUMNS = tuple(item.name for item in _FIELDS if item.name != "id")
_INSERT = "INSERT INTO reports ({}) VALUES ({})".format(
    ", ".join(_INSERT_COLUMNS), ", ".join(f":{name}" for name in _INSERT_COLUMNS)
)


def _to_db_time(moment: datetime) -> str:
    """Store a timestamp as UTC text comparable with SQLite's DATETIME()."""
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")


def _from_db_time(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    moment = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _to_report(row: dict[str, Any]) -> TabletReport:
    values: dict[str, Any] = {}
    for item in _FIELDS:
        raw = row.get(item.name)
        if item.name == "timestamp":
            values[item.name] = _from_db_time(raw)
        elif raw is None:
            values[item.name] = item.default
        else:
            values[item.name] = type(item.default)(raw)
    return TabletReport(**values)


def _params(report: TabletReport) -> dict[str, Any]:
    params: dict[str, Any] = {}
    for name in _INSERT_COLUMNS:
        value = getattr(report, name)
        if name == "timestamp":
            value = _to_db_time(value)
        elif isinstance(value, bool):
            value = int(value)
        params[name] = value
    return params


class ReportRepository:
    """Tablet reports stored in SQLite."""

    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def init_table(self) -> None:
        self._db.executescript(_CREATE_TABLE)

    def add(self, report: TabletReport) -> None:
        """Store the report, stamping it with the current time if it has none."""
        if report.timestamp is None:
            report.timestamp = datetime.now(timezone.utc)
        with self._db:
            self._db.execute(_INSERT, _params(report))

    def get_latest_by_tablet(self, tablet_id: int, only_success: bool = False) -> TabletReport:
        """Return the newest report of the tablet, optionally only successful ones."""
        query = "SELECT * FROM reports WHERE tablet_id = ?"
        if only_success:
            query += " AND success = 1"
        query += " ORDER BY timestamp DESC LIMIT 1"
        rows = _fetch(self._db.execute(query, (tablet_id,)))
        if not rows:
            raise ReportNotFoundError(f"no report for tablet {tablet_id}")
        return _to_report(rows[0])

    def get_history(self, tablet_id: int, limit: int) -> list[TabletReport]:
        """Return up to ``limit`` reports of the tablet, newest first."""
        cursor = self._db.execute(
            "SELECT * FROM reports WHERE tablet_id = ? ORDER BY timestamp DESC LIMIT ?",
            (tablet_id, limit),
        )
        return [_to_report(row) for row in _fetch(cursor)]

    def cleanup(self, days: int) -> None:
        """Delete reports older than ``days`` days; zero or less keeps everything."""
        if days <= 0:
            return
        with self._db:
            self._db.execute(
                "DELETE FROM reports WHERE timestamp < DATETIME('now', '-' || ? || ' days')",
                (days,),
            )