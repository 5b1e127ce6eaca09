import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from kioskhub.database import open_database
from kioskhub.repositories.report import (
    ReportNotFoundError,
    ReportRepository,
    TabletReport,
)
from kioskhub.repositories.tablet import Tablet, TabletRepository


@pytest.fixture
def db(tmp_path):
    connection = open_database(tmp_path / "hub.db")
    TabletRepository(connection).init_table()
    yield connection
    connection.close()


@pytest.fixture
def repo(db):
    repository = ReportRepository(db)
    repository.init_table()
    return repository


@pytest.fixture
def tablet_id(db):
    tablets = TabletRepository(db)
    tablets.save(Tablet(ip="10.0.0.7", name="desk"))
    return tablets.get_all()[0].id


def _at(hours_ago):
    return datetime.now(timezone.utc) - timedelta(hours=hours_ago)


def test_full_report_round_trip(repo, tablet_id):
    original = TabletReport(
        tablet_id=tablet_id,
        success=True,
        battery_level=85,
        battery_charging=True,
        battery_plugged="usb",
        screen_on=True,
        screen_brightness=200,
        current_url="https://example.com",
        device_ip="10.0.0.7",
        wifi_ssid="TestWiFi",
        wifi_connected=True,
        light_level=12.5,
        accel_z=9.75,
        storage_total_mb=16384,
        storage_used_percent=40,
        low_memory=True,
        timestamp=datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc),
    )
    repo.add(original)
    fetched = repo.get_latest_by_tablet(tablet_id)
    assert fetched == dataclasses.replace(original, id=fetched.id)
    assert fetched.id > 0


def test_add_stamps_missing_timestamp(repo, tablet_id):
    report = TabletReport(tablet_id=tablet_id, success=True)
    before = datetime.now(timezone.utc)
    repo.add(report)
    assert report.timestamp is not None and report.timestamp >= before
    assert repo.get_latest_by_tablet(tablet_id).timestamp == report.timestamp


def test_latest_is_newest(repo, tablet_id):
    repo.add(TabletReport(tablet_id=tablet_id, battery_level=10, timestamp=_at(5)))
    repo.add(TabletReport(tablet_id=tablet_id, battery_level=20, timestamp=_at(1)))
    repo.add(TabletReport(tablet_id=tablet_id, battery_level=30, timestamp=_at(3)))
    assert repo.get_latest_by_tablet(tablet_id).battery_level == 20


def test_latest_only_success(repo, tablet_id):
    repo.add(TabletReport(tablet_id=tablet_id, success=True, battery_level=10, timestamp=_at(5)))
    repo.add(TabletReport(tablet_id=tablet_id, success=False, battery_level=20, timestamp=_at(1)))
    assert repo.get_latest_by_tablet(tablet_id, only_success=True).battery_level == 10
    assert repo.get_latest_by_tablet(tablet_id, only_success=False).battery_level == 20


def test_latest_missing_raises(repo, tablet_id):
    with pytest.raises(ReportNotFoundError):
        repo.get_latest_by_tablet(tablet_id)


def test_history_newest_first_and_limited(repo, tablet_id):
    for hours in (4, 2, 6, 1):
        repo.add(TabletReport(tablet_id=tablet_id, timestamp=_at(hours)))
    history = repo.get_history(tablet_id, 3)
    assert len(history) == 3
    stamps = [report.timestamp for report in history]
    assert stamps == sorted(stamps, reverse=True)


def test_cleanup_removes_old_reports(repo, tablet_id):
    repo.add(TabletReport(tablet_id=tablet_id, battery_level=1, timestamp=_at(24 * 40)))
    repo.add(TabletReport(tablet_id=tablet_id, battery_level=2, timestamp=_at(1)))
    repo.cleanup(31)
    assert [report.battery_level for report in repo.get_history(tablet_id, 10)] == [2]


def test_cleanup_zero_keeps_everything(repo, tablet_id):
    repo.add(TabletReport(tablet_id=tablet_id, timestamp=_at(24 * 400)))
    repo.cleanup(0)
    assert len(repo.get_history(tablet_id, 10)) == 1