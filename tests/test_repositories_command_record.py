from datetime import datetime, timedelta, timezone

import pytest

from kioskhub.database import open_database
from kioskhub.models.command import CommandRecord, CommandStatus, CommandType
from kioskhub.repositories.command_record import (
    CommandRecordNotFoundError,
    CommandRecordRepository,
)

_SCHEMA = """CREATE TABLE command_history (
    id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    device_id TEXT NOT NULL,
    command_type TEXT NOT NULL,
    command_id TEXT NOT NULL,
    payload TEXT,
    result TEXT,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    completed_at TEXT,
    duration INTEGER,
    error_message TEXT
)"""

BASE = datetime(2024, 3, 1, 8, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def repo(tmp_path):
    connection = open_database(tmp_path / "hub.db")
    connection.execute(_SCHEMA)
    yield CommandRecordRepository(connection)
    connection.close()


def _record(index, tenant="tenant001", device="device001", status="pending"):
    return CommandRecord(
        id=f"rec-{index}",
        tenant_id=tenant,
        device_id=device,
        command_type=CommandType.REBOOT,
        command_id=f"cmd-{index}",
        payload={"delay": index},
        status=status,
        created_at=BASE + timedelta(minutes=index),
    )


def test_create_and_get_by_id(repo):
    record = _record(1)
    repo.create(record)
    assert repo.get_by_id("rec-1") == record


def test_get_by_command_id(repo):
    repo.create(_record(1))
    repo.create(_record(2))
    fetched = repo.get_by_command_id("cmd-2")
    assert fetched.id == "rec-2"
    assert fetched.payload == {"delay": 2}


def test_missing_record_raises(repo):
    with pytest.raises(CommandRecordNotFoundError):
        repo.get_by_id("nope")
    with pytest.raises(CommandRecordNotFoundError):
        repo.get_by_command_id("nope")


def test_create_stamps_missing_time(repo):
    record = _record(1)
    record.created_at = None
    before = datetime.now(timezone.utc)
    repo.create(record)
    assert record.created_at >= before
    assert repo.get_by_id("rec-1").created_at == record.created_at


def test_unknown_command_type_kept_as_text(repo):
    record = _record(1)
    record.command_type = "customThing"
    repo.create(record)
    assert repo.get_by_id("rec-1").command_type == "customThing"


def test_update_stores_outcome(repo):
    record = _record(1)
    repo.create(record)
    record.result = {"message": "ok"}
    record.status = CommandStatus.SUCCESS
    record.completed_at = BASE + timedelta(hours=1)
    record.duration = 250
    record.error_message = ""
    repo.update(record)
    fetched = repo.get_by_id("rec-1")
    assert fetched.result == {"message": "ok"}
    assert fetched.status == CommandStatus.SUCCESS.value
    assert fetched.completed_at == record.completed_at
    assert fetched.duration == 250


def test_list_by_device_pages_newest_first(repo):
    for index in range(5):
        repo.create(_record(index))
    repo.create(_record(9, device="device002"))
    records, total = repo.list_by_device("tenant001", "device001", 2, 1)
    assert total == 5
    assert [record.id for record in records] == ["rec-3", "rec-2"]


def test_list_by_tenant(repo):
    for index in range(3):
        repo.create(_record(index))
    repo.create(_record(7, tenant="tenant002"))
    records, total = repo.list_by_tenant("tenant001", 10, 0)
    assert total == 3
    stamps = [record.created_at for record in records]
    assert stamps == sorted(stamps, reverse=True)
    assert all(record.tenant_id == "tenant001" for record in records)


def test_list_pending_oldest_first(repo):
    repo.create(_record(3))
    repo.create(_record(1))
    repo.create(_record(2, status="success"))
    pending = repo.list_pending(10)
    assert [record.id for record in pending] == ["rec-1", "rec-3"]
    assert len(repo.list_pending(1)) == 1


def test_delete_old_records(repo):
    for index in range(4):
        repo.create(_record(index))
    deleted = repo.delete_old_records(BASE + timedelta(minutes=2))
    assert deleted == 2
    _, total = repo.list_by_tenant("tenant001", 10, 0)
    assert total == 2