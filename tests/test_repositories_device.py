from datetime import datetime, timezone

import pytest

from kioskhub.database import open_database
from kioskhub.models.device import Device
from kioskhub.repositories.device import DeviceNotFoundError, DeviceRepository

_SCHEMA = """
CREATE TABLE devices (
    id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    device_key TEXT NOT NULL,
    name TEXT,
    status TEXT,
    device_info TEXT,
    security_policy_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    last_seen_at TEXT
);
CREATE TABLE device_groups (
    id TEXT PRIMARY KEY,
    tenant_id TEXT,
    name TEXT,
    parent_id TEXT,
    metadata TEXT,
    created_at TEXT
);
CREATE TABLE device_group_members (
    device_id TEXT NOT NULL,
    group_id TEXT NOT NULL,
    PRIMARY KEY (device_id, group_id)
);
INSERT INTO device_groups (id, tenant_id, name, parent_id, metadata, created_at)
VALUES ('g1', 't1', 'Lobby', NULL, '{"floor": 1}', '2024-01-01 10:00:00');
"""


@pytest.fixture
def db(tmp_path):
    connection = open_database(tmp_path / "devices.db")
    connection.executescript(_SCHEMA)
    yield connection
    connection.close()


@pytest.fixture
def repo(db):
    return DeviceRepository(db)


def _device(device_id="d1", tenant="t1", key="key-1", status="active"):
    return Device(
        id=device_id,
        tenant_id=tenant,
        device_key=key,
        name="Front desk",
        status=status,
        device_info={"brand": "Acme", "battery_charging": False},
    )


def test_create_and_get_round_trip(repo):
    device = _device()
    repo.create(device)
    assert device.created_at is not None
    assert device.updated_at is not None
    stored = repo.get_by_id("d1")
    assert stored.name == "Front desk"
    assert stored.device_info == {"brand": "Acme", "battery_charging": False}
    assert stored.security_policy_id is None
    assert stored.last_seen_at is None
    assert stored.created_at == device.created_at


def test_get_missing_raises(repo):
    with pytest.raises(DeviceNotFoundError):
        repo.get_by_id("missing")
    with pytest.raises(DeviceNotFoundError):
        repo.get_by_device_key("missing")


def test_get_by_key_and_tenant(repo):
    repo.create(_device())
    assert repo.get_by_device_key("key-1").id == "d1"
    assert repo.get_by_tenant_and_key("t1", "key-1").id == "d1"
    with pytest.raises(DeviceNotFoundError):
        repo.get_by_tenant_and_key("t2", "key-1")


def test_update_stores_fields(repo):
    device = _device()
    repo.create(device)
    seen = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    device.name = "Back office"
    device.status = "disabled"
    device.security_policy_id = "policy-1"
    device.last_seen_at = seen
    repo.update(device)
    stored = repo.get_by_id("d1")
    assert stored.name == "Back office"
    assert stored.status == "disabled"
    assert stored.security_policy_id == "policy-1"
    assert stored.last_seen_at == seen
    assert stored.updated_at >= stored.created_at


def test_update_missing_raises(repo):
    with pytest.raises(DeviceNotFoundError):
        repo.update(_device("ghost"))


def test_delete(repo):
    repo.create(_device())
    repo.delete("d1")
    with pytest.raises(DeviceNotFoundError):
        repo.get_by_id("d1")
    with pytest.raises(DeviceNotFoundError):
        repo.delete("d1")


def test_list_filters_and_counts(repo):
    repo.create(_device("d1", key="k1", status="active"))
    repo.create(_device("d2", key="k2", status="pending"))
    repo.create(_device("d3", key="k3", status="active"))
    repo.create(_device("d4", tenant="t2", key="k4", status="active"))

    devices, total = repo.list("t1", "active", 10, 0)
    assert {d.id for d in devices} == {"d1", "d3"}
    assert total == 2

    devices, total = repo.list("t1", "all", 10, 0)
    assert {d.id for d in devices} == {"d1", "d2", "d3"}
    assert total == 3

    page, total = repo.list("t1", "", 2, 0)
    rest, _ = repo.list("t1", "", 2, 2)
    assert len(page) == 2
    assert total == 3
    assert {d.id for d in page} | {d.id for d in rest} == {"d1", "d2", "d3"}


def test_update_last_seen_and_status(repo):
    repo.create(_device())
    seen = datetime(2024, 6, 2, 8, 30, tzinfo=timezone.utc)
    repo.update_last_seen("d1", seen)
    repo.update_status("d1", "disabled")
    stored = repo.get_by_id("d1")
    assert stored.last_seen_at == seen
    assert stored.status == "disabled"


def test_group_membership(repo):
    repo.create(_device())
    repo.add_to_group("d1", "g1")
    repo.add_to_group("d1", "g1")
    groups = repo.get_groups("d1")
    assert [g.id for g in groups] == ["g1"]
    assert groups[0].name == "Lobby"
    assert groups[0].metadata == {"floor": 1}
    repo.remove_from_group("d1", "g1")
    assert repo.get_groups("d1") == []


def test_count_by_tenant(repo):
    repo.create(_device("d1", key="k1"))
    repo.create(_device("d2", key="k2"))
    repo.create(_device("d3", tenant="t2", key="k3"))
    assert repo.count_by_tenant("t1") == 2
    assert repo.count_by_tenant("nobody") == 0