import sqlite3

import pytest

from kioskhub.database import open_database
from kioskhub.repositories.group import Group, GroupNotFoundError, GroupRepository
from kioskhub.repositories.tablet import Tablet, TabletRepository


@pytest.fixture
def db(tmp_path):
    connection = open_database(tmp_path / "hub.db")
    TabletRepository(connection).init_table()
    yield connection
    connection.close()


@pytest.fixture
def repo(db):
    repository = GroupRepository(db)
    repository.init_table()
    return repository


@pytest.fixture
def tablet_id(db):
    tablets = TabletRepository(db)
    tablets.save(Tablet(ip="10.0.0.5", name="lobby"))
    return tablets.get_all()[0].id


def test_create_and_get_by_id(repo):
    group_id = repo.create(Group(name="Hall", description="Main hall", color="#64748b"))
    assert repo.get_by_id(group_id) == Group(
        id=group_id, name="Hall", description="Main hall", color="#64748b"
    )


def test_get_all_sorted_by_name(repo):
    repo.create(Group(name="Zeta"))
    repo.create(Group(name="Alpha"))
    repo.create(Group(name="Mid"))
    names = [group.name for group in repo.get_all()]
    assert names == sorted(names)
    assert len(names) == 3


def test_duplicate_name_rejected(repo):
    repo.create(Group(name="Hall"))
    with pytest.raises(sqlite3.IntegrityError):
        repo.create(Group(name="Hall"))


def test_update(repo):
    group_id = repo.create(Group(name="Hall"))
    repo.update(Group(id=group_id, name="Lobby", description="Entry", color="#000000"))
    updated = repo.get_by_id(group_id)
    assert updated.name == "Lobby"
    assert updated.description == "Entry"
    assert updated.color == "#000000"


def test_delete_then_missing(repo):
    group_id = repo.create(Group(name="Hall"))
    repo.delete(group_id)
    with pytest.raises(GroupNotFoundError):
        repo.get_by_id(group_id)


def test_membership_round_trip(repo, tablet_id):
    group_id = repo.create(Group(name="Hall"))
    repo.add_tablet_to_group(tablet_id, group_id)
    repo.add_tablet_to_group(tablet_id, group_id)
    groups = repo.get_groups_by_tablet(tablet_id)
    assert [group.id for group in groups] == [group_id]
    tablets = repo.get_tablets_by_group(group_id)
    assert [tablet.ip for tablet in tablets] == ["10.0.0.5"]


def test_remove_tablet_from_group(repo, tablet_id):
    group_id = repo.create(Group(name="Hall"))
    repo.add_tablet_to_group(tablet_id, group_id)
    repo.remove_tablet_from_group(tablet_id, group_id)
    assert repo.get_groups_by_tablet(tablet_id) == []
    assert repo.get_tablets_by_group(group_id) == []


def test_deleting_group_removes_membership(repo, tablet_id):
    group_id = repo.create(Group(name="Hall"))
    repo.add_tablet_to_group(tablet_id, group_id)
    repo.delete(group_id)
    assert repo.get_groups_by_tablet(tablet_id) == []


def test_membership_requires_existing_tablet(repo):
    group_id = repo.create(Group(name="Hall"))
    with pytest.raises(sqlite3.IntegrityError):
        repo.add_tablet_to_group(999, group_id)