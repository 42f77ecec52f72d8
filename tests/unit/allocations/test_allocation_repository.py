from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from pivotflow.allocations.models import ResourceAllocationModel
from pivotflow.allocations.repository import AllocationRepository, advisory_lock_key
from pivotflow.allocations.schemas import AllocationFilters


def add(session, id, user_id="alice", project_id="p1", start=date(2025, 1, 1), end=date(2025, 1, 31), percent=50,
        organization_id="org-1"):
    return AllocationRepository().create(
        session,
        ResourceAllocationModel(
            id=id,
            organization_id=organization_id,
            project_id=project_id,
            user_id=user_id,
            role="developer",
            allocation_percent=Decimal(str(percent)),
            start_date=start,
            end_date=end,
            is_billable=True,
            notes={},
        ),
    )


@pytest.fixture
def repo(seeded):
    return AllocationRepository()


def test_create_and_get(repo, db_session):
    created = add(db_session, "a1")

    fetched = repo.get(db_session, "a1")
    assert fetched is created
    assert fetched.project_name == "Apollo"
    assert fetched.user_name == "Alice"
    assert fetched.snapshot()["start_date"] == "2025-01-01"


def test_get_for_organization_scopes_by_tenant(repo, db_session):
    add(db_session, "a1")

    assert repo.get_for_organization(db_session, "org-1", "a1") is not None
    assert repo.get_for_organization(db_session, "org-2", "a1") is None


def test_soft_delete_hides_row(repo, db_session):
    add(db_session, "a1")

    assert repo.delete(db_session, "a1") is True
    assert repo.get(db_session, "a1") is None
    assert repo.delete(db_session, "a1") is False
    assert repo.list(db_session) == []


def test_update_rejects_immutable_fields(repo, db_session):
    add(db_session, "a1")

    with pytest.raises(ValueError):
        repo.update(db_session, "a1", {"user_id": "bob"})

    updated = repo.update(db_session, "a1", {"allocation_percent": Decimal("75")})
    assert updated.allocation_percent == Decimal("75")
    assert repo.update(db_session, "missing", {"allocation_percent": Decimal("75")}) is None


def test_mutations_take_the_callers_timestamp(repo, db_session):
    add(db_session, "a1")
    add(db_session, "a2")
    stamp = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    updated = repo.update(db_session, "a1", {"is_billable": False}, now=stamp)
    repo.soft_delete(db_session, "a2", now=stamp)

    assert updated.updated_at.replace(tzinfo=None) == stamp.replace(tzinfo=None)
    deleted = db_session.get(ResourceAllocationModel, "a2")
    assert deleted.deleted_at.replace(tzinfo=None) == stamp.replace(tzinfo=None)


def test_find_overlapping(repo, db_session):
    add(db_session, "jan", start=date(2025, 1, 1), end=date(2025, 1, 31))
    add(db_session, "feb", start=date(2025, 2, 1), end=date(2025, 2, 28))
    add(db_session, "bob", user_id="bob")
    add(db_session, "gone")
    repo.soft_delete(db_session, "gone")

    found = repo.find_overlapping(db_session, "org-1", "alice", date(2025, 1, 31), date(2025, 2, 1))
    assert [a.id for a in found] == ["jan", "feb"]

    found = repo.find_overlapping(db_session, "org-1", "alice", date(2025, 1, 31), date(2025, 2, 1), exclude_id="jan")
    assert [a.id for a in found] == ["feb"]

    assert repo.find_overlapping(db_session, "org-2", "alice", date(2025, 1, 1), date(2025, 12, 31)) == []


def test_find_by_project_window_rules(repo, db_session):
    add(db_session, "spanning", start=date(2024, 12, 1), end=date(2025, 3, 1), percent=10)
    add(db_session, "inside", start=date(2025, 1, 10), end=date(2025, 1, 20), percent=10)
    add(db_session, "tail", start=date(2024, 6, 1), end=date(2025, 1, 1), percent=10)
    add(db_session, "other-project", project_id="p2", start=date(2025, 1, 10), end=date(2025, 1, 20), percent=10)

    window = (date(2025, 1, 1), date(2025, 1, 31))
    overlap = repo.find_by_project_window(db_session, "org-1", "p1", *window, rule="overlap")
    boundary = repo.find_by_project_window(db_session, "org-1", "p1", *window, rule="boundary")

    assert {a.id for a in overlap} == {"spanning", "inside", "tail"}
    assert {a.id for a in boundary} == {"inside", "tail"}

    with pytest.raises(ValueError):
        repo.find_by_project_window(db_session, "org-1", "p1", *window, rule="weekly")


def test_list_filtered_counts_all_matches(repo, db_session):
    for i in range(5):
        add(db_session, f"a{i}", start=date(2025, i + 1, 1), end=date(2025, i + 1, 28), percent=20)

    items, total = repo.list_filtered(db_session, "org-1", AllocationFilters(user_id="alice"), limit=2, offset=0)
    assert total == 5
    assert len(items) == 2

    items, total = repo.list_filtered(
        db_session, "org-1", AllocationFilters(start_date=date(2025, 3, 1), end_date=date(2025, 4, 30)), limit=10
    )
    assert {a.id for a in items} == {"a2", "a3"}
    assert total == 2


def test_lock_user_is_a_no_op_outside_postgres(repo, db_session):
    # SQLite: no statement issued, nothing raised
    repo.lock_user(db_session, "org-1", "alice")


def test_lock_user_takes_advisory_lock_on_postgres(repo):
    session = MagicMock()
    session.get_bind.return_value.dialect.name = "postgresql"

    repo.lock_user(session, "org-1", "alice")

    statement, params = session.execute.call_args[0]
    assert "pg_advisory_xact_lock" in str(statement)
    assert params == {"key": advisory_lock_key("org-1", "alice")}


def test_advisory_lock_key():
    key = advisory_lock_key("org-1", "alice")

    assert key == advisory_lock_key("org-1", "alice")
    assert key != advisory_lock_key("org-2", "alice")
    assert -(2 ** 63) <= key < 2 ** 63
