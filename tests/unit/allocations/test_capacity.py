from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from pivotflow.allocations.engine import (
    aggregate_weekly_capacity,
    capacity_window,
    in_capacity_window,
    iter_weeks,
    summarize_capacity,
)
from pivotflow.allocations.models import ResourceAllocationModel

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


def make_allocation(id, user_id, start, end, percent, deleted=False):
    return ResourceAllocationModel(
        id=id,
        organization_id="org-1",
        project_id="p1",
        user_id=user_id,
        role="developer",
        allocation_percent=Decimal(str(percent)),
        start_date=start,
        end_date=end,
        is_billable=True,
        notes={},
        deleted_at=NOW if deleted else None,
    )


@pytest.fixture
def window():
    return capacity_window(NOW, 8)


def test_capacity_window_ends_today():
    start, end = capacity_window(NOW, 8)
    assert end == date(2026, 3, 2)
    assert start == date(2026, 3, 2) - timedelta(days=56)


def test_iter_weeks_includes_a_final_partial_bucket(window):
    weeks = list(iter_weeks(*window))
    # 56 days span 57 calendar days inclusive: 8 full buckets plus one starting on the last day
    assert len(weeks) == 9
    assert weeks[0] == (window[0], window[0] + timedelta(days=6))
    assert weeks[-1][0] == window[1]
    for week_start, week_end in weeks:
        assert (week_end - week_start).days == 6


def test_two_users_in_consecutive_weeks(window):
    start, end = window
    allocations = [
        make_allocation("a1", "u1", start, start + timedelta(days=13), 50),
        make_allocation("a2", "u2", start + timedelta(days=14), start + timedelta(days=27), 30),
    ]

    entries = aggregate_weekly_capacity(allocations, start, end)
    summary = summarize_capacity("p1", "Apollo", start, end, entries)

    by_week = {}
    for entry in entries:
        by_week.setdefault(entry.week_start, []).append(entry)
    weeks = [ws for ws, _ in iter_weeks(start, end)]

    for ws in weeks[:2]:
        assert [(e.user_id, e.planned_percent, e.planned_hours) for e in by_week[ws]] == [
            ("u1", Decimal("50"), Decimal("20"))
        ]
    for ws in weeks[2:4]:
        assert [(e.user_id, e.planned_percent, e.planned_hours) for e in by_week[ws]] == [
            ("u2", Decimal("30"), Decimal("12"))
        ]
    for ws in weeks[4:]:
        assert ws not in by_week

    assert summary.total_planned_hours == Decimal("64")
    assert summary.total_planned_percent == Decimal("160")
    assert summary.project_name == "Apollo"
    assert (summary.week_start, summary.week_end) == (start, end)


def test_percentages_of_one_user_add_up_within_a_week(window):
    start, end = window
    allocations = [
        make_allocation("a1", "u1", start, start + timedelta(days=3), 40),
        make_allocation("a2", "u1", start + timedelta(days=4), start + timedelta(days=6), 60),
        make_allocation("a3", "u2", start, start + timedelta(days=6), 25),
    ]
    entries = aggregate_weekly_capacity(allocations, start, end)

    assert [(e.user_id, e.planned_percent) for e in entries] == [("u1", Decimal("100")), ("u2", Decimal("25"))]
    assert entries[0].planned_hours == Decimal("40")


def test_actuals_are_zero(window):
    start, end = window
    entries = aggregate_weekly_capacity([make_allocation("a1", "u1", start, end, 50)], start, end)

    assert len(entries) == 9
    for entry in entries:
        assert entry.actual_hours == 0
        assert entry.actual_percent == 0
        assert entry.variance == 0


def test_totals_equal_entry_sums(window):
    start, end = window
    allocations = [
        make_allocation("a1", "u1", start, start + timedelta(days=20), "33.33"),
        make_allocation("a2", "u2", start + timedelta(days=10), end, "12.5"),
        make_allocation("a3", "u3", start + timedelta(days=30), start + timedelta(days=31), 75),
    ]
    entries = aggregate_weekly_capacity(allocations, start, end)
    summary = summarize_capacity("p1", "Apollo", start, end, entries)

    assert summary.total_planned_hours == sum(e.planned_hours for e in entries)
    assert summary.total_planned_percent == sum(e.planned_percent for e in entries)
    assert summary.total_actual_hours == 0
    assert summary.total_variance == 0


def test_deleted_allocations_are_ignored(window):
    start, end = window
    allocations = [make_allocation("a1", "u1", start, end, 50, deleted=True)]
    assert aggregate_weekly_capacity(allocations, start, end) == []


def test_custom_week_hours(window):
    start, end = window
    entries = aggregate_weekly_capacity(
        [make_allocation("a1", "u1", start, start, 50)], start, end, hours_per_week=Decimal("37.5")
    )
    assert entries[0].planned_hours == Decimal("18.75")


class TestWindowRules:

    def test_spanning_allocation(self, window):
        start, end = window
        spanning = make_allocation("a1", "u1", start - timedelta(days=30), end + timedelta(days=30), 50)

        assert in_capacity_window(spanning, start, end, "overlap") is True
        assert in_capacity_window(spanning, start, end, "boundary") is False

    def test_allocation_with_one_bound_inside(self, window):
        start, end = window
        tail = make_allocation("a1", "u1", start - timedelta(days=300), start, 50)

        assert in_capacity_window(tail, start, end, "overlap") is True
        assert in_capacity_window(tail, start, end, "boundary") is True

    def test_allocation_outside(self, window):
        start, end = window
        later = make_allocation("a1", "u1", end + timedelta(days=1), end + timedelta(days=10), 50)

        assert in_capacity_window(later, start, end, "overlap") is False
        assert in_capacity_window(later, start, end, "boundary") is False

    def test_unknown_rule(self, window):
        with pytest.raises(ValueError):
            in_capacity_window(make_allocation("a1", "u1", *window, 50), *window, "calendar")
