"""
Weekly Capacity Aggregation

Buckets a project's allocations into 7-day weeks over a trailing window and
reports planned utilization per user per week.

Weeks are anchored to the window start, not to calendar (Mon-Sun) weeks, so
bucket boundaries move with the clock. Output is sparse: a user only appears in
the weeks one of their allocations touches.

Actual hours come from time tracking, which is not wired into this engine; actual
hours, actual percent and variance are reported as zero.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Iterator, List, Tuple

from pivotflow.allocations.engine.overlap import as_decimal, ranges_overlap
from pivotflow.allocations.models import ResourceAllocationModel

DAYS_PER_WEEK = 7
DEFAULT_WEEK_HOURS = Decimal("40")

WINDOW_RULE_OVERLAP = "overlap"
WINDOW_RULE_BOUNDARY = "boundary"

ZERO = Decimal("0")


@dataclass
class CapacityEntry:
    """Planned vs actual utilization of one user in one week."""
    user_id: str
    user_name: str
    week_start: date
    week_end: date
    planned_hours: Decimal = ZERO
    actual_hours: Decimal = ZERO
    planned_percent: Decimal = ZERO
    actual_percent: Decimal = ZERO
    variance: Decimal = ZERO


@dataclass
class WeeklyCapacitySummary:
    project_id: str
    project_name: str
    week_start: date
    week_end: date
    allocations: List[CapacityEntry] = field(default_factory=list)
    total_planned_hours: Decimal = ZERO
    total_actual_hours: Decimal = ZERO
    total_planned_percent: Decimal = ZERO
    total_actual_percent: Decimal = ZERO
    total_variance: Decimal = ZERO


def capacity_window(now: datetime, weeks: int) -> Tuple[date, date]:
    """Trailing window ending today: [today - weeks*7 days, today]."""
    end = now.date() if isinstance(now, datetime) else now
    return end - timedelta(days=weeks * DAYS_PER_WEEK), end


def iter_weeks(window_start: date, window_end: date) -> Iterator[Tuple[date, date]]:
    """Yield inclusive 7-day buckets starting at window_start while a bucket starts inside the window."""
    week_start = window_start
    while week_start <= window_end:
        yield week_start, week_start + timedelta(days=DAYS_PER_WEEK - 1)
        week_start += timedelta(days=DAYS_PER_WEEK)


def in_capacity_window(
    allocation: ResourceAllocationModel,
    window_start: date,
    window_end: date,
    rule: str = WINDOW_RULE_OVERLAP,
) -> bool:
    """
    Whether an allocation belongs to the capacity window.

    "overlap" admits any allocation sharing a day with the window. "boundary"
    admits an allocation only when its start or its end falls inside the window,
    so one spanning the whole window is left out.
    """
    if rule == WINDOW_RULE_BOUNDARY:
        return (
            window_start <= allocation.start_date <= window_end
            or window_start <= allocation.end_date <= window_end
        )
    if rule == WINDOW_RULE_OVERLAP:
        return ranges_overlap(allocation.start_date, allocation.end_date, window_start, window_end)
    raise ValueError(f"Unknown capacity window rule: {rule}")


def aggregate_weekly_capacity(
    allocations: Iterable[ResourceAllocationModel],
    window_start: date,
    window_end: date,
    hours_per_week: Decimal = DEFAULT_WEEK_HOURS,
) -> List[CapacityEntry]:
    """
    Per-user-per-week planned capacity, flattened week by week.

    Within a week users keep the order in which their first allocation appears.
    """
    live = [a for a in allocations if a.deleted_at is None]
    hours = as_decimal(hours_per_week)
    entries: List[CapacityEntry] = []

    for week_start, week_end in iter_weeks(window_start, window_end):
        by_user: "OrderedDict[str, CapacityEntry]" = OrderedDict()
        for alloc in live:
            if not ranges_overlap(alloc.start_date, alloc.end_date, week_start, week_end):
                continue
            entry = by_user.get(alloc.user_id)
            if entry is None:
                entry = CapacityEntry(
                    user_id=alloc.user_id,
                    user_name=alloc.user_name,
                    week_start=week_start,
                    week_end=week_end,
                )
                by_user[alloc.user_id] = entry
            percent = as_decimal(alloc.allocation_percent)
            entry.planned_percent += percent
            entry.planned_hours += percent / Decimal("100") * hours
        entries.extend(by_user.values())

    return entries


def summarize_capacity(
    project_id: str,
    project_name: str,
    window_start: date,
    window_end: date,
    entries: List[CapacityEntry],
) -> WeeklyCapacitySummary:
    """Attach project level totals; each total is the exact sum of its entry field."""
    return WeeklyCapacitySummary(
        project_id=project_id,
        project_name=project_name,
        week_start=window_start,
        week_end=window_end,
        allocations=entries,
        total_planned_hours=sum((e.planned_hours for e in entries), ZERO),
        total_actual_hours=sum((e.actual_hours for e in entries), ZERO),
        total_planned_percent=sum((e.planned_percent for e in entries), ZERO),
        total_actual_percent=sum((e.actual_percent for e in entries), ZERO),
        total_variance=sum((e.variance for e in entries), ZERO),
    )
