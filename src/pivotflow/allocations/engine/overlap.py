"""
Overlap & Conflict Detection

Decides whether committing a user to a candidate date range at a given percentage
would push that user's concurrent commitment above the allowed maximum.

The model is conservative: every allocation overlapping the candidate range counts
with its full percentage, regardless of how many days actually overlap. Changes in
commitment inside the range are not decomposed day by day.

Usage:
    existing = repo.find_overlapping(session, org_id, user_id, start, end, exclude_id)
    conflicts = detect_conflicts(user_id, start, end, Decimal("50"), existing)
    if conflicts:
        raise AllocationConflictError(conflicts)
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from pivotflow.allocations.constants import ConflictType
from pivotflow.allocations.models import ResourceAllocationModel

DEFAULT_THRESHOLD = Decimal("100")


def as_decimal(value) -> Decimal:
    """Percentages may arrive as float/int from callers; go through str to keep 33.3 exact."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass
class ConflictingAllocation:
    """An existing allocation that contributes to an over-commitment."""
    id: str
    project_id: str
    project_name: str
    role: str
    allocation_percent: Decimal
    start_date: date
    end_date: date
    overlap_start: date
    overlap_end: date
    total_allocation: Decimal


@dataclass
class AllocationConflict:
    """Why a candidate allocation was rejected. Never persisted."""
    user_id: str
    total_allocation: Decimal
    requested_allocation: Decimal
    conflict_type: ConflictType = ConflictType.EXCEEDS_100_PERCENT
    user_name: str = ""
    conflicting_allocations: List[ConflictingAllocation] = field(default_factory=list)


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Inclusive ranges overlap iff each starts no later than the other ends."""
    return a_start <= b_end and b_start <= a_end


def overlap_window(
    a_start: date, a_end: date, b_start: date, b_end: date
) -> Optional[Tuple[date, date]]:
    """Exact intersection of two inclusive ranges, or None when disjoint."""
    if not ranges_overlap(a_start, a_end, b_start, b_end):
        return None
    return max(a_start, b_start), min(a_end, b_end)


def overlapping_allocations(
    user_id: str,
    start_date: date,
    end_date: date,
    existing: Iterable[ResourceAllocationModel],
    exclude_id: Optional[str] = None,
) -> List[ResourceAllocationModel]:
    """
    Filter `existing` down to the live allocations of `user_id` overlapping the range.

    The store already applies these filters; repeating them keeps the detector
    correct for any input collection.
    """
    return [
        alloc
        for alloc in existing
        if alloc.user_id == user_id
        and alloc.deleted_at is None
        and (exclude_id is None or alloc.id != exclude_id)
        and ranges_overlap(alloc.start_date, alloc.end_date, start_date, end_date)
    ]


def detect_conflicts(
    user_id: str,
    start_date: date,
    end_date: date,
    allocation_percent: Decimal,
    existing: Iterable[ResourceAllocationModel],
    exclude_id: Optional[str] = None,
    threshold: Decimal = DEFAULT_THRESHOLD,
    precise_overlap: bool = False,
    user_name: str = "",
) -> List[AllocationConflict]:
    """
    Check a candidate allocation against a user's existing allocations.

    Args:
        user_id: User the candidate allocation is for
        start_date: Candidate start (inclusive)
        end_date: Candidate end (inclusive)
        allocation_percent: Candidate percentage, 0 < p <= 100
        existing: Allocations to check against (typically the store's overlap query)
        exclude_id: Allocation to ignore, i.e. the one being updated
        threshold: Maximum summed percentage allowed
        precise_overlap: Report the exact intersection per conflicting allocation
            instead of the candidate range
        user_name: Display name copied into the report

    Returns:
        An empty list when the candidate fits, otherwise a single report with
        conflict type EXCEEDS_100_PERCENT.
    """
    requested = as_decimal(allocation_percent)
    overlapping = overlapping_allocations(user_id, start_date, end_date, existing, exclude_id)

    total = sum((as_decimal(a.allocation_percent) for a in overlapping), Decimal("0")) + requested
    if total <= as_decimal(threshold):
        return []

    conflicting = []
    for alloc in overlapping:
        if precise_overlap:
            window_start, window_end = overlap_window(alloc.start_date, alloc.end_date, start_date, end_date)
        else:
            window_start, window_end = start_date, end_date
        conflicting.append(
            ConflictingAllocation(
                id=alloc.id,
                project_id=alloc.project_id,
                project_name=alloc.project_name,
                role=alloc.role,
                allocation_percent=as_decimal(alloc.allocation_percent),
                start_date=alloc.start_date,
                end_date=alloc.end_date,
                overlap_start=window_start,
                overlap_end=window_end,
                total_allocation=total,
            )
        )

    return [
        AllocationConflict(
            user_id=user_id,
            user_name=user_name,
            conflicting_allocations=conflicting,
            total_allocation=total,
            requested_allocation=requested,
            conflict_type=ConflictType.EXCEEDS_100_PERCENT,
        )
    ]
