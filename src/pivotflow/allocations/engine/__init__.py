"""Pure allocation algorithms: conflict detection and weekly capacity aggregation."""

from .overlap import (
    AllocationConflict,
    ConflictingAllocation,
    detect_conflicts,
    overlap_window,
    ranges_overlap,
)
from .capacity import (
    CapacityEntry,
    WeeklyCapacitySummary,
    aggregate_weekly_capacity,
    capacity_window,
    in_capacity_window,
    iter_weeks,
    summarize_capacity,
)

__all__ = [
    "AllocationConflict",
    "ConflictingAllocation",
    "detect_conflicts",
    "overlap_window",
    "ranges_overlap",
    "CapacityEntry",
    "WeeklyCapacitySummary",
    "aggregate_weekly_capacity",
    "capacity_window",
    "in_capacity_window",
    "iter_weeks",
    "summarize_capacity",
]
