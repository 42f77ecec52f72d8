"""
PivotFlow Metrics

Prometheus collectors for the allocation engine. Exposed by the API under /metrics.
"""

from prometheus_client import Counter, Histogram

CONFLICT_CHECK_SECONDS = Histogram(
    "pivotflow_allocation_conflict_check_seconds",
    "Time spent fetching and evaluating overlapping allocations for a conflict check.",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

CONFLICTS_DETECTED = Counter(
    "pivotflow_allocation_conflicts_total",
    "Allocation mutations rejected because they would over-commit a user.",
    ["operation"],
)

ALLOCATION_OPERATIONS = Counter(
    "pivotflow_allocation_operations_total",
    "Allocation engine operations by outcome.",
    ["operation", "outcome"],
)

AUDIT_FAILURES = Counter(
    "pivotflow_audit_failures_total",
    "Audit events that could not be recorded.",
    ["action"],
)
