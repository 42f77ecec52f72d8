"""
PivotFlow - Resource Allocation Backend

This package contains the PivotFlow allocation services:
- api: FastAPI REST endpoints
- allocations: Allocation engine (conflict detection, weekly capacity, lifecycle)
- storage: Database adapter, models and repositories (Postgres via SQLAlchemy)
- access_control: Role-based permission checks
- audit: Audit event recording
- platform: Cross-cutting concerns (config, logging, metrics)
"""

__version__ = "0.1.0"
