"""
Resource allocations: who works on which project, at what share of their time, when.

- engine: pure conflict detection and weekly capacity aggregation
- repository: organization scoped persistence
- service: permission checked, audited lifecycle operations
"""
