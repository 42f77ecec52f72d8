"""
Allocation engine failures.

Each failure carries a `kind` tag and a structured payload so the route layer can
pick a status code and body without parsing messages.
"""

from dataclasses import asdict
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pivotflow.allocations.engine.overlap import AllocationConflict


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class AllocationError(Exception):
    """Base class for tagged allocation engine failures."""
    kind = "allocation_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "detail": self.message}


class PermissionDenied(AllocationError):
    kind = "permission_denied"

    def __init__(self, permission: str, reason: Optional[str] = None):
        super().__init__(f"Missing permission: {permission}")
        self.permission = permission
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["permission"] = self.permission
        return data


class NotFound(AllocationError):
    """Missing, soft-deleted or owned by another organization; deliberately indistinguishable."""
    kind = "not_found"

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(f"{entity_type} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["entity_type"] = self.entity_type
        data["entity_id"] = self.entity_id
        return data


class AllocationConflictError(AllocationError):
    kind = "conflict"

    def __init__(self, conflicts: List[AllocationConflict]):
        super().__init__("Allocation conflicts detected")
        self.conflicts = conflicts

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["conflicts"] = [_jsonable(asdict(c)) for c in self.conflicts]
        return data


class AllocationValidationError(AllocationError):
    kind = "validation_error"

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_pydantic(cls, exc) -> "AllocationValidationError":
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
            for err in exc.errors()
        ]
        first = errors[0]["msg"] if errors else "Invalid allocation"
        return cls(first, errors)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = _jsonable(self.errors)
        return data
