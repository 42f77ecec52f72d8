from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PermissionResult:
    granted: bool
    reason: Optional[str] = None


class PermissionChecker(ABC):
    """Yes/no capability check keyed by (user, permission name)."""

    @abstractmethod
    def has_permission(self, user_id: str, permission_name: str) -> PermissionResult:
        pass
