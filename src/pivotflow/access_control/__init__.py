"""Role based access control for PivotFlow."""

from .base import PermissionChecker, PermissionResult
from .rbac import RBACEngine
from .service import PermissionService

__all__ = ["PermissionChecker", "PermissionResult", "RBACEngine", "PermissionService"]
