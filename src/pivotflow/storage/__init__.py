"""PivotFlow Storage Layer - Postgres adapter, SQLAlchemy models and repositories."""

from .base import StorageAdapter
from .postgres_adapter import PostgresAdapter, PostgresConfig
from .models import Base, ProjectModel
from .models_access_control import UserModel, RoleModel, PermissionModel
from .models_audit import AuditLogModel

__all__ = [
    "StorageAdapter",
    "PostgresAdapter",
    "PostgresConfig",
    "Base",
    "ProjectModel",
    "UserModel",
    "RoleModel",
    "PermissionModel",
    "AuditLogModel",
]
