from typing import Annotated
from fastapi import Depends
from sqlalchemy.orm import Session

from pivotflow.access_control.service import PermissionService
from pivotflow.allocations.repository import AllocationRepository
from pivotflow.allocations.service import AllocationService
from pivotflow.api.database import get_db, get_postgres_adapter, close_postgres_adapter, init_database
from pivotflow.api.dependencies_auth import require_current_user
from pivotflow.audit.logger import AuditLogger
from pivotflow.platform.config import settings
from pivotflow.storage.models_access_control import UserModel
from pivotflow.storage.repositories.project_repository import ProjectRepository
from pivotflow.storage.repositories.user_repository import UserRepository


async def init_resources() -> None:
    """Initialize all resources (DB)."""
    init_database()


async def close_resources() -> None:
    """Close all resources."""
    close_postgres_adapter()


def get_allocation_service(
    session: Annotated[Session, Depends(get_db)],
    current_user: Annotated[UserModel, Depends(require_current_user)],
) -> AllocationService:
    """Allocation service acting as the current user inside the user's organization."""
    return AllocationService(
        organization_id=current_user.organization_id,
        user_id=current_user.id,
        session=session,
        allocation_repo=AllocationRepository(),
        project_repo=ProjectRepository(),
        permissions=PermissionService(session, current_user.organization_id),
        audit=AuditLogger(session),
        user_repo=UserRepository(),
        settings=settings,
    )
