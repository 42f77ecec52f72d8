from typing import Annotated, Optional
from fastapi import Depends, HTTPException, status, Header
from sqlalchemy.orm import Session

from pivotflow.api.database import get_db
from pivotflow.platform.logging import bind_request_context
from pivotflow.storage.repositories.user_repository import UserRepository
from pivotflow.storage.models_access_control import UserModel

# Helper for current implementation (Header based Auth)
API_KEY_HEADER = "X-User-ID"

def get_user_repository() -> UserRepository:
    return UserRepository()

def get_current_user(
    x_user_id: Annotated[Optional[str], Header(alias=API_KEY_HEADER)] = None,
    db: Session = Depends(get_db),
    user_repo: UserRepository = Depends(get_user_repository)
) -> Optional[UserModel]:
    """
    Dependency to retrieve the current user based on X-User-ID header.
    In production, this would parse a JWT token.
    """
    if not x_user_id:
        return None

    user = user_repo.get(db, x_user_id)
    if not user or user.is_active is False:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid User ID"
        )
    bind_request_context(organization_id=user.organization_id, user_id=user.id)
    return user

def require_current_user(
    user: Annotated[Optional[UserModel], Depends(get_current_user)]
) -> UserModel:
    """Enforce that a user is authenticated."""
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    return user
