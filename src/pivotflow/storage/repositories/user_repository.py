from typing import Dict, Iterable, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select

from pivotflow.storage.models_access_control import UserModel, RoleModel, PermissionModel
from .base import BaseRepository

class UserRepository(BaseRepository[UserModel]):

    # --- BaseRepository Implementation (Users) ---
    def create(self, session: Session, entity: UserModel) -> UserModel:
        session.add(entity)
        session.flush()
        return entity

    def get(self, session: Session, id: str) -> Optional[UserModel]:
        return session.get(UserModel, id)

    def update(self, session: Session, id: str, updates: dict) -> Optional[UserModel]:
        user = self.get(session, id)
        if not user:
            return None

        for key, value in updates.items():
            setattr(user, key, value)

        session.flush()
        return user

    def delete(self, session: Session, id: str) -> bool:
        user = self.get(session, id)
        if not user:
            return False
        session.delete(user)
        session.flush()
        return True

    def list(self, session: Session, limit: int = 100, offset: int = 0) -> List[UserModel]:
        stmt = select(UserModel).limit(limit).offset(offset)
        return list(session.scalars(stmt).all())

    # --- Organization scoped lookups ---

    def get_in_organization(self, session: Session, organization_id: str, user_id: str) -> Optional[UserModel]:
        stmt = select(UserModel).where(
            UserModel.id == user_id,
            UserModel.organization_id == organization_id,
        )
        return session.scalars(stmt).first()

    def display_names(self, session: Session, organization_id: str, user_ids: Iterable[str]) -> Dict[str, str]:
        """Map user ids to display names (falling back to email)."""
        ids = list(set(user_ids))
        if not ids:
            return {}
        stmt = select(UserModel).where(
            UserModel.id.in_(ids),
            UserModel.organization_id == organization_id,
        )
        return {u.id: u.display_name or u.email for u in session.scalars(stmt).all()}

    # --- Roles ---
    def create_role(self, session: Session, role: RoleModel) -> RoleModel:
        session.add(role)
        session.flush()
        return role

    def get_role_by_name(self, session: Session, name: str) -> Optional[RoleModel]:
        stmt = select(RoleModel).where(RoleModel.name == name)
        return session.scalars(stmt).first()

    def assign_role(self, session: Session, user_id: str, role_id: str) -> bool:
        user = self.get(session, user_id)
        role = session.get(RoleModel, role_id)
        if not user or not role:
            return False
        if role not in user.roles:
            user.roles.append(role)
            session.flush()
        return True

    # --- Permissions ---
    def create_permission(self, session: Session, permission: PermissionModel) -> PermissionModel:
        session.add(permission)
        session.flush()
        return permission

    def get_permission_by_name(self, session: Session, name: str) -> Optional[PermissionModel]:
        stmt = select(PermissionModel).where(PermissionModel.name == name)
        return session.scalars(stmt).first()
