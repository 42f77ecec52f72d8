from typing import Optional, Dict, Any, List
from sqlalchemy import select
from sqlalchemy.orm import Session

from pivotflow.storage.repositories.base import BaseRepository
from pivotflow.storage.models_audit import AuditLogModel

class AuditRepository(BaseRepository[AuditLogModel]):
    """Repository for Audit Logs."""

    def create(self, session: Session, entity: AuditLogModel) -> AuditLogModel:
        session.add(entity)
        session.flush()
        return entity

    def get(self, session: Session, id: str) -> Optional[AuditLogModel]:
        return session.get(AuditLogModel, id)

    def update(self, session: Session, id: str, updates: Dict[str, Any]) -> Optional[AuditLogModel]:
        raise NotImplementedError("Audit logs are immutable")

    def delete(self, session: Session, id: str) -> bool:
        raise NotImplementedError("Audit logs are immutable")

    def list(self, session: Session, limit: int = 100, offset: int = 0) -> List[AuditLogModel]:
        stmt = select(AuditLogModel).order_by(AuditLogModel.timestamp.desc()).limit(limit).offset(offset)
        return list(session.scalars(stmt).all())

    def list_for_entity(
        self,
        session: Session,
        organization_id: str,
        entity_type: str,
        entity_id: str,
    ) -> List[AuditLogModel]:
        """History of one entity, oldest first."""
        stmt = (
            select(AuditLogModel)
            .where(
                AuditLogModel.organization_id == organization_id,
                AuditLogModel.entity_type == entity_type,
                AuditLogModel.entity_id == entity_id,
            )
            .order_by(AuditLogModel.timestamp.asc())
        )
        return list(session.scalars(stmt).all())

