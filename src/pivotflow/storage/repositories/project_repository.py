from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session

from pivotflow.storage.models import ProjectModel


class ProjectRepository:
    """Read-only project lookups used by the allocation engine."""

    def find_project(self, session: Session, organization_id: str, project_id: str) -> Optional[ProjectModel]:
        stmt = select(ProjectModel).where(
            ProjectModel.id == project_id,
            ProjectModel.organization_id == organization_id,
            ProjectModel.deleted_at.is_(None),
        )
        return session.scalars(stmt).first()

    def create(self, session: Session, entity: ProjectModel) -> ProjectModel:
        session.add(entity)
        session.flush()
        return entity
