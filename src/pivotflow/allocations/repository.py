from datetime import date, datetime, timezone
import hashlib
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import and_, func, or_, select, text
from sqlalchemy.orm import Session

from pivotflow.allocations.models import ResourceAllocationModel
from pivotflow.allocations.schemas import AllocationFilters
from pivotflow.storage.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

# Columns a patch may touch; identity and tenancy are immutable
UPDATABLE_FIELDS = ("role", "allocation_percent", "start_date", "end_date", "is_billable", "notes")


def advisory_lock_key(organization_id: str, user_id: str) -> int:
    """Stable signed 64-bit key for pg_advisory_xact_lock."""
    digest = hashlib.blake2b(f"allocations:{organization_id}:{user_id}".encode(), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


class AllocationRepository(BaseRepository[ResourceAllocationModel]):
    """
    Store for resource allocations.

    Every query excludes soft-deleted rows. Organization scoped methods take the
    organization id explicitly; callers must always pass it through.
    """

    def _live(self):
        return ResourceAllocationModel.deleted_at.is_(None)

    # --- BaseRepository Implementation ---

    def create(self, session: Session, entity: ResourceAllocationModel) -> ResourceAllocationModel:
        session.add(entity)
        # Flush to surface constraint violations now, caller commits
        session.flush()
        session.refresh(entity)
        return entity

    def get(self, session: Session, id: str) -> Optional[ResourceAllocationModel]:
        stmt = select(ResourceAllocationModel).where(ResourceAllocationModel.id == id, self._live())
        return session.scalars(stmt).first()

    def update(
        self, session: Session, id: str, updates: Dict[str, Any], now: Optional[datetime] = None
    ) -> Optional[ResourceAllocationModel]:
        allocation = self.get(session, id)
        if not allocation:
            return None

        for key, value in updates.items():
            if key not in UPDATABLE_FIELDS:
                raise ValueError(f"Field '{key}' cannot be updated")
            setattr(allocation, key, value)
        allocation.updated_at = now or datetime.now(timezone.utc)

        session.flush()
        session.refresh(allocation)
        return allocation

    def delete(self, session: Session, id: str) -> bool:
        return self.soft_delete(session, id)

    def list(self, session: Session, limit: int = 100, offset: int = 0) -> List[ResourceAllocationModel]:
        stmt = (
            select(ResourceAllocationModel)
            .where(self._live())
            .order_by(ResourceAllocationModel.created_at, ResourceAllocationModel.id)
            .limit(limit)
            .offset(offset)
        )
        return list(session.scalars(stmt).all())

    # --- Allocation store ---

    def get_for_organization(
        self, session: Session, organization_id: str, id: str
    ) -> Optional[ResourceAllocationModel]:
        stmt = select(ResourceAllocationModel).where(
            ResourceAllocationModel.id == id,
            ResourceAllocationModel.organization_id == organization_id,
            self._live(),
        )
        return session.scalars(stmt).first()

    def soft_delete(self, session: Session, id: str, now: Optional[datetime] = None) -> bool:
        """Stamp deleted_at with `now` (the caller's clock), defaulting to the current UTC time."""
        allocation = self.get(session, id)
        if not allocation:
            return False
        now = now or datetime.now(timezone.utc)
        allocation.deleted_at = now
        allocation.updated_at = now
        session.flush()
        return True

    def find_overlapping(
        self,
        session: Session,
        organization_id: str,
        user_id: str,
        start_date: date,
        end_date: date,
        exclude_id: Optional[str] = None,
    ) -> List[ResourceAllocationModel]:
        """Live allocations of a user whose inclusive range shares a day with [start_date, end_date]."""
        conditions = [
            ResourceAllocationModel.organization_id == organization_id,
            ResourceAllocationModel.user_id == user_id,
            self._live(),
            ResourceAllocationModel.start_date <= end_date,
            ResourceAllocationModel.end_date >= start_date,
        ]
        if exclude_id:
            conditions.append(ResourceAllocationModel.id != exclude_id)

        stmt = (
            select(ResourceAllocationModel)
            .where(*conditions)
            .order_by(ResourceAllocationModel.start_date, ResourceAllocationModel.id)
        )
        return list(session.scalars(stmt).all())

    def find_by_project_window(
        self,
        session: Session,
        organization_id: str,
        project_id: str,
        start_date: date,
        end_date: date,
        rule: str = "overlap",
    ) -> List[ResourceAllocationModel]:
        """
        Live allocations of a project belonging to the capacity window.

        rule="overlap" selects ranges sharing a day with the window; rule="boundary"
        selects ranges whose start or end falls inside it.
        """
        if rule == "boundary":
            window = or_(
                and_(ResourceAllocationModel.start_date >= start_date, ResourceAllocationModel.start_date <= end_date),
                and_(ResourceAllocationModel.end_date >= start_date, ResourceAllocationModel.end_date <= end_date),
            )
        elif rule == "overlap":
            window = and_(
                ResourceAllocationModel.start_date <= end_date,
                ResourceAllocationModel.end_date >= start_date,
            )
        else:
            raise ValueError(f"Unknown capacity window rule: {rule}")

        stmt = (
            select(ResourceAllocationModel)
            .where(
                ResourceAllocationModel.organization_id == organization_id,
                ResourceAllocationModel.project_id == project_id,
                self._live(),
                window,
            )
            .order_by(ResourceAllocationModel.start_date, ResourceAllocationModel.id)
        )
        return list(session.scalars(stmt).all())

    def list_filtered(
        self,
        session: Session,
        organization_id: str,
        filters: AllocationFilters,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[ResourceAllocationModel], int]:
        """One page of matching allocations (oldest first) and the total match count."""
        conditions = [
            ResourceAllocationModel.organization_id == organization_id,
            self._live(),
        ]
        if filters.project_id:
            conditions.append(ResourceAllocationModel.project_id == filters.project_id)
        if filters.user_id:
            conditions.append(ResourceAllocationModel.user_id == filters.user_id)
        if filters.role:
            conditions.append(ResourceAllocationModel.role == filters.role.value)
        if filters.start_date:
            conditions.append(ResourceAllocationModel.start_date >= filters.start_date)
        if filters.end_date:
            conditions.append(ResourceAllocationModel.end_date <= filters.end_date)
        if filters.is_billable is not None:
            conditions.append(ResourceAllocationModel.is_billable == filters.is_billable)

        stmt = (
            select(ResourceAllocationModel)
            .where(*conditions)
            .order_by(ResourceAllocationModel.created_at, ResourceAllocationModel.id)
            .limit(limit)
            .offset(offset)
        )
        count_stmt = select(func.count()).select_from(ResourceAllocationModel).where(*conditions)

        items = list(session.scalars(stmt).all())
        total = session.scalar(count_stmt) or 0
        return items, total

    # --- Concurrency ---

    def lock_user(self, session: Session, organization_id: str, user_id: str) -> None:
        """
        Serialize allocation writes for one user until the session's transaction ends.

        Uses a transaction scoped advisory lock on PostgreSQL. Other dialects have no
        equivalent; the service's in-process lock covers them.
        """
        bind = session.get_bind()
        if bind.dialect.name != "postgresql":
            return
        key = advisory_lock_key(organization_id, user_id)
        logger.debug(f"Taking advisory lock {key} for user {user_id}")
        session.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})
