"""
Allocation Service - lifecycle of resource allocations.

Every operation runs the same pipeline:
1. Permission check through the PermissionChecker
2. Input validation, before any store access
3. Conflict detection / capacity aggregation over records read from the store
4. Mutation, audit event and commit

Mutations for one user are serialized (in-process lock plus a database advisory
lock) from the conflict check until the commit, so two concurrent writes can never
jointly push a user above the allowed maximum.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
import functools
import math
import time
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Type, TypeVar, Union
from uuid import uuid4

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from pivotflow.access_control.base import PermissionChecker
from pivotflow.allocations.constants import (
    AUDIT_ACTION_CREATE,
    AUDIT_ACTION_DELETE,
    AUDIT_ACTION_UPDATE,
    CONFLICT_RELEVANT_FIELDS,
    ENTITY_TYPE,
    AllocationPermission,
)
from pivotflow.allocations.engine import (
    AllocationConflict,
    WeeklyCapacitySummary,
    aggregate_weekly_capacity,
    capacity_window,
    detect_conflicts,
    summarize_capacity,
)
from pivotflow.allocations.errors import (
    AllocationConflictError,
    AllocationError,
    AllocationValidationError,
    NotFound,
    PermissionDenied,
)
from pivotflow.allocations.locking import KeyedLock, user_locks
from pivotflow.allocations.models import ResourceAllocationModel
from pivotflow.allocations.repository import AllocationRepository
from pivotflow.allocations.schemas import AllocationCreate, AllocationFilters, AllocationUpdate
from pivotflow.audit.base import AuditEvent, AuditSink
from pivotflow.platform.config import Settings, settings as default_settings
from pivotflow.platform.logging import get_logger
from pivotflow.platform.metrics import (
    ALLOCATION_OPERATIONS,
    AUDIT_FAILURES,
    CONFLICT_CHECK_SECONDS,
    CONFLICTS_DETECTED,
)
from pivotflow.storage.repositories.project_repository import ProjectRepository
from pivotflow.storage.repositories.user_repository import UserRepository

logger = get_logger(__name__)

S = TypeVar("S", bound=BaseModel)


@dataclass
class Page:
    items: List[ResourceAllocationModel] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


def _instrumented(operation: str) -> Callable:
    """Count each call by outcome: success or the failure kind."""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                result = func(*args, **kwargs)
            except AllocationError as exc:
                ALLOCATION_OPERATIONS.labels(operation=operation, outcome=exc.kind).inc()
                raise
            except Exception:
                ALLOCATION_OPERATIONS.labels(operation=operation, outcome="error").inc()
                raise
            ALLOCATION_OPERATIONS.labels(operation=operation, outcome="success").inc()
            return result
        return wrapper
    return decorator


class AllocationService:
    """
    Allocation engine façade for one acting user within one organization.

    Args:
        organization_id: Tenant every read and write is scoped to
        user_id: Acting user, checked against the PermissionChecker
        session: Database session; the service commits its own mutations
        allocation_repo: Allocation store
        project_repo: Project lookups
        permissions: Permission collaborator
        audit: Audit collaborator; its failures never fail a mutation
        user_repo: User lookups (allocation targets, display names)
        settings: Allocation policy (threshold, week hours, window rule, paging)
        clock: Returns "now"; the capacity window ends on clock().date()
        locks: Per-user mutex registry, process wide by default
    """

    def __init__(
        self,
        organization_id: str,
        user_id: str,
        session: Session,
        allocation_repo: AllocationRepository,
        project_repo: ProjectRepository,
        permissions: PermissionChecker,
        audit: AuditSink,
        user_repo: Optional[UserRepository] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        locks: Optional[KeyedLock] = None,
    ):
        self.organization_id = organization_id
        self.user_id = user_id
        self.session = session
        self.allocation_repo = allocation_repo
        self.project_repo = project_repo
        self.permissions = permissions
        self.audit = audit
        self.user_repo = user_repo or UserRepository()
        self.settings = settings or default_settings
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.locks = locks or user_locks

    # --- Pipeline helpers ---

    def _require(self, permission: AllocationPermission) -> None:
        result = self.permissions.has_permission(self.user_id, permission.value)
        if not result.granted:
            logger.warning(
                "allocation permission denied",
                organization_id=self.organization_id,
                user_id=self.user_id,
                permission=permission.value,
                reason=result.reason,
            )
            raise PermissionDenied(permission.value, result.reason)

    def _validate(self, schema: Type[S], data: Union[S, Mapping[str, Any]]) -> S:
        if isinstance(data, schema):
            return data
        try:
            if isinstance(data, BaseModel):
                data = data.model_dump(exclude_unset=True)
            return schema.model_validate(data)
        except ValidationError as e:
            raise AllocationValidationError.from_pydantic(e) from e

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    @contextmanager
    def _user_critical_section(self, user_id: str) -> Iterator[None]:
        """Hold the user's locks from the conflict check through the commit."""
        with self.locks.hold((self.organization_id, user_id)):
            with self._transaction():
                self.allocation_repo.lock_user(self.session, self.organization_id, user_id)
                yield

    def _check_conflicts(
        self,
        operation: str,
        user_id: str,
        start_date,
        end_date,
        allocation_percent: Decimal,
        exclude_id: Optional[str] = None,
    ) -> List[AllocationConflict]:
        started = time.perf_counter()
        existing = self.allocation_repo.find_overlapping(
            self.session, self.organization_id, user_id, start_date, end_date, exclude_id
        )
        conflicts = detect_conflicts(
            user_id,
            start_date,
            end_date,
            allocation_percent,
            existing,
            exclude_id=exclude_id,
            threshold=Decimal(str(self.settings.MAX_ALLOCATION_PERCENT)),
            precise_overlap=self.settings.CONFLICT_PRECISE_OVERLAP,
        )
        elapsed = time.perf_counter() - started
        CONFLICT_CHECK_SECONDS.observe(elapsed)
        logger.debug(
            "allocation conflict check",
            user_id=user_id,
            overlapping=len(existing),
            conflicts=len(conflicts),
            duration_ms=round(elapsed * 1000, 3),
        )

        if conflicts:
            CONFLICTS_DETECTED.labels(operation=operation).inc()
            names = self.user_repo.display_names(self.session, self.organization_id, [user_id])
            for conflict in conflicts:
                conflict.user_name = names.get(user_id, "")
        return conflicts

    def _audit(
        self,
        action: str,
        entity_id: str,
        old_values: Optional[Dict[str, Any]],
        new_values: Optional[Dict[str, Any]],
    ) -> None:
        event = AuditEvent(
            action=action,
            entity_type=ENTITY_TYPE,
            entity_id=entity_id,
            organization_id=self.organization_id,
            user_id=self.user_id,
            old_values=old_values,
            new_values=new_values,
        )
        try:
            self.audit.log_event(event)
        except Exception:
            AUDIT_FAILURES.labels(action=action).inc()
            logger.error(
                "audit logging failed",
                action=action,
                entity_id=entity_id,
                organization_id=self.organization_id,
                exc_info=True,
            )

    def _get_live(self, allocation_id: str) -> ResourceAllocationModel:
        allocation = self.allocation_repo.get_for_organization(self.session, self.organization_id, allocation_id)
        if allocation is None:
            raise NotFound(ENTITY_TYPE, allocation_id)
        return allocation

    # --- Operations ---

    @_instrumented("create")
    def create_allocation(self, data: Union[AllocationCreate, Mapping[str, Any]]) -> ResourceAllocationModel:
        self._require(AllocationPermission.CREATE)
        payload = self._validate(AllocationCreate, data)

        if self.project_repo.find_project(self.session, self.organization_id, payload.project_id) is None:
            raise NotFound("Project", payload.project_id)
        if self.user_repo.get_in_organization(self.session, self.organization_id, payload.user_id) is None:
            raise NotFound("User", payload.user_id)

        with self._user_critical_section(payload.user_id):
            conflicts = self._check_conflicts(
                "create",
                payload.user_id,
                payload.start_date,
                payload.end_date,
                payload.allocation_percent,
            )
            if conflicts:
                raise AllocationConflictError(conflicts)

            now = self.clock()
            created = self.allocation_repo.create(
                self.session,
                ResourceAllocationModel(
                    id=str(uuid4()),
                    organization_id=self.organization_id,
                    project_id=payload.project_id,
                    user_id=payload.user_id,
                    role=payload.role.value,
                    allocation_percent=payload.allocation_percent,
                    start_date=payload.start_date,
                    end_date=payload.end_date,
                    is_billable=payload.is_billable,
                    notes=dict(payload.notes),
                    created_at=now,
                    updated_at=now,
                ),
            )
            self._audit(AUDIT_ACTION_CREATE, created.id, None, created.snapshot())

        logger.info(
            "allocation created",
            allocation_id=created.id,
            project_id=created.project_id,
            target_user_id=created.user_id,
            allocation_percent=str(created.allocation_percent),
        )
        return created

    @_instrumented("update")
    def update_allocation(
        self, allocation_id: str, patch: Union[AllocationUpdate, Mapping[str, Any]]
    ) -> ResourceAllocationModel:
        self._require(AllocationPermission.UPDATE)
        changes = self._validate(AllocationUpdate, patch).model_dump(exclude_unset=True)

        existing = self._get_live(allocation_id)
        if not changes:
            return existing

        with self._user_critical_section(existing.user_id):
            # Re-read under the lock; a concurrent writer may have changed or deleted it
            self.session.expire(existing)
            existing = self._get_live(allocation_id)
            old_values = existing.snapshot()

            start_date = changes.get("start_date", existing.start_date)
            end_date = changes.get("end_date", existing.end_date)
            allocation_percent = changes.get("allocation_percent", existing.allocation_percent)
            if end_date < start_date:
                raise AllocationValidationError("End date must be after or equal to start date")

            if CONFLICT_RELEVANT_FIELDS & changes.keys():
                conflicts = self._check_conflicts(
                    "update",
                    existing.user_id,
                    start_date,
                    end_date,
                    allocation_percent,
                    exclude_id=allocation_id,
                )
                if conflicts:
                    raise AllocationConflictError(conflicts)

            if "role" in changes:
                changes["role"] = changes["role"].value
            updated = self.allocation_repo.update(self.session, allocation_id, changes, now=self.clock())
            self._audit(AUDIT_ACTION_UPDATE, allocation_id, old_values, updated.snapshot())

        logger.info("allocation updated", allocation_id=allocation_id, fields=sorted(changes))
        return updated

    @_instrumented("delete")
    def delete_allocation(self, allocation_id: str) -> None:
        self._require(AllocationPermission.DELETE)
        existing = self._get_live(allocation_id)

        with self._transaction():
            old_values = existing.snapshot()
            self.allocation_repo.soft_delete(self.session, allocation_id, now=self.clock())
            self._audit(AUDIT_ACTION_DELETE, allocation_id, old_values, None)

        logger.info("allocation deleted", allocation_id=allocation_id)

    @_instrumented("list")
    def get_allocations(
        self,
        filters: Union[AllocationFilters, Mapping[str, Any], None] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Page:
        self._require(AllocationPermission.READ)
        criteria = self._validate(AllocationFilters, filters or {})
        page_size = self.settings.ALLOCATIONS_PAGE_SIZE if page_size is None else page_size
        if page < 1:
            raise AllocationValidationError("page must be at least 1")
        if not 1 <= page_size <= self.settings.ALLOCATIONS_MAX_PAGE_SIZE:
            raise AllocationValidationError(
                f"page_size must be between 1 and {self.settings.ALLOCATIONS_MAX_PAGE_SIZE}"
            )

        items, total = self.allocation_repo.list_filtered(
            self.session,
            self.organization_id,
            criteria,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
        return Page(items=items, total=total, page=page, page_size=page_size)

    @_instrumented("get")
    def get_allocation(self, allocation_id: str) -> ResourceAllocationModel:
        self._require(AllocationPermission.READ)
        return self._get_live(allocation_id)

    @_instrumented("capacity")
    def get_project_capacity(self, project_id: str, weeks: Optional[int] = None) -> WeeklyCapacitySummary:
        self._require(AllocationPermission.VIEW_CAPACITY)
        weeks = self.settings.CAPACITY_DEFAULT_WEEKS if weeks is None else weeks
        if isinstance(weeks, bool) or not isinstance(weeks, int) or not 1 <= weeks <= self.settings.CAPACITY_MAX_WEEKS:
            raise AllocationValidationError(f"weeks must be an integer between 1 and {self.settings.CAPACITY_MAX_WEEKS}")

        project = self.project_repo.find_project(self.session, self.organization_id, project_id)
        if project is None:
            raise NotFound("Project", project_id)

        window_start, window_end = capacity_window(self.clock(), weeks)
        allocations = self.allocation_repo.find_by_project_window(
            self.session,
            self.organization_id,
            project_id,
            window_start,
            window_end,
            rule=self.settings.CAPACITY_WINDOW_RULE,
        )
        entries = aggregate_weekly_capacity(
            allocations,
            window_start,
            window_end,
            hours_per_week=Decimal(str(self.settings.NOMINAL_WEEK_HOURS)),
        )
        return summarize_capacity(project.id, project.name, window_start, window_end, entries)
