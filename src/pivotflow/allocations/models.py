from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean, CheckConstraint, Date, ForeignKey, Index, Numeric, String, func
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pivotflow.storage.models import Base, JSON_TYPE, TIMESTAMP_TYPE, ProjectModel
from pivotflow.storage.models_access_control import UserModel


class ResourceAllocationModel(Base):
    __tablename__ = "resource_allocations"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    organization_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    project_id: Mapped[str] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(100), nullable=False)

    allocation_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2, asdecimal=True), nullable=False)
    # Both bounds inclusive
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    is_billable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    notes: Mapped[Dict[str, Any]] = mapped_column(JSON_TYPE, nullable=False, default=dict, server_default='{}')

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now(), onupdate=func.now())
    deleted_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP_TYPE, nullable=True, index=True)

    # Relationships
    project: Mapped[Optional[ProjectModel]] = relationship(lazy="joined")
    user: Mapped[Optional[UserModel]] = relationship(lazy="joined")

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_resource_allocations_date_order"),
        CheckConstraint(
            "allocation_percent > 0 AND allocation_percent <= 100",
            name="ck_resource_allocations_percent_range",
        ),
        Index("ix_resource_allocations_date_range", "start_date", "end_date"),
    )

    @property
    def project_name(self) -> str:
        return self.project.name if self.project is not None else ""

    @property
    def user_name(self) -> str:
        if self.user is None:
            return ""
        return self.user.display_name or self.user.email

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def snapshot(self) -> Dict[str, Any]:
        """JSON-safe copy of the row, used for audit old/new values."""
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "role": self.role,
            "allocation_percent": str(self.allocation_percent) if self.allocation_percent is not None else None,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "is_billable": self.is_billable,
            "notes": dict(self.notes or {}),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
        }
