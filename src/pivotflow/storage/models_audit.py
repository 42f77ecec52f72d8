import datetime
import uuid
from typing import Any, Dict, Optional
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from pivotflow.storage.models import Base, JSON_TYPE

class AuditLogModel(Base):
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    timestamp: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    organization_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    # Nullable for system actions
    user_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    action: Mapped[str] = mapped_column(String, nullable=False)  # e.g., "allocations.create"
    entity_type: Mapped[str] = mapped_column(String, nullable=False) # e.g., "ResourceAllocation"
    entity_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    old_values: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON_TYPE, nullable=True)
    new_values: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON_TYPE, nullable=True)
    metadata_context: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON_TYPE, nullable=True)
