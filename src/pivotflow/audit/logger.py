"""
Audit Logger - persists audit events next to the change they describe.
"""

from sqlalchemy.orm import Session

from pivotflow.audit.base import AuditEvent, AuditSink
from pivotflow.platform.logging import get_logger
from pivotflow.storage.models_audit import AuditLogModel
from pivotflow.storage.repositories.audit_repository import AuditRepository

logger = get_logger(__name__)


class AuditLogger(AuditSink):
    """
    Writes AuditLogModel rows in the caller's transaction.

    Each row is written inside a SAVEPOINT, so a failed audit insert rolls back
    only itself and leaves the audited change committable.
    """

    def __init__(self, session: Session, audit_repo: AuditRepository | None = None):
        self.session = session
        self.audit_repo = audit_repo or AuditRepository()

    def log_event(self, event: AuditEvent) -> None:
        with self.session.begin_nested():
            entry = AuditLogModel(
                organization_id=event.organization_id,
                user_id=event.user_id,
                action=event.action,
                entity_type=event.entity_type,
                entity_id=event.entity_id,
                old_values=event.old_values,
                new_values=event.new_values,
                metadata_context=event.metadata,
                timestamp=event.timestamp,
            )
            self.audit_repo.create(self.session, entry)

        logger.info(
            "audit event",
            action=event.action,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            organization_id=event.organization_id,
            user_id=event.user_id,
        )
