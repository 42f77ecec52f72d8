"""Audit trail for PivotFlow mutations."""

from .base import AuditEvent, AuditSink
from .logger import AuditLogger

__all__ = ["AuditEvent", "AuditSink", "AuditLogger"]
