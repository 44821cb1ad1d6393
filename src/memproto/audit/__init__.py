"""Audit subsystem — append-only JSONL trail of store operations."""

from memproto.audit.schemas import AuditEvent
from memproto.audit.schemas import AuditEventType
from memproto.audit.store import AuditLogger

__all__ = [
    "AuditEvent",
    "AuditEventType",
    "AuditLogger",
]
