"""Audit event types and data model."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import Field


class AuditEventType(str, Enum):
    """Store operations that leave an audit record."""

    REMEMBER = "REMEMBER"
    FORGET = "FORGET"
    UPDATE = "UPDATE"
    EXPORT = "EXPORT"
    IMPORT = "IMPORT"
    VERIFY = "VERIFY"


class AuditEvent(BaseModel):
    """A single immutable audit log entry."""

    model_config = {"frozen": True}

    timestamp: float = Field(
        default_factory=time.time,
        description="Unix epoch when the operation completed.",
    )
    event_type: AuditEventType
    memory_id: str | None = Field(
        default=None,
        description="Memory the operation targeted, when there is one.",
    )
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Operation details (forget reason, changed fields, counts).",
    )
