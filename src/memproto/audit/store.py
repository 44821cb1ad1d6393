"""JSONL audit trail for store operations.

The audit file sits next to ``identity.json`` and ``memories.jsonl`` and
is strictly append-only, unlike the memory log which is rewritten on
every save.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from memproto.audit.schemas import AuditEvent
from memproto.audit.schemas import AuditEventType

logger = logging.getLogger(__name__)


class AuditLogger:
    """Append-only audit log with I/O pushed to a worker thread."""

    def __init__(self, path: Path, *, enabled: bool = True) -> None:
        self.path = path
        self.enabled = enabled
        self._lock = asyncio.Lock()

    # -- write --

    async def record(
        self,
        event_type: AuditEventType,
        *,
        memory_id: str | None = None,
        **payload: Any,
    ) -> None:
        """Build an event and append it."""
        await self.log(
            AuditEvent(event_type=event_type, memory_id=memory_id, payload=payload)
        )

    async def log(self, event: AuditEvent) -> None:
        """Append *event* as one JSON line. No-op when disabled."""
        if not self.enabled:
            return
        line = event.model_dump_json() + "\n"
        async with self._lock:
            await asyncio.to_thread(partial(self._append, self.path, line))

    @staticmethod
    def _append(path: Path, line: str) -> None:
        with open(path, "a", encoding="utf-8") as fh:
            fh.write(line)

    # -- read --

    async def read_events(
        self,
        *,
        event_type: AuditEventType | None = None,
        memory_id: str | None = None,
        since: float | None = None,
    ) -> list[AuditEvent]:
        """Read events back, oldest first, optionally filtered."""
        if not self.path.exists():
            return []

        async with self._lock:
            raw = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        events: list[AuditEvent] = []
        for line_no, line in enumerate(raw.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                evt = AuditEvent.model_validate_json(line)
            except ValidationError:
                logger.warning(
                    "Skipping malformed audit line %d in %s", line_no, self.path
                )
                continue
            if event_type is not None and evt.event_type != event_type:
                continue
            if memory_id is not None and evt.memory_id != memory_id:
                continue
            if since is not None and evt.timestamp < since:
                continue
            events.append(evt)
        return events
