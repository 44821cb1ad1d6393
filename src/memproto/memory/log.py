"""On-disk persistence for one store directory.

Layout::

    <data_dir>/identity.json    identity document, overwritten on save
    <data_dir>/memories.jsonl   one wire-form memory per line, rewritten on save

Each file is written to a temporary sibling and renamed over the target,
so an individual file never ends up half-written.  The two files are
*not* updated atomically together.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from memproto.errors import MemoryProtocolError
from memproto.models.canonical import to_wire
from memproto.models.schemas import MemoryIdentity
from memproto.models.schemas import MemoryObject

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogLoadError:
    """A memory log line that could not be parsed and was skipped."""

    line_number: int
    message: str


@dataclass
class LoadedLog:
    memories: list[MemoryObject]
    errors: list[LogLoadError]


class MemoryLog:
    """Reads and writes the identity document and the memory log."""

    def __init__(
        self,
        root: Path,
        *,
        identity_file: str = "identity.json",
        memories_file: str = "memories.jsonl",
    ) -> None:
        self.root = root
        self.identity_path = root / identity_file
        self.memories_path = root / memories_file

    def ensure_directory(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    # -- identity --

    def load_identity(self) -> MemoryIdentity | None:
        """Return the stored identity, or ``None`` when there is none yet."""
        if not self.identity_path.exists():
            return None
        try:
            return MemoryIdentity.model_validate_json(
                self.identity_path.read_text(encoding="utf-8")
            )
        except ValidationError as exc:
            msg = f"Corrupt identity document {self.identity_path}"
            raise MemoryProtocolError(msg) from exc

    def save_identity(self, identity: MemoryIdentity) -> None:
        text = json.dumps(to_wire(identity), indent=2, ensure_ascii=False)
        self._write_atomic(self.identity_path, text)

    # -- memories --

    def load_memories(self) -> LoadedLog:
        """Parse every line independently; bad lines are skipped and reported."""
        loaded = LoadedLog(memories=[], errors=[])
        if not self.memories_path.exists():
            return loaded

        raw = self.memories_path.read_text(encoding="utf-8")
        for line_no, line in enumerate(raw.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                memory = MemoryObject.model_validate_json(line)
            except ValidationError as exc:
                logger.warning(
                    "Skipping unparseable memory on line %d of %s (%d errors)",
                    line_no,
                    self.memories_path,
                    exc.error_count(),
                )
                loaded.errors.append(LogLoadError(line_no, str(exc)))
                continue
            loaded.memories.append(memory)
        return loaded

    def save_memories(self, memories: Iterable[MemoryObject]) -> None:
        lines = [
            json.dumps(to_wire(memory), ensure_ascii=False) for memory in memories
        ]
        self._write_atomic(self.memories_path, "\n".join(lines) + "\n" if lines else "")

    def save(self, identity: MemoryIdentity, memories: Iterable[MemoryObject]) -> None:
        """Write the identity document, then the full memory log."""
        self.save_identity(identity)
        self.save_memories(memories)

    # -- internal --

    @staticmethod
    def _write_atomic(path: Path, text: str) -> None:
        tmp = path.with_name(path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
