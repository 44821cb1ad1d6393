"""Memory domain — signed store engine, persistence and integrity checks."""

from __future__ import annotations

from memproto.memory.chain import ChainReport
from memproto.memory.chain import walk_chain
from memproto.memory.integrity import verify_bundle
from memproto.memory.integrity import verify_memory
from memproto.memory.log import LogLoadError
from memproto.memory.log import MemoryLog
from memproto.memory.store import MemoryStore

__all__ = [
    "ChainReport",
    "LogLoadError",
    "MemoryLog",
    "MemoryStore",
    "verify_bundle",
    "verify_memory",
    "walk_chain",
]
