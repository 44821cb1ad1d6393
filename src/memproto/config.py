"""Store configuration dataclasses.

Frozen dataclasses with sensible defaults. Keys are raw Ed25519 bytes.
No env-var or file loading: callers build these explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class StoreConfig:
    """Identity and on-disk layout of one memory store."""

    soul: str
    name: str
    private_key: bytes
    public_key: bytes
    data_dir: str | Path = "./memory-data"
    identity_file: str = "identity.json"
    memories_file: str = "memories.jsonl"

    @property
    def root(self) -> Path:
        return Path(self.data_dir)

    @property
    def verification_method(self) -> str:
        return f"{self.soul}#keys-1"


@dataclass(frozen=True)
class AuditConfig:
    """Settings for the JSONL audit trail kept beside the store files."""

    file_name: str = "audit.jsonl"
    enabled: bool = True
