"""Pydantic models for memory objects, identity, manifests and requests.

Python attributes are snake_case; the wire form (JSON on disk, export
bundles, signed payloads) uses the camelCase aliases.  Always dump with
``by_alias=True`` when the output leaves the process.
"""

from __future__ import annotations

from datetime import datetime
from datetime import timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel
from pydantic import Field
from pydantic import field_validator
from pydantic import JsonValue
from pydantic.alias_generators import to_camel

PROTOCOL_VERSION = "0.1.0"
DEFAULT_RECALL_LIMIT = 100


def utc_timestamp() -> str:
    """Current UTC time as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Fixed width, so lexicographic order matches chronological order.
    """
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class WireModel(BaseModel):
    """Base for every model with a camelCase wire form."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class MemoryType(str, Enum):
    """Kinds of memory a soul can hold."""

    fact = "fact"
    lesson = "lesson"
    relationship = "relationship"
    decision = "decision"
    event = "event"
    preference = "preference"
    skill = "skill"


class MemorySource(str, Enum):
    """How the memory was acquired."""

    experience = "experience"
    told = "told"
    inferred = "inferred"


# ---------------------------------------------------------------------------
# Stored objects
# ---------------------------------------------------------------------------


class MemorySignature(WireModel):
    """Linked-data style proof attached to a memory."""

    type: str = Field(
        default="Ed25519Signature2020",
        description="Signature suite identifier.",
    )
    created: str = Field(description="When the signature was produced.")
    verification_method: str = Field(
        description="Key reference, ``<soul>#keys-1``.",
    )
    proof_value: str = Field(
        description="Multibase base58btc encoded signature bytes.",
    )


class MemoryObject(WireModel):
    """A single signed memory.

    ``signature`` is only ``None`` transiently, while the store builds an
    object before signing it.
    """

    id: str = Field(description="``mem_<timestamp>_<random>`` identifier.")
    type: MemoryType
    content: dict[str, JsonValue] = Field(
        description="Free-form JSON payload.",
    )
    created: str
    updated: str
    soul: str = Field(description="Identifier of the owning identity.")
    tags: list[str] = Field(default_factory=list)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    source: MemorySource = MemorySource.experience
    expires: str | None = Field(
        default=None,
        description="Advisory expiry timestamp; never purged automatically.",
    )
    deleted: bool = False
    deleted_at: str | None = None
    previous_hash: str | None = Field(
        default=None,
        description="Hash of the previous chain head when this was created.",
    )
    signature: MemorySignature | None = None


class MemoryIdentity(WireModel):
    """The identity document of a store (one per data directory)."""

    soul: str
    name: str
    created: str
    protocol_version: str = PROTOCOL_VERSION
    public_key: str = Field(
        description="Multibase, multicodec-framed Ed25519 public key.",
    )
    chain_head: str | None = Field(
        default=None,
        description="Id of the most recently written memory.",
    )


class MemoryManifest(WireModel):
    """Signed summary of an export bundle."""

    version: str = PROTOCOL_VERSION
    soul: str
    generated: str
    files: dict[str, str] = Field(
        default_factory=dict,
        description="Artifact name -> ``sha256:`` content hash.",
    )
    chain_head: str | None = None
    memory_count: int = 0
    signature: str = ""


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class RememberRequest(WireModel):
    """Input for ``MemoryStore.remember``."""

    model_config = {"extra": "forbid"}

    type: MemoryType
    content: dict[str, JsonValue]
    tags: list[str] = Field(default_factory=list)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    source: MemorySource = MemorySource.experience
    expires: str | None = None


class RecallRequest(WireModel):
    """Filters for ``MemoryStore.recall``; every field is optional."""

    model_config = {"extra": "forbid"}

    query: str | None = Field(
        default=None,
        description="Reserved for semantic search; currently ignored.",
    )
    type: MemoryType | None = None
    types: list[MemoryType] | None = None
    tags: list[str] | None = None
    since: str | None = None
    until: str | None = None
    limit: int = Field(
        default=DEFAULT_RECALL_LIMIT,
        ge=0,
        description="Page size; 0 means the default.",
    )
    offset: int = Field(default=0, ge=0)
    min_confidence: float | None = None
    include_deleted: bool = False

    @field_validator("limit")
    @classmethod
    def _zero_limit_means_default(cls, v: int) -> int:
        return v or DEFAULT_RECALL_LIMIT


class UpdateRequest(WireModel):
    """Partial update for ``MemoryStore.update``."""

    model_config = {"extra": "forbid"}

    content: dict[str, JsonValue] | None = Field(
        default=None,
        description="Shallow-merged into the existing content.",
    )
    tags: list[str] | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class ExportBundle(WireModel):
    """Full snapshot of a store: manifest, identity and every memory."""

    manifest: MemoryManifest
    identity: MemoryIdentity
    memories: list[MemoryObject]


class ImportRequest(WireModel):
    """Input for ``MemoryStore.import_bundle``."""

    bundle: ExportBundle
    mode: Literal["merge", "replace"] = "merge"
    verify_signatures: bool = True


class VerifyResult(WireModel):
    """Outcome of an integrity scan."""

    valid: bool
    chain_intact: bool
    signatures_valid: bool
    memory_count: int
    errors: list[str] = Field(default_factory=list)
    orphans: list[str] = Field(
        default_factory=list,
        description="Ids the chain walk from the head never reached.",
    )


class StoreStats(WireModel):
    """Counts over the whole index."""

    total: int
    active: int
    deleted: int
    by_type: dict[str, int] = Field(default_factory=dict)
