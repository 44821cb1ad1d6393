"""Models domain — memory object schema and canonical serialization."""

from __future__ import annotations

from memproto.models.canonical import canonical_json
from memproto.models.canonical import canonical_serialize
from memproto.models.canonical import to_wire
from memproto.models.schemas import ExportBundle
from memproto.models.schemas import ImportRequest
from memproto.models.schemas import MemoryIdentity
from memproto.models.schemas import MemoryManifest
from memproto.models.schemas import MemoryObject
from memproto.models.schemas import MemorySignature
from memproto.models.schemas import MemorySource
from memproto.models.schemas import MemoryType
from memproto.models.schemas import PROTOCOL_VERSION
from memproto.models.schemas import RecallRequest
from memproto.models.schemas import RememberRequest
from memproto.models.schemas import StoreStats
from memproto.models.schemas import UpdateRequest
from memproto.models.schemas import utc_timestamp
from memproto.models.schemas import VerifyResult

__all__ = [
    "PROTOCOL_VERSION",
    "ExportBundle",
    "ImportRequest",
    "MemoryIdentity",
    "MemoryManifest",
    "MemoryObject",
    "MemorySignature",
    "MemorySource",
    "MemoryType",
    "RecallRequest",
    "RememberRequest",
    "StoreStats",
    "UpdateRequest",
    "VerifyResult",
    "canonical_json",
    "canonical_serialize",
    "to_wire",
    "utc_timestamp",
]
