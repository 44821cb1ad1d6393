"""memproto — portable, verifiable memory for AI agents.

Memories are signed with the owning soul's Ed25519 key, linked into a
hash chain, and kept in a plain directory of JSON files.
"""

from memproto.config import AuditConfig
from memproto.config import StoreConfig
from memproto.crypto import decode_public_key
from memproto.crypto import encode_public_key
from memproto.crypto import generate_key_pair
from memproto.crypto import generate_memory_id
from memproto.crypto import hash_data
from memproto.crypto import sign
from memproto.crypto import verify
from memproto.errors import EncodingError
from memproto.errors import MemoryProtocolError
from memproto.errors import ValidationError
from memproto.memory import MemoryStore
from memproto.memory import verify_bundle
from memproto.models import ExportBundle
from memproto.models import ImportRequest
from memproto.models import MemoryIdentity
from memproto.models import MemoryManifest
from memproto.models import MemoryObject
from memproto.models import MemorySignature
from memproto.models import MemorySource
from memproto.models import MemoryType
from memproto.models import PROTOCOL_VERSION
from memproto.models import RecallRequest
from memproto.models import RememberRequest
from memproto.models import StoreStats
from memproto.models import UpdateRequest
from memproto.models import VerifyResult

__version__ = "0.1.0"

__all__ = [
    "PROTOCOL_VERSION",
    "AuditConfig",
    "EncodingError",
    "ExportBundle",
    "ImportRequest",
    "MemoryIdentity",
    "MemoryManifest",
    "MemoryObject",
    "MemoryProtocolError",
    "MemorySignature",
    "MemorySource",
    "MemoryStore",
    "MemoryType",
    "RecallRequest",
    "RememberRequest",
    "StoreConfig",
    "StoreStats",
    "UpdateRequest",
    "ValidationError",
    "VerifyResult",
    "decode_public_key",
    "encode_public_key",
    "generate_key_pair",
    "generate_memory_id",
    "hash_data",
    "sign",
    "verify",
    "verify_bundle",
]
