"""Signature checks for single memories and whole export bundles.

``verify_bundle`` is the recipient-side check: given nothing but a bundle,
it confirms the manifest was signed by the key in the bundled identity
and that the manifest actually describes the bundled files.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from memproto.crypto.signer import decode_public_key
from memproto.crypto.signer import hash_data
from memproto.crypto.signer import sign
from memproto.crypto.signer import verify
from memproto.errors import EncodingError
from memproto.models.canonical import canonical_json
from memproto.models.canonical import canonical_serialize
from memproto.models.canonical import to_wire
from memproto.models.schemas import ExportBundle
from memproto.models.schemas import MemoryIdentity
from memproto.models.schemas import MemoryManifest
from memproto.models.schemas import MemoryObject

logger = logging.getLogger(__name__)

MEMORIES_ARTIFACT = "memories.json"
IDENTITY_ARTIFACT = "identity.json"


def verify_memory(memory: MemoryObject, public_key: bytes) -> bool:
    """Check a memory's proof over its canonical serialization."""
    if memory.signature is None:
        return False
    return verify(
        canonical_serialize(memory), memory.signature.proof_value, public_key
    )


def artifact_hashes(
    identity: MemoryIdentity, memories: Sequence[MemoryObject]
) -> dict[str, str]:
    """Content hashes of the two artifacts a manifest vouches for."""
    return {
        MEMORIES_ARTIFACT: hash_data(
            canonical_json([to_wire(memory) for memory in memories])
        ),
        IDENTITY_ARTIFACT: hash_data(canonical_json(to_wire(identity))),
    }


def sign_manifest(manifest: MemoryManifest, private_key: bytes) -> MemoryManifest:
    """Return *manifest* with its signature computed over everything else."""
    unsigned = manifest.model_copy(update={"signature": ""})
    signature = sign(canonical_serialize(unsigned), private_key)
    return unsigned.model_copy(update={"signature": signature})


def verify_bundle(bundle: ExportBundle, public_key: bytes | None = None) -> list[str]:
    """Return every problem found in *bundle*; empty means authentic.

    Uses the bundled identity's key unless *public_key* is given.
    """
    if public_key is None:
        try:
            public_key = decode_public_key(bundle.identity.public_key)
        except EncodingError as exc:
            return [f"Identity public key is malformed: {exc}"]

    errors: list[str] = []
    manifest = bundle.manifest
    if not verify(canonical_serialize(manifest), manifest.signature, public_key):
        errors.append("Invalid manifest signature")
    if manifest.soul != bundle.identity.soul:
        errors.append(
            f"Manifest soul {manifest.soul} does not match identity "
            f"{bundle.identity.soul}"
        )
    if manifest.memory_count != len(bundle.memories):
        errors.append(
            f"Manifest counts {manifest.memory_count} memories, "
            f"bundle holds {len(bundle.memories)}"
        )
    if manifest.chain_head != bundle.identity.chain_head:
        errors.append("Manifest chain head does not match identity")

    for name, digest in artifact_hashes(bundle.identity, bundle.memories).items():
        if manifest.files.get(name) != digest:
            errors.append(f"Hash mismatch for {name}")

    for memory in bundle.memories:
        if not verify_memory(memory, public_key):
            errors.append(f"Invalid signature on memory {memory.id}")

    if errors:
        logger.warning(
            "Bundle for %s failed verification: %d problems",
            manifest.soul,
            len(errors),
        )
    return errors
