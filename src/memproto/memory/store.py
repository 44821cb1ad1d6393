"""Signed, hash-chained memory store backed by a directory of JSON files.

One ``MemoryStore`` owns one data directory.  Construction loads (or
creates) the identity document and reads the memory log into an
in-memory index; queries never touch the disk again.  Every mutation
re-signs the affected memory and rewrites the log before returning.

Mutations are serialized by an ``asyncio.Lock`` and state is only
swapped in after the save succeeds, so a failed write leaves both the
index and the chain head untouched.  Separate store instances pointed
at the same directory are not coordinated.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections import Counter
from collections.abc import Mapping
from typing import Any
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from memproto.audit import AuditEventType
from memproto.audit import AuditLogger
from memproto.config import AuditConfig
from memproto.config import StoreConfig
from memproto.crypto.signer import encode_public_key
from memproto.crypto.signer import generate_memory_id
from memproto.crypto.signer import hash_data
from memproto.crypto.signer import sign
from memproto.crypto.signer import SIGNATURE_TYPE
from memproto.errors import ValidationError
from memproto.memory.chain import walk_chain
from memproto.memory.integrity import artifact_hashes
from memproto.memory.integrity import sign_manifest
from memproto.memory.integrity import verify_bundle
from memproto.memory.integrity import verify_memory
from memproto.memory.log import LogLoadError
from memproto.memory.log import MemoryLog
from memproto.models.canonical import canonical_serialize
from memproto.models.schemas import ExportBundle
from memproto.models.schemas import ImportRequest
from memproto.models.schemas import MemoryIdentity
from memproto.models.schemas import MemoryManifest
from memproto.models.schemas import MemoryObject
from memproto.models.schemas import MemorySignature
from memproto.models.schemas import RecallRequest
from memproto.models.schemas import RememberRequest
from memproto.models.schemas import StoreStats
from memproto.models.schemas import UpdateRequest
from memproto.models.schemas import utc_timestamp
from memproto.models.schemas import VerifyResult

logger = logging.getLogger(__name__)

_Request = TypeVar("_Request", bound=BaseModel)


def _coerce(model: type[_Request], request: _Request | Mapping[str, Any]) -> _Request:
    """Accept a request model or a plain mapping; map failures to ``ValidationError``."""
    if isinstance(request, model):
        return request
    try:
        return model.model_validate(request)
    except PydanticValidationError as exc:
        msg = f"Invalid {model.__name__}: {exc}"
        raise ValidationError(msg) from exc


class MemoryStore:
    """Owner of one soul's identity document and memory index."""

    def __init__(
        self,
        config: StoreConfig,
        *,
        audit_config: AuditConfig | None = None,
    ) -> None:
        self.config = config
        self._log = MemoryLog(
            config.root,
            identity_file=config.identity_file,
            memories_file=config.memories_file,
        )
        self._log.ensure_directory()

        audit_config = audit_config or AuditConfig()
        self.audit = AuditLogger(
            config.root / audit_config.file_name,
            enabled=audit_config.enabled,
        )
        self._lock = asyncio.Lock()
        self._memories: dict[str, MemoryObject] = {}
        self.identity = self._load_or_create_identity()
        self.load_errors: list[LogLoadError] = self._load_memories()

    @property
    def chain_head(self) -> str | None:
        return self.identity.chain_head

    def __len__(self) -> int:
        return len(self._memories)

    def __contains__(self, memory_id: object) -> bool:
        return memory_id in self._memories

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def remember(
        self, request: RememberRequest | Mapping[str, Any]
    ) -> MemoryObject:
        """Create, sign and persist a new memory linked to the chain head."""
        req = _coerce(RememberRequest, request)

        async with self._lock:
            head = self._head()
            previous_hash = hash_data(canonical_serialize(head)) if head else None

            memory_id = generate_memory_id()
            while memory_id in self._memories:
                memory_id = generate_memory_id()

            now = utc_timestamp()
            memory = self._signed(
                MemoryObject(
                    id=memory_id,
                    type=req.type,
                    content=copy.deepcopy(req.content),
                    created=now,
                    updated=now,
                    soul=self.config.soul,
                    tags=list(req.tags),
                    confidence=req.confidence,
                    source=req.source,
                    expires=req.expires,
                    previous_hash=previous_hash,
                )
            )
            await self._commit(
                {**self._memories, memory.id: memory},
                self.identity.model_copy(update={"chain_head": memory.id}),
            )

        logger.debug("Remembered %s (%s)", memory.id, memory.type.value)
        await self._audit(
            AuditEventType.REMEMBER,
            memory_id=memory.id,
            type=memory.type.value,
        )
        return memory

    async def forget(
        self, memory_id: str, reason: str | None = None
    ) -> MemoryObject | None:
        """Soft-delete a memory. Unknown ids return ``None``.

        Forgetting an already-deleted memory returns it unchanged.
        """
        async with self._lock:
            memory = self._memories.get(memory_id)
            if memory is None:
                return None
            if memory.deleted:
                return memory

            now = utc_timestamp()
            forgotten = self._signed(
                memory.model_copy(
                    update={"deleted": True, "deleted_at": now, "updated": now},
                    deep=True,
                )
            )
            await self._commit({**self._memories, memory_id: forgotten}, self.identity)

        logger.debug("Forgot %s", memory_id)
        await self._audit(
            AuditEventType.FORGET,
            memory_id=memory_id,
            reason=reason,
        )
        return forgotten

    async def update(
        self,
        memory_id: str,
        request: UpdateRequest | Mapping[str, Any],
    ) -> MemoryObject | None:
        """Apply a partial update. Unknown or deleted ids return ``None``.

        ``content`` is merged one level deep; ``tags`` and ``confidence``
        replace the stored values when given.
        """
        req = _coerce(UpdateRequest, request)

        async with self._lock:
            memory = self._memories.get(memory_id)
            if memory is None or memory.deleted:
                return None

            changes: dict[str, Any] = {"updated": utc_timestamp()}
            if req.content is not None:
                changes["content"] = copy.deepcopy({**memory.content, **req.content})
            if req.tags is not None:
                changes["tags"] = list(req.tags)
            if req.confidence is not None:
                changes["confidence"] = req.confidence

            updated = self._signed(memory.model_copy(update=changes, deep=True))
            await self._commit({**self._memories, memory_id: updated}, self.identity)

        logger.debug("Updated %s", memory_id)
        await self._audit(
            AuditEventType.UPDATE,
            memory_id=memory_id,
            fields=sorted(key for key in changes if key != "updated"),
        )
        return updated

    async def import_bundle(
        self, request: ImportRequest | Mapping[str, Any]
    ) -> StoreStats:
        """Restore or merge an export bundle produced by this same identity.

        ``replace`` makes the index exactly the bundle, and is refused
        when that would drop a local memory or revive a forgotten one.
        ``merge`` adds unknown memories, prefers the newer version of
        known ones (never reviving a forgotten one), and moves the chain
        head only when the bundle's head is newer.
        """
        req = _coerce(ImportRequest, request)
        bundle = req.bundle

        if (
            bundle.identity.soul != self.identity.soul
            or bundle.identity.public_key != self.identity.public_key
        ):
            msg = (
                f"Bundle identity {bundle.identity.soul} does not match "
                f"store identity {self.identity.soul}"
            )
            raise ValidationError(msg)
        if req.verify_signatures:
            problems = verify_bundle(bundle, self.config.public_key)
            if problems:
                msg = "Bundle failed verification: " + "; ".join(problems)
                raise ValidationError(msg)

        incoming = [memory.model_copy(deep=True) for memory in bundle.memories]
        async with self._lock:
            if req.mode == "replace":
                self._check_replace(incoming)
                memories = {memory.id: memory for memory in incoming}
                chain_head = bundle.manifest.chain_head
            else:
                memories = dict(self._memories)
                for memory in incoming:
                    existing = memories.get(memory.id)
                    if existing is None:
                        memories[memory.id] = memory
                    elif existing.deleted and not memory.deleted:
                        continue
                    elif memory.updated > existing.updated:
                        memories[memory.id] = memory
                chain_head = self._merged_head(memories, bundle.manifest.chain_head)

            await self._commit(
                memories, self.identity.model_copy(update={"chain_head": chain_head})
            )

        logger.info(
            "Imported %d memories (%s) into %s",
            len(incoming),
            req.mode,
            self.config.root,
        )
        await self._audit(
            AuditEventType.IMPORT,
            mode=req.mode,
            memory_count=len(incoming),
            chain_head=chain_head,
        )
        return self.stats()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def recall(
        self, request: RecallRequest | Mapping[str, Any] | None = None
    ) -> list[MemoryObject]:
        """Filter, sort (newest first) and page the index."""
        req = _coerce(RecallRequest, {} if request is None else request)
        results = list(self._memories.values())

        if not req.include_deleted:
            results = [m for m in results if not m.deleted]
        if req.type is not None:
            results = [m for m in results if m.type == req.type]
        if req.types:
            wanted_types = set(req.types)
            results = [m for m in results if m.type in wanted_types]
        if req.tags:
            wanted_tags = set(req.tags)
            results = [m for m in results if wanted_tags.intersection(m.tags)]
        if req.since is not None:
            results = [m for m in results if m.created >= req.since]
        if req.until is not None:
            results = [m for m in results if m.created <= req.until]
        if req.min_confidence is not None:
            results = [m for m in results if m.confidence >= req.min_confidence]

        # sort is stable: equal timestamps keep write order
        results.sort(key=lambda m: m.created, reverse=True)
        return results[req.offset : req.offset + req.limit]

    def get(self, memory_id: str) -> MemoryObject | None:
        return self._memories.get(memory_id)

    def stats(self) -> StoreStats:
        total = len(self._memories)
        active = [m for m in self._memories.values() if not m.deleted]
        by_type = Counter(m.type.value for m in active)
        return StoreStats(
            total=total,
            active=len(active),
            deleted=total - len(active),
            by_type=dict(by_type),
        )

    async def export(self) -> ExportBundle:
        """Snapshot every memory (deleted ones included) under a signed manifest."""
        async with self._lock:
            memories = [m.model_copy(deep=True) for m in self._memories.values()]
            identity = self.identity.model_copy()

        manifest = sign_manifest(
            MemoryManifest(
                soul=identity.soul,
                generated=utc_timestamp(),
                files=artifact_hashes(identity, memories),
                chain_head=identity.chain_head,
                memory_count=len(memories),
            ),
            self.config.private_key,
        )
        await self._audit(
            AuditEventType.EXPORT,
            memory_count=len(memories),
            chain_head=identity.chain_head,
        )
        return ExportBundle(manifest=manifest, identity=identity, memories=memories)

    async def verify(self) -> VerifyResult:
        """Check every signature and walk the hash chain from its head."""
        async with self._lock:
            result = await asyncio.to_thread(self._scan)

        if not result.valid:
            logger.warning(
                "Integrity check failed for %s: %d errors",
                self.config.root,
                len(result.errors),
            )
        await self._audit(
            AuditEventType.VERIFY,
            valid=result.valid,
            error_count=len(result.errors),
        )
        return result

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _scan(self) -> VerifyResult:
        errors: list[str] = []
        signatures_valid = True
        for memory in self._memories.values():
            if not verify_memory(memory, self.config.public_key):
                signatures_valid = False
                errors.append(f"Invalid signature on memory {memory.id}")

        chain = walk_chain(self._memories, self.identity.chain_head)
        errors.extend(chain.errors)
        return VerifyResult(
            valid=signatures_valid and chain.intact and not errors,
            chain_intact=chain.intact,
            signatures_valid=signatures_valid,
            memory_count=len(self._memories),
            errors=errors,
            orphans=chain.orphans,
        )

    async def _audit(
        self,
        event_type: AuditEventType,
        *,
        memory_id: str | None = None,
        **payload: Any,
    ) -> None:
        """Record an audit event for an operation that has already been saved.

        A failed audit write is logged, not raised.
        """
        try:
            await self.audit.record(event_type, memory_id=memory_id, **payload)
        except OSError:
            logger.exception(
                "Failed to write %s audit event to %s",
                event_type.value,
                self.audit.path,
            )

    def _signed(self, memory: MemoryObject) -> MemoryObject:
        proof = sign(canonical_serialize(memory), self.config.private_key)
        signature = MemorySignature(
            type=SIGNATURE_TYPE,
            created=utc_timestamp(),
            verification_method=self.config.verification_method,
            proof_value=proof,
        )
        return memory.model_copy(update={"signature": signature})

    def _head(self) -> MemoryObject | None:
        head_id = self.identity.chain_head
        if head_id is None:
            return None
        head = self._memories.get(head_id)
        if head is None:
            logger.warning("Chain head %s is missing from the memory log", head_id)
        return head

    def _check_replace(self, incoming: list[MemoryObject]) -> None:
        by_id = {memory.id: memory for memory in incoming}
        missing = [memory_id for memory_id in self._memories if memory_id not in by_id]
        if missing:
            msg = (
                f"Replace would drop {len(missing)} local memories "
                f"not in the bundle: {', '.join(missing)}"
            )
            raise ValidationError(msg)
        revived = [
            memory_id
            for memory_id, memory in self._memories.items()
            if memory.deleted and not by_id[memory_id].deleted
        ]
        if revived:
            msg = f"Replace would restore forgotten memories: {', '.join(revived)}"
            raise ValidationError(msg)

    def _merged_head(
        self, memories: Mapping[str, MemoryObject], incoming: str | None
    ) -> str | None:
        local = self.identity.chain_head
        if incoming is None or incoming not in memories:
            return local
        if local is None or local not in memories:
            return incoming
        if memories[incoming].created > memories[local].created:
            return incoming
        return local

    async def _commit(
        self, memories: dict[str, MemoryObject], identity: MemoryIdentity
    ) -> None:
        """Persist the new state, then swap it in."""
        await asyncio.to_thread(self._log.save, identity, list(memories.values()))
        self._memories = memories
        self.identity = identity

    def _load_or_create_identity(self) -> MemoryIdentity:
        identity = self._log.load_identity()
        if identity is not None:
            if identity.soul != self.config.soul:
                logger.warning(
                    "Identity in %s belongs to %s, configured soul is %s",
                    self.config.root,
                    identity.soul,
                    self.config.soul,
                )
            return identity

        identity = MemoryIdentity(
            soul=self.config.soul,
            name=self.config.name,
            created=utc_timestamp(),
            public_key=encode_public_key(self.config.public_key),
        )
        self._log.save_identity(identity)
        logger.info("Created identity for %s in %s", identity.soul, self.config.root)
        return identity

    def _load_memories(self) -> list[LogLoadError]:
        loaded = self._log.load_memories()
        for memory in loaded.memories:
            self._memories[memory.id] = memory
        if loaded.errors:
            logger.warning(
                "Loaded %d memories from %s, skipped %d bad lines",
                len(self._memories),
                self._log.memories_path,
                len(loaded.errors),
            )
        return loaded.errors
