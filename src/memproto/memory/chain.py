"""Hash-chain reconstruction over the memory index.

Every memory (except the first) carries ``previous_hash``: the hash of
the canonical form of the chain head at the moment it was created.  The
walk starts at the identity's ``chain_head`` and follows those backlinks
to the genesis memory.

A backlink resolves, in order:

1. by the current hash of a stored memory;
2. by the pre-forget hash of a forgotten memory, rebuilt by clearing the
   deletion fields and resetting ``updated`` to ``created`` (exact for a
   memory that was never updated before it was forgotten);
3. by adjacency: the memory written immediately before (in log order),
   when it was re-signed at or after the linking memory's creation.

On an untampered store the adjacency step is only reached when the
predecessor was updated, since an update destroys the form the successor
hashed.  It cannot tell that case apart from a missing record sitting
between the two, so a record removed from directly behind a memory that
was re-signed after the removed record's successor was created goes
unnoticed.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field

from memproto.crypto.signer import hash_data
from memproto.models.canonical import canonical_serialize
from memproto.models.schemas import MemoryObject

logger = logging.getLogger(__name__)


@dataclass
class ChainReport:
    """Result of walking the chain from its head."""

    intact: bool
    order: list[str] = field(default_factory=list)
    orphans: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def walk_chain(
    memories: Mapping[str, MemoryObject],
    chain_head: str | None,
) -> ChainReport:
    """Walk backlinks from *chain_head* over *memories* (in write order).

    ``order`` lists visited ids head first.  ``orphans`` lists every id
    the walk never reached, in write order.
    """
    report = ChainReport(intact=True)
    if chain_head is None:
        if memories:
            report.intact = False
            report.errors.append("Chain head is unset but memories exist")
            report.orphans = list(memories)
        return report

    ids = list(memories)
    position = {memory_id: i for i, memory_id in enumerate(ids)}
    by_hash: dict[str, str] = {}
    for memory_id, memory in memories.items():
        by_hash.setdefault(hash_data(canonical_serialize(memory)), memory_id)
    by_original_hash: dict[str, str] = {}
    for memory_id, memory in memories.items():
        if memory.deleted:
            original = canonical_serialize(_before_forget(memory))
            by_original_hash.setdefault(hash_data(original), memory_id)

    visited: set[str] = set()
    current: str | None = chain_head
    while current is not None:
        if current in visited:
            report.errors.append(f"Chain cycle detected at memory {current}")
            break
        memory = memories.get(current)
        if memory is None:
            report.errors.append(f"Chain references missing memory {current}")
            break
        visited.add(current)
        report.order.append(current)

        if memory.previous_hash is None:
            break
        predecessor = by_hash.get(memory.previous_hash)
        if predecessor is None:
            predecessor = by_original_hash.get(memory.previous_hash)
        if predecessor is None:
            predecessor = _resigned_predecessor(memory, ids, position, memories)
        if predecessor is None:
            report.errors.append(f"Dangling previousHash on memory {memory.id}")
            break
        current = predecessor

    report.orphans = [memory_id for memory_id in ids if memory_id not in visited]
    if report.orphans:
        report.errors.append(
            f"{len(report.orphans)} memories unreachable from chain head"
        )
    report.intact = not report.errors
    if not report.intact:
        logger.warning("Chain walk failed: %s", "; ".join(report.errors))
    return report


def _before_forget(memory: MemoryObject) -> MemoryObject:
    """The form *memory* had before it was forgotten, if it was never updated."""
    return memory.model_copy(
        update={"deleted": False, "deleted_at": None, "updated": memory.created}
    )


def _resigned_predecessor(
    memory: MemoryObject,
    ids: list[str],
    position: Mapping[str, int],
    memories: Mapping[str, MemoryObject],
) -> str | None:
    """The write-order predecessor, if it was mutated after *memory* linked it."""
    idx = position[memory.id]
    if idx == 0:
        return None
    candidate = memories[ids[idx - 1]]
    if candidate.updated >= memory.created:
        return candidate.id
    return None
