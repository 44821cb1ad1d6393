"""Canonical serialization used for signatures and content hashes.

The rule, applied identically to memories and manifests:

1. Dump the model to its wire form (camelCase keys, JSON-compatible values).
2. Omit ``deletedAt`` and ``previousHash`` when they are unset.
3. Drop the ``signature`` key entirely.
4. Serialize with keys sorted at every depth, no insignificant whitespace,
   and non-ASCII characters kept as-is; encode as UTF-8.

Changing any step breaks verification of every signature ever written.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel

OMIT_WHEN_UNSET = ("deletedAt", "previousHash")
SIGNATURE_FIELD = "signature"


def to_wire(model: BaseModel) -> dict[str, Any]:
    """Return the JSON-ready wire dict for *model*."""
    data = model.model_dump(mode="json", by_alias=True)
    for key in OMIT_WHEN_UNSET:
        if key in data and data[key] is None:
            del data[key]
    return data


def canonical_json(value: Any) -> str:
    """Deterministic JSON text for an already JSON-compatible *value*."""
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def canonical_serialize(model: BaseModel) -> str:
    """The exact text that is signed and verified for *model*."""
    data = to_wire(model)
    data.pop(SIGNATURE_FIELD, None)
    return canonical_json(data)
