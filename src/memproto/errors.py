"""Exception hierarchy for the memory store."""

from __future__ import annotations


class MemoryProtocolError(Exception):
    """Base class for all memproto errors."""


class ValidationError(MemoryProtocolError, ValueError):
    """A remember, update or import request was rejected.

    The store is left unchanged when this is raised.
    """


class EncodingError(MemoryProtocolError, ValueError):
    """Malformed multibase text or multicodec-framed key."""
