"""Ed25519 signing, content hashing and identifier helpers.

All signatures and public keys travel as multibase base58btc strings.
Public keys carry the two-byte Ed25519 multicodec tag so they are
self-describing once encoded.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import time

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from memproto.crypto.base58 import b58encode
from memproto.crypto.base58 import decode
from memproto.crypto.base58 import encode
from memproto.crypto.base58 import MULTIBASE_BASE58BTC
from memproto.errors import EncodingError

logger = logging.getLogger(__name__)

MULTICODEC_ED25519_PUB = b"\xed\x01"
SIGNATURE_TYPE = "Ed25519Signature2020"
HASH_PREFIX = "sha256:"
ID_PREFIX = "mem_"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_bytes(data: str | bytes) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


def hash_data(data: str | bytes) -> str:
    """Return ``sha256:<hex>`` for *data* (strings are UTF-8 encoded)."""
    return HASH_PREFIX + hashlib.sha256(_to_bytes(data)).hexdigest()


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


def sign(data: str | bytes, private_key: bytes) -> str:
    """Sign *data* with a raw 32-byte Ed25519 private key.

    The message is signed as given; Ed25519 does its own internal
    hashing.  Returns the 64-byte signature multibase-encoded.
    """
    key = Ed25519PrivateKey.from_private_bytes(private_key)
    return encode(key.sign(_to_bytes(data)))


def verify(data: str | bytes, signature: str, public_key: bytes) -> bool:
    """Check *signature* over *data* against a raw Ed25519 public key.

    Never raises: a bad prefix, undecodable text, malformed key or a
    failed check all return ``False``.
    """
    if not signature.startswith(MULTIBASE_BASE58BTC):
        return False
    try:
        signature_bytes = decode(signature)
        key = Ed25519PublicKey.from_public_bytes(public_key)
        key.verify(signature_bytes, _to_bytes(data))
    except (EncodingError, InvalidSignature, ValueError) as exc:
        logger.debug("Signature verification failed: %s", exc)
        return False
    return True


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


def generate_key_pair() -> tuple[bytes, bytes]:
    """Generate a fresh Ed25519 key pair as ``(private_raw, public_raw)``."""
    private_key = Ed25519PrivateKey.generate()
    return (
        private_key.private_bytes_raw(),
        private_key.public_key().public_bytes_raw(),
    )


def public_key_from_private(private_key: bytes) -> bytes:
    """Derive the raw public key for a raw private key."""
    key = Ed25519PrivateKey.from_private_bytes(private_key)
    return key.public_key().public_bytes_raw()


def encode_public_key(public_key: bytes) -> str:
    """Frame a raw public key with its multicodec tag and multibase-encode it."""
    return encode(MULTICODEC_ED25519_PUB + bytes(public_key))


def decode_public_key(text: str) -> bytes:
    """Reverse :func:`encode_public_key`.

    Raises ``EncodingError`` when the prefix or multicodec tag is wrong.
    """
    raw = decode(text)
    if not raw.startswith(MULTICODEC_ED25519_PUB):
        msg = "Public key is not tagged as Ed25519 (multicodec 0xed01)"
        raise EncodingError(msg)
    return raw[len(MULTICODEC_ED25519_PUB) :]


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_BASE36[rem])
    return "".join(reversed(out))


def generate_memory_id() -> str:
    """Return ``mem_<base36 ms timestamp>_<base58 of 8 random bytes>``."""
    timestamp = _base36(time.time_ns() // 1_000_000)
    return f"{ID_PREFIX}{timestamp}_{b58encode(secrets.token_bytes(8))}"
