"""Base58btc codec with multibase framing.

Multibase strings start with ``z`` (base58btc) followed by the Bitcoin
alphabet encoding.  Conversion is byte-buffer long division over the input.
"""

from __future__ import annotations

from memproto.errors import EncodingError

MULTIBASE_BASE58BTC = "z"
ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

_INDEX = {char: idx for idx, char in enumerate(ALPHABET)}


# ---------------------------------------------------------------------------
# Raw base58
# ---------------------------------------------------------------------------


def b58encode(data: bytes) -> str:
    """Encode *data* as bare base58 (no multibase prefix)."""
    if not data:
        return ""

    zeros = 0
    while zeros < len(data) and data[zeros] == 0:
        zeros += 1

    # log(256) / log(58) ~= 1.38
    size = -(-len(data) * 138 // 100) + 1
    digits = bytearray(size)
    length = 0
    for byte in data[zeros:]:
        carry = byte
        i = 0
        k = size - 1
        while (carry != 0 or i < length) and k >= 0:
            carry += 256 * digits[k]
            digits[k] = carry % 58
            carry //= 58
            k -= 1
            i += 1
        length = i

    start = size - length
    while start < size and digits[start] == 0:
        start += 1

    return ALPHABET[0] * zeros + "".join(ALPHABET[d] for d in digits[start:])


def b58decode(text: str) -> bytes:
    """Decode bare base58 *text*.

    Raises ``EncodingError`` on characters outside the alphabet.
    """
    if not text:
        return b""

    zeros = 0
    while zeros < len(text) and text[zeros] == ALPHABET[0]:
        zeros += 1

    # log(58) / log(256) ~= 0.733
    size = -(-len(text) * 733 // 1000) + 1
    buf = bytearray(size)
    length = 0
    for char in text[zeros:]:
        value = _INDEX.get(char)
        if value is None:
            msg = f"Invalid base58 character: {char!r}"
            raise EncodingError(msg)
        carry = value
        i = 0
        k = size - 1
        while (carry != 0 or i < length) and k >= 0:
            carry += 58 * buf[k]
            buf[k] = carry % 256
            carry //= 256
            k -= 1
            i += 1
        length = i

    start = size - length
    while start < size and buf[start] == 0:
        start += 1

    return bytes(zeros) + bytes(buf[start:])


# ---------------------------------------------------------------------------
# Multibase
# ---------------------------------------------------------------------------


def encode(data: bytes) -> str:
    """Encode *data* as a multibase base58btc string (``z...``)."""
    return MULTIBASE_BASE58BTC + b58encode(data)


def decode(text: str) -> bytes:
    """Decode a multibase base58btc string back to bytes."""
    if not text.startswith(MULTIBASE_BASE58BTC):
        msg = f"Invalid multibase prefix: expected {MULTIBASE_BASE58BTC!r}"
        raise EncodingError(msg)
    return b58decode(text[len(MULTIBASE_BASE58BTC) :])
