"""Crypto domain — base58/multibase codec and Ed25519 signer."""

from memproto.crypto.base58 import b58decode
from memproto.crypto.base58 import b58encode
from memproto.crypto.base58 import decode
from memproto.crypto.base58 import encode
from memproto.crypto.signer import decode_public_key
from memproto.crypto.signer import encode_public_key
from memproto.crypto.signer import generate_key_pair
from memproto.crypto.signer import generate_memory_id
from memproto.crypto.signer import hash_data
from memproto.crypto.signer import public_key_from_private
from memproto.crypto.signer import sign
from memproto.crypto.signer import SIGNATURE_TYPE
from memproto.crypto.signer import verify

__all__ = [
    "SIGNATURE_TYPE",
    "b58decode",
    "b58encode",
    "decode",
    "decode_public_key",
    "encode",
    "encode_public_key",
    "generate_key_pair",
    "generate_memory_id",
    "hash_data",
    "public_key_from_private",
    "sign",
    "verify",
]
