"""
intentledger/core/hashes.py

Opaque 32-byte content-addressed references.

Wire form: exactly 64 lowercase hex characters, no prefix.
Accepted input: 64 hex chars (any case, optional "0x" prefix) or 32 raw bytes.

The registries never interpret a hash. They only distinguish
"zero" (ZERO_HASH, meaning absent) from "non-zero".
"""

import hashlib
from typing import Union

from intentledger.core.canonical import canonical_hash
from intentledger.core.exceptions import Reason, ValidationError


HASH_BYTES   = 32
_HASH_HEX_LENGTH = HASH_BYTES * 2

ZERO_HASH = "0" * _HASH_HEX_LENGTH

HashLike = Union[str, bytes]


def normalize_hash(value: HashLike, field: str = "hash") -> str:
    """
    Return `value` in wire form.

    Raises ValidationError (MALFORMED_HASH) for anything that is not
    32 bytes or 64 hex characters.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != HASH_BYTES:
            raise ValidationError(
                f"{field} must be {HASH_BYTES} bytes, got {len(value)}",
                reason=Reason.MALFORMED_HASH,
                details={"field": field},
            )
        return bytes(value).hex()

    if not isinstance(value, str):
        raise ValidationError(
            f"{field} must be a hex string or bytes, got {type(value).__name__}",
            reason=Reason.MALFORMED_HASH,
            details={"field": field},
        )

    text = value[2:] if value[:2] in ("0x", "0X") else value
    if len(text) != _HASH_HEX_LENGTH:
        raise ValidationError(
            f"{field} must be {_HASH_HEX_LENGTH} hex chars, got {len(text)}",
            reason=Reason.MALFORMED_HASH,
            details={"field": field},
        )
    try:
        bytes.fromhex(text)
    except ValueError:
        raise ValidationError(
            f"{field} is not valid hex: {value!r}",
            reason=Reason.MALFORMED_HASH,
            details={"field": field},
        )
    return text.lower()


def is_zero_hash(value: str) -> bool:
    """True if `value` (already in wire form) is the zero reference."""
    return value == ZERO_HASH


def content_hash(data: Union[str, bytes, dict]) -> str:
    """
    Derive a reference from content.

    dict  → SHA-256 of its RFC 8785 canonical form
    str   → SHA-256 of its UTF-8 bytes
    bytes → SHA-256 of the bytes
    """
    if isinstance(data, dict):
        return canonical_hash(data)
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()
