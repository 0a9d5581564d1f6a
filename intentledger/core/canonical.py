"""
IntentLedger: Canonical JSON Encoding — RFC 8785 (JCS)

This is the ONLY canonicalization permitted in IntentLedger.
Journal signing, chain hashing and content hashing all go through here.

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785
"""

import hashlib

import jcs


def canonicalize(obj: dict) -> bytes:
    """
    Encode a dict to RFC 8785 canonical JSON bytes.

    Output is deterministic regardless of key insertion order.
    All values must be JSON-primitive (str, int, bool, None, list, dict).
    Enum members must already be converted to their int values.

    Returns:
        UTF-8 encoded canonical JSON bytes, suitable for signing.
    """
    return jcs.canonicalize(obj)


def canonical_hash(obj: dict) -> str:
    """
    SHA-256 of the RFC 8785 canonical form.

    Used for causal_hash chaining and for content_hash() of structured data.

    Returns:
        Lowercase hex-encoded SHA-256 digest (64 characters).
    """
    return hashlib.sha256(canonicalize(obj)).hexdigest()
