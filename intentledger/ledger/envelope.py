"""
intentledger/ledger/envelope.py

Fact Envelope — one signed, chained line of the fact journal.

═══════════════════════════════════════════════════════════════════
JOURNAL CONTRACTS
═══════════════════════════════════════════════════════════════════

CONTRACT 1 — Signing
    bytes_signed = canonicalize(env.to_signing_dict())
    algorithm    = Ed25519
    encoding     = base64url, no padding

CONTRACT 2 — Chain
    causal_hash  = SHA-256(canonicalize(prev.to_chain_dict()))
    first_entry  = GENESIS_HASH ("0" * 64)
    payload and journal_version are part of the chained dict

CONTRACT 3 — Timestamp
    format = YYYY-MM-DDTHH:MM:SS.mmmZ, from journal_timestamp() only

CONTRACT 4 — Nonce
    exactly 32 hex characters. Uniqueness, not ordering.

CONTRACT 5 — Vocabulary
    fact_type must be a FactType constant and the payload must carry
    exactly its FACT_FIELDS keys. Enforced at create(), checked by
    validate_schema() for persisted data.

CONTRACT 6 — Version
    every envelope in one journal shares the same journal_version.
═══════════════════════════════════════════════════════════════════
"""

import re
import secrets
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from intentledger.core.canonical import canonical_hash, canonicalize
from intentledger.core.crypto import JournalKey
from intentledger.core.facts import FACT_FIELDS, Fact
from intentledger.core.time import journal_timestamp


JOURNAL_VERSION = "1.0"
GENESIS_HASH    = "0" * 64

_NONCE_HEX_LENGTH      = 32
_PUBLIC_KEY_HEX_LENGTH = 64
_RECORD_ID_PREFIX      = "fact-"

_TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$"
)


def _is_hex(value: Any, length: int) -> bool:
    if not isinstance(value, str) or len(value) != length:
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True


@dataclass
class SchemaValidationResult:
    """
    Result of FactEnvelope.validate_schema().

    Returned, not raised. bool(result) is True iff valid.
    """
    valid:  bool
    errors: List[str]

    def __bool__(self) -> bool:
        return self.valid

    def __repr__(self) -> str:
        if self.valid:
            return "SchemaValidationResult(VALID)"
        return f"SchemaValidationResult(INVALID, errors={self.errors})"


@dataclass
class FactEnvelope:
    """The only journal entry type. See module docstring for its contracts."""

    journal_version:   str
    record_id:         str
    fact_type:         str
    source:            str
    signer_public_key: str
    sequence:          int
    nonce:             str
    timestamp:         str
    causal_hash:       str
    payload:           Dict[str, Any]
    signature:         Optional[str] = None

    # ── Constructors ──────────────────────────────────────────

    @classmethod
    def create(
        cls,
        fact:              Fact,
        signer_public_key: str,
        sequence:          int,
        prev:              Optional["FactEnvelope"] = None,
    ) -> "FactEnvelope":
        """
        Wrap a Fact in an unsigned envelope with the correct causal_hash.

        Call .sign(key) immediately after:
            env = FactEnvelope.create(fact, key.public_key_hex, seq, prev).sign(key)
        """
        if fact.fact_type not in FACT_FIELDS:
            raise ValueError(
                f"Invalid fact_type '{fact.fact_type}'. Valid: {sorted(FACT_FIELDS)}"
            )
        if not isinstance(sequence, int) or sequence < 0:
            raise ValueError(f"sequence must be non-negative int, got {sequence!r}")
        if not _is_hex(signer_public_key, _PUBLIC_KEY_HEX_LENGTH):
            raise ValueError(
                f"signer_public_key must be {_PUBLIC_KEY_HEX_LENGTH}-char hex string"
            )

        return cls(
            journal_version=   JOURNAL_VERSION,
            record_id=         f"{_RECORD_ID_PREFIX}{uuid.uuid4()}",
            fact_type=         fact.fact_type,
            source=            fact.source,
            signer_public_key= signer_public_key,
            sequence=          sequence,
            nonce=             secrets.token_hex(_NONCE_HEX_LENGTH // 2),
            timestamp=         journal_timestamp(),
            causal_hash=       cls._compute_causal_hash(prev),
            payload=           dict(fact.payload),
            signature=         None,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FactEnvelope":
        """
        Deserialize one JSONL line dict.

        Trusts persisted data. Callers MUST call validate_schema().
        Raises KeyError if a required field is missing.
        """
        return cls(
            journal_version=   data["journal_version"],
            record_id=         data["record_id"],
            fact_type=         data["fact_type"],
            source=            data.get("source", ""),
            signer_public_key= data["signer_public_key"],
            sequence=          data["sequence"],
            nonce=             data["nonce"],
            timestamp=         data["timestamp"],
            causal_hash=       data["causal_hash"],
            payload=           data.get("payload", {}),
            signature=         data.get("signature"),
        )

    # ── Schema Validation ─────────────────────────────────────

    def validate_schema(self) -> SchemaValidationResult:
        errors: List[str] = []

        if self.journal_version != JOURNAL_VERSION:
            errors.append(
                f"journal_version: expected '{JOURNAL_VERSION}', "
                f"got '{self.journal_version}'"
            )

        if self.fact_type not in FACT_FIELDS:
            errors.append(
                f"fact_type '{self.fact_type}' not in valid set: {sorted(FACT_FIELDS)}"
            )
        elif not isinstance(self.payload, dict):
            errors.append(f"payload must be dict, got {type(self.payload).__name__}")
        elif set(self.payload) != set(FACT_FIELDS[self.fact_type]):
            errors.append(
                f"payload keys {sorted(self.payload)} do not match "
                f"{self.fact_type} fields {list(FACT_FIELDS[self.fact_type])}"
            )

        if not isinstance(self.record_id, str) or not self.record_id.startswith(
            _RECORD_ID_PREFIX
        ):
            errors.append(
                f"record_id must be a string starting with '{_RECORD_ID_PREFIX}', "
                f"got {self.record_id!r}"
            )

        if not isinstance(self.source, str):
            errors.append(f"source must be str, got {type(self.source).__name__}")

        if not _is_hex(self.signer_public_key, _PUBLIC_KEY_HEX_LENGTH):
            errors.append(
                f"signer_public_key must be exactly {_PUBLIC_KEY_HEX_LENGTH} hex chars"
            )

        if (
            isinstance(self.sequence, bool)
            or not isinstance(self.sequence, int)
            or self.sequence < 0
        ):
            errors.append(f"sequence must be non-negative int, got {self.sequence!r}")

        if not _is_hex(self.nonce, _NONCE_HEX_LENGTH):
            errors.append(f"nonce must be exactly {_NONCE_HEX_LENGTH} hex chars")

        if not isinstance(self.timestamp, str) or not _TIMESTAMP_RE.match(self.timestamp):
            errors.append(
                f"timestamp {self.timestamp!r} does not match YYYY-MM-DDTHH:MM:SS.mmmZ"
            )

        if not _is_hex(self.causal_hash, 64):
            errors.append("causal_hash must be 64 hex chars")

        return SchemaValidationResult(valid=len(errors) == 0, errors=errors)

    # ── Canonical Dicts ───────────────────────────────────────

    def to_signing_dict(self) -> Dict[str, Any]:
        """Everything except the signature."""
        return {
            "causal_hash":       self.causal_hash,
            "fact_type":         self.fact_type,
            "journal_version":   self.journal_version,
            "nonce":             self.nonce,
            "payload":           self.payload,
            "record_id":         self.record_id,
            "sequence":          self.sequence,
            "signer_public_key": self.signer_public_key,
            "source":            self.source,
            "timestamp":         self.timestamp,
        }

    def to_chain_dict(self) -> Dict[str, Any]:
        """What the NEXT entry's causal_hash is computed over. Same fields as signing."""
        return self.to_signing_dict()

    def to_dict(self) -> Dict[str, Any]:
        """Full serialization including signature. JSONL persistence only."""
        d = self.to_signing_dict().copy()
        d["signature"] = self.signature
        return d

    def to_fact(self) -> Fact:
        return Fact(fact_type=self.fact_type, payload=dict(self.payload), source=self.source)

    # ── Chain Hash ────────────────────────────────────────────

    @staticmethod
    def _compute_causal_hash(prev: Optional["FactEnvelope"]) -> str:
        if prev is None:
            return GENESIS_HASH
        return canonical_hash(prev.to_chain_dict())

    def expected_causal_hash_from(self, prev: Optional["FactEnvelope"]) -> str:
        return FactEnvelope._compute_causal_hash(prev)

    # ── Signing & Verification ────────────────────────────────

    def sign(self, key: JournalKey) -> "FactEnvelope":
        """Sign in place. Returns self for chaining."""
        self.signature = key.sign(canonicalize(self.to_signing_dict()))
        return self

    def verify_signature(self, override_public_key_hex: Optional[str] = None) -> bool:
        """
        False if unsigned, tampered, or signed by another key. Never raises.
        """
        if not self.is_signed():
            return False
        pubkey_hex = override_public_key_hex or self.signer_public_key
        try:
            data = canonicalize(self.to_signing_dict())
        except (TypeError, ValueError):
            return False
        return JournalKey.verify_detached(data, self.signature, pubkey_hex)

    def verify_chain(self, prev: Optional["FactEnvelope"]) -> bool:
        return self.causal_hash == self.expected_causal_hash_from(prev)

    def verify_sequence(self, expected: int) -> bool:
        return self.sequence == expected

    def is_signed(self) -> bool:
        return bool(self.signature)
