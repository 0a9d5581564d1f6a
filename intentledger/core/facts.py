"""
intentledger/core/facts.py

Facts — the immutable records every successful mutation emits.

═══════════════════════════════════════════════════════════════════
FACT CONTRACT — field order is part of the contract.
Consumers replaying history read Fact.values() positionally.
═══════════════════════════════════════════════════════════════════

    IntentCreated        (id, external_reference_id, amount, sender_hash,
                          recipient_type, recipient_hash, metadata_hash,
                          deadline)
    IntentStatusUpdated  (id, status, chosen_provider_ref_hash,
                          last_fail_reason)
    IntentCancelled      (id)
    ExecutorUpdated      (executor, authorized)
    ReceiptCommitted     (intent_id, receipt_hash, receipt_version,
                          provider_ref_hash, final_status, final_reason)
    CommitterUpdated     (committer, authorized)

Payload values are JSON-primitive only: enums travel as ints,
hashes as 64-char hex, identities as strings.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Protocol, Tuple


class FactType:
    """
    Fact type string constants.

    These are the ONLY valid values for Fact.fact_type.
    Enforced at Fact.create() and at journal schema validation.
    """
    INTENT_CREATED        = "IntentCreated"
    INTENT_STATUS_UPDATED = "IntentStatusUpdated"
    INTENT_CANCELLED      = "IntentCancelled"
    EXECUTOR_UPDATED      = "ExecutorUpdated"
    RECEIPT_COMMITTED     = "ReceiptCommitted"
    COMMITTER_UPDATED     = "CommitterUpdated"


FACT_FIELDS: Dict[str, Tuple[str, ...]] = {
    FactType.INTENT_CREATED: (
        "id",
        "external_reference_id",
        "amount",
        "sender_hash",
        "recipient_type",
        "recipient_hash",
        "metadata_hash",
        "deadline",
    ),
    FactType.INTENT_STATUS_UPDATED: (
        "id",
        "status",
        "chosen_provider_ref_hash",
        "last_fail_reason",
    ),
    FactType.INTENT_CANCELLED: ("id",),
    FactType.EXECUTOR_UPDATED: ("executor", "authorized"),
    FactType.RECEIPT_COMMITTED: (
        "intent_id",
        "receipt_hash",
        "receipt_version",
        "provider_ref_hash",
        "final_status",
        "final_reason",
    ),
    FactType.COMMITTER_UPDATED: ("committer", "authorized"),
}

# Payload key naming the intent a fact is about, per fact type.
_INTENT_KEYS: Dict[str, str] = {
    FactType.INTENT_CREATED:        "id",
    FactType.INTENT_STATUS_UPDATED: "id",
    FactType.INTENT_CANCELLED:      "id",
    FactType.RECEIPT_COMMITTED:     "intent_id",
}


def _wire_value(value: Any) -> Any:
    # IntEnum is an int subclass; strip it so canonical JSON sees a plain int.
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class Fact:
    """One emitted fact. Build with Fact.create(), never directly."""

    fact_type: str
    payload:   Dict[str, Any]
    source:    str = ""

    @classmethod
    def create(cls, fact_type: str, source: str = "", **fields: Any) -> "Fact":
        """
        Hard enforces:
            fact_type — must be a FactType constant
            fields    — exactly the FACT_FIELDS set for that type
        """
        if fact_type not in FACT_FIELDS:
            raise ValueError(
                f"Invalid fact_type '{fact_type}'. Valid: {sorted(FACT_FIELDS)}"
            )
        expected = FACT_FIELDS[fact_type]
        if set(fields) != set(expected):
            raise ValueError(
                f"{fact_type} requires fields {list(expected)}, "
                f"got {sorted(fields)}"
            )
        payload = {name: _wire_value(fields[name]) for name in expected}
        return cls(fact_type=fact_type, payload=payload, source=source)

    def values(self) -> Tuple[Any, ...]:
        """Payload values in contract order."""
        return tuple(self.payload[name] for name in FACT_FIELDS[self.fact_type])

    @property
    def intent_id(self):
        """The intent this fact concerns, or None for role facts."""
        key = _INTENT_KEYS.get(self.fact_type)
        return self.payload[key] if key else None


class FactSink(Protocol):
    """
    Anything that accepts emitted facts.

    emit() must either durably accept the fact or raise. A registry publishes
    its state change only after emit() returns.
    """

    def emit(self, fact: Fact) -> Any:
        ...


@dataclass
class MemoryFactLog:
    """
    In-process fact log. Default sink for registries built without one.

    Thread-safe: several registries may share one instance.
    """

    _facts: List[Fact] = field(default_factory=list)
    _lock:  threading.Lock = field(default_factory=threading.Lock, repr=False)

    def emit(self, fact: Fact) -> Fact:
        with self._lock:
            self._facts.append(fact)
        return fact

    @property
    def facts(self) -> List[Fact]:
        """Snapshot of all facts, in emission order."""
        with self._lock:
            return list(self._facts)

    def of_type(self, fact_type: str) -> List[Fact]:
        return [f for f in self.facts if f.fact_type == fact_type]

    def for_intent(self, intent_id: int) -> List[Fact]:
        """Every intent and receipt fact about `intent_id`, in order."""
        return [f for f in self.facts if f.intent_id == intent_id]

    def __len__(self) -> int:
        return len(self._facts)
