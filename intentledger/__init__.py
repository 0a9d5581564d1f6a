"""
intentledger/__init__.py

IntentLedger: role-gated registries for payment intents and settlement receipts.

Two independent registries, one shared vocabulary:

    IntentRegistry   — authoritative intent state machine, executor-gated
    ReceiptRegistry  — caller-asserted settlement proofs, committer-gated

Every successful mutation emits exactly one Fact to the registry's sink.
FactJournal is the durable, signed, hash-chained sink; JournalReplay
verifies it offline.
"""

__version__         = "0.1.0"
__journal_version__ = "1.0"

from intentledger.core.exceptions import (
    AuthorizationError,
    IntentLedgerError,
    LedgerError,
    Reason,
    StateConflictError,
    ValidationError,
)
from intentledger.core.facts import Fact, FactSink, FactType, MemoryFactLog
from intentledger.core.crypto import JournalKey
from intentledger.core.hashes import ZERO_HASH, content_hash
from intentledger.core.vocabulary import (
    FailReason,
    IntentStatus,
    Preference,
    RecipientType,
)
from intentledger.ledger import FactJournal, JournalReplay
from intentledger.registry import (
    CommitReceiptParams,
    CreateIntentParams,
    IntentRegistry,
    PaymentIntent,
    ReceiptProof,
    ReceiptRegistry,
    UpdateIntentParams,
)
from intentledger.runtime import Deployment
from intentledger.settlement import ReconciliationEngine, ReconciliationState

__all__ = [
    # Registries
    "IntentRegistry",
    "ReceiptRegistry",
    "PaymentIntent",
    "ReceiptProof",
    "CreateIntentParams",
    "UpdateIntentParams",
    "CommitReceiptParams",
    # Vocabulary
    "IntentStatus",
    "FailReason",
    "RecipientType",
    "Preference",
    # Facts and journal
    "Fact",
    "FactSink",
    "FactType",
    "MemoryFactLog",
    "FactJournal",
    "JournalReplay",
    "JournalKey",
    # Wiring
    "Deployment",
    "ReconciliationEngine",
    "ReconciliationState",
    # Errors
    "IntentLedgerError",
    "AuthorizationError",
    "ValidationError",
    "StateConflictError",
    "LedgerError",
    "Reason",
    # Helpers
    "ZERO_HASH",
    "content_hash",
]
