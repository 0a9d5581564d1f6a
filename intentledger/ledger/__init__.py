"""
IntentLedger Fact Journal

Durable, signed, hash-chained FactSink plus offline replay.
"""

from intentledger.ledger.envelope import (
    FactEnvelope,
    GENESIS_HASH,
    JOURNAL_VERSION,
    SchemaValidationResult,
)
from intentledger.ledger.journal import FactJournal
from intentledger.ledger.replay import ChainViolation, JournalReplay, ReplaySummary

__all__ = [
    "FactEnvelope",
    "FactJournal",
    "JournalReplay",
    "ReplaySummary",
    "ChainViolation",
    "SchemaValidationResult",
    "GENESIS_HASH",
    "JOURNAL_VERSION",
]
