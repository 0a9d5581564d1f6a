"""
Settlement reconciliation between intents and receipts.
"""

from intentledger.settlement.reconcile import (
    ReconciliationEngine,
    ReconciliationResult,
    ReconciliationState,
)

__all__ = [
    "ReconciliationEngine",
    "ReconciliationResult",
    "ReconciliationState",
]
