"""
IntentLedger Registries

Two independent registries sharing only the intent id and the
status/reason vocabulary. Neither calls the other.
"""

from intentledger.registry.intents import IntentRegistry
from intentledger.registry.models import (
    CommitReceiptParams,
    CreateIntentParams,
    PaymentIntent,
    ReceiptProof,
    UpdateIntentParams,
)
from intentledger.registry.receipts import ReceiptRegistry

__all__ = [
    "IntentRegistry",
    "ReceiptRegistry",
    "PaymentIntent",
    "ReceiptProof",
    "CreateIntentParams",
    "UpdateIntentParams",
    "CommitReceiptParams",
]
