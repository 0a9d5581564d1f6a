"""
intentledger/core/vocabulary.py

Shared vocabulary for both registries. Pure data contract, no behavior.

Integer values are the wire values carried in facts and journal payloads.
They are ordered and closed: never renumber, never insert in the middle.
"""

from enum import IntEnum
from typing import FrozenSet


class IntentStatus(IntEnum):
    """Lifecycle status of a payment intent."""
    NONE         = 0
    CREATED      = 1
    QUOTING      = 2
    ROUTED       = 3
    SENT         = 4
    PENDING      = 5
    CONFIRMED    = 6
    FAILED       = 7
    NEEDS_REVIEW = 8
    CANCELLED    = 9


class FailReason(IntEnum):
    """Why the last attempt on an intent failed."""
    NONE               = 0
    INVALID_RECIPIENT  = 1
    LIMIT_EXCEEDED     = 2
    PROVIDER_DOWN      = 3
    TIMEOUT            = 4
    DUPLICATE          = 5
    INSUFFICIENT_FUNDS = 6
    PENDING_TOO_LONG   = 7
    UNSUPPORTED        = 8
    UNKNOWN            = 9


class RecipientType(IntEnum):
    UNKNOWN      = 0
    QR           = 1
    MOBILE       = 2
    BANK_ACCOUNT = 3
    WALLET_ID    = 4


class Preference(IntEnum):
    DEFAULT            = 0
    CHEAPEST           = 1
    FASTEST            = 2
    PREFERRED_PROVIDER = 3


# Once reached, no field of the intent may change again.
TERMINAL_STATUSES: FrozenSet[IntentStatus] = frozenset({
    IntentStatus.CONFIRMED,
    IntentStatus.FAILED,
    IntentStatus.CANCELLED,
})

# Funds are not yet in flight in any of these.
CANCELLABLE_STATUSES: FrozenSet[IntentStatus] = frozenset({
    IntentStatus.NONE,
    IntentStatus.CREATED,
    IntentStatus.QUOTING,
    IntentStatus.ROUTED,
    IntentStatus.NEEDS_REVIEW,
})


def is_terminal(status: IntentStatus) -> bool:
    """Return True if no further mutation is permitted from `status`."""
    return status in TERMINAL_STATUSES


def is_cancellable(status: IntentStatus) -> bool:
    return status in CANCELLABLE_STATUSES
