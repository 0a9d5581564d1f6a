"""
intentledger/registry/models.py

Registry records and call parameters.

Records are frozen. A mutation builds a replacement with
dataclasses.replace() and publishes it in one assignment, so a reader
always sees a whole record, never a half-applied update.

Params are plain carriers of caller input. They are NOT validated on
construction: the registry checks the caller's role first and only then
validates the params.
"""

from dataclasses import dataclass

from intentledger.core.hashes import ZERO_HASH, HashLike
from intentledger.core.vocabulary import (
    FailReason,
    IntentStatus,
    Preference,
    RecipientType,
)


# ─────────────────────────────────────────────────────────────
# Records
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PaymentIntent:
    """
    One payment intent.

    `PaymentIntent.empty()` is what get_intent() returns for an id that
    was never written. It is produced at query time, never stored.
    `exists` means the id went through create_intent(). A record written by
    update_intent() or cancel_intent() on an unknown id is stored but does
    not exist in that sense.
    """
    id:                       int
    external_reference_id:    str
    amount:                   int
    recipient_type:           RecipientType
    sender_hash:              str
    recipient_hash:           str
    metadata_hash:            str
    preference:               Preference
    chosen_provider_ref_hash: str
    created_at:               int
    deadline:                 int
    last_updated_at:          int
    status:                   IntentStatus
    attempts:                 int
    last_fail_reason:         FailReason
    last_fail_detail_hash:    str

    @classmethod
    def empty(cls) -> "PaymentIntent":
        return cls(
            id=                       0,
            external_reference_id=    ZERO_HASH,
            amount=                   0,
            recipient_type=           RecipientType.UNKNOWN,
            sender_hash=              ZERO_HASH,
            recipient_hash=           ZERO_HASH,
            metadata_hash=            ZERO_HASH,
            preference=               Preference.DEFAULT,
            chosen_provider_ref_hash= ZERO_HASH,
            created_at=               0,
            deadline=                 0,
            last_updated_at=          0,
            status=                   IntentStatus.NONE,
            attempts=                 0,
            last_fail_reason=         FailReason.NONE,
            last_fail_detail_hash=    ZERO_HASH,
        )

    @property
    def exists(self) -> bool:
        # Only create_intent() stores a positive amount; update and cancel on
        # an unknown id leave it at 0.
        return self.amount > 0


@dataclass(frozen=True)
class ReceiptProof:
    """
    Settlement proof for one intent id. Last write wins.

    `final_status` and `final_reason` are what the committer asserted.
    Nothing here checks them against the intent.
    """
    intent_id:         int
    receipt_hash:      str
    receipt_version:   int
    provider_ref_hash: str
    final_status:      IntentStatus
    final_reason:      FailReason
    receipt_uri_hash:  str
    evidence_hash:     str
    committed_at:      int
    committed_by:      str

    @classmethod
    def empty(cls) -> "ReceiptProof":
        return cls(
            intent_id=         0,
            receipt_hash=      ZERO_HASH,
            receipt_version=   0,
            provider_ref_hash= ZERO_HASH,
            final_status=      IntentStatus.NONE,
            final_reason=      FailReason.NONE,
            receipt_uri_hash=  ZERO_HASH,
            evidence_hash=     ZERO_HASH,
            committed_at=      0,
            committed_by=      "",
        )

    @property
    def exists(self) -> bool:
        # commit_receipt() never stores a zero receipt_hash
        return self.receipt_hash != ZERO_HASH


# ─────────────────────────────────────────────────────────────
# Call parameters
# ─────────────────────────────────────────────────────────────

@dataclass
class CreateIntentParams:
    external_reference_id:    HashLike
    amount:                   int
    deadline:                 int
    recipient_type:           int
    sender_hash:              HashLike
    recipient_hash:           HashLike
    metadata_hash:            HashLike
    preference:               int
    chosen_provider_ref_hash: HashLike


@dataclass
class UpdateIntentParams:
    deadline:                 int
    status:                   int
    chosen_provider_ref_hash: HashLike
    attempts:                 int = 0
    last_fail_reason:         int = FailReason.NONE
    last_fail_detail_hash:    HashLike = ZERO_HASH


@dataclass
class CommitReceiptParams:
    intent_id:         int
    receipt_hash:      HashLike
    receipt_version:   int
    provider_ref_hash: HashLike
    final_status:      int
    final_reason:      int
    receipt_uri_hash:  HashLike
    evidence_hash:     HashLike = ZERO_HASH
