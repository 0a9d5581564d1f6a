"""
intentledger/registry/receipts.py

Receipt Registry — one settlement proof per intent id, last write wins.

Deliberately blind to the Intent Registry. commit_receipt() does NOT check:
    - that intent_id was ever created
    - that final_status is terminal, or matches the intent
    - that a receipt already exists (a second commit replaces the first)

Consumers who need those guarantees reconcile both registries themselves
(see intentledger.settlement).
"""

import logging
import threading
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from intentledger.core.access import AccessControl, Role, require_identity
from intentledger.core.exceptions import Reason
from intentledger.core.facts import Fact, FactSink, FactType, MemoryFactLog
from intentledger.core.time import Clock, unix_time
from intentledger.core.vocabulary import FailReason, IntentStatus
from intentledger.registry.models import CommitReceiptParams, ReceiptProof
from intentledger.registry.validation import (
    rejections_logged,
    require_enum,
    require_flag,
    require_hash,
    require_intent_id,
    require_nonzero_hash,
    require_uint,
)


logger = logging.getLogger(__name__)


class ReceiptRegistry:
    """
    Owns every ReceiptProof and the committer role set.

    Usage:
        receipts = ReceiptRegistry(admin="ops-admin")
        receipts.manage_committers("ops-admin", "settler", True)
        proof = receipts.commit_receipt("settler", params)
    """

    SOURCE = "receipt-registry"

    def __init__(
        self,
        admin:  str,
        sink:   Optional[FactSink] = None,
        clock:  Optional[Clock] = None,
    ) -> None:
        self._access = AccessControl(admin, Role.COMMITTER)
        self._sink   = sink if sink is not None else MemoryFactLog()
        self._clock  = clock or unix_time

        self._lock:     threading.Lock         = threading.Lock()
        self._receipts: Dict[int, ReceiptProof] = {}

    @property
    def owner(self) -> str:
        return self._access.admin

    @property
    def sink(self) -> FactSink:
        return self._sink

    def is_committer(self, identity: str) -> bool:
        return self._access.has_role(identity, Role.COMMITTER)

    def committers(self) -> List[str]:
        return self._access.members()

    def get_receipt(self, intent_id: int) -> ReceiptProof:
        """Pure read. Returns ReceiptProof.empty() if nothing was committed."""
        return self._receipts.get(require_intent_id(intent_id), ReceiptProof.empty())

    def receipt_ids(self) -> List[int]:
        return sorted(self._receipts)

    def commit_receipt(self, caller: str, params: CommitReceiptParams) -> ReceiptProof:
        """
        Create or fully replace the receipt for params.intent_id.

        committed_at comes from the registry clock, committed_by is the caller.

        Raises:
            AuthorizationError — caller is not a committer
            ValidationError    — zero receipt/provider/uri hash, malformed input
        """
        with self._lock, rejections_logged(logger, "commit_receipt", caller):
            self._access.require(caller, Role.COMMITTER)

            intent_id    = require_intent_id(params.intent_id)
            receipt_hash = require_nonzero_hash(
                params.receipt_hash, "receipt_hash", Reason.INVALID_RECEIPT_HASH
            )
            provider_ref = require_nonzero_hash(
                params.provider_ref_hash, "provider_ref_hash", Reason.INVALID_PROVIDER_REF
            )
            receipt_uri  = require_nonzero_hash(
                params.receipt_uri_hash, "receipt_uri_hash", Reason.INVALID_RECEIPT_URI_HASH
            )

            proof = ReceiptProof(
                intent_id=         intent_id,
                receipt_hash=      receipt_hash,
                receipt_version=   require_uint(
                    params.receipt_version,
                    "receipt_version",
                    Reason.INVALID_RECEIPT_VERSION,
                ),
                provider_ref_hash= provider_ref,
                final_status=      require_enum(IntentStatus, params.final_status, "final_status"),
                final_reason=      require_enum(FailReason, params.final_reason, "final_reason"),
                receipt_uri_hash=  receipt_uri,
                evidence_hash=     require_hash(params.evidence_hash, "evidence_hash"),
                committed_at=      self._clock(),
                committed_by=      caller,
            )

            self._sink.emit(Fact.create(
                FactType.RECEIPT_COMMITTED,
                source=            self.SOURCE,
                intent_id=         proof.intent_id,
                receipt_hash=      proof.receipt_hash,
                receipt_version=   proof.receipt_version,
                provider_ref_hash= proof.provider_ref_hash,
                final_status=      proof.final_status,
                final_reason=      proof.final_reason,
            ))

            replaced = intent_id in self._receipts
            self._receipts[intent_id] = proof

        logger.debug(
            "receipt for intent %d %s by %r (version=%d)",
            intent_id, "replaced" if replaced else "committed", caller,
            proof.receipt_version,
        )
        return proof

    def manage_committers(self, caller: str, identity: str, authorized: bool) -> None:
        """Grant or revoke the committer role. Admin only. Idempotent."""
        with self._lock, rejections_logged(logger, "manage_committers", caller):
            self._access.require(caller, Role.ADMIN)
            identity   = require_identity(identity)
            authorized = require_flag(authorized, "authorized")

            self._sink.emit(Fact.create(
                FactType.COMMITTER_UPDATED,
                source=     self.SOURCE,
                committer=  identity,
                authorized= authorized,
            ))

            self._access.set_member(identity, authorized)

    def restore(self, facts: Iterable[Fact]) -> int:
        """
        Rebuild proofs and committer roles from earlier ReceiptCommitted and
        CommitterUpdated facts, oldest first. Emits nothing.

        The uri and evidence hashes, committed_at and committed_by are not in
        the fact and come back zero/empty. Returns the number of facts applied.
        """
        with self._lock:
            if self._receipts or self._access.members():
                raise RuntimeError("restore() requires a freshly constructed ReceiptRegistry")

            applied = 0
            for fact in facts:
                p = fact.payload
                if fact.fact_type == FactType.COMMITTER_UPDATED:
                    self._access.set_member(p["committer"], p["authorized"])
                elif fact.fact_type == FactType.RECEIPT_COMMITTED:
                    self._receipts[p["intent_id"]] = replace(
                        ReceiptProof.empty(),
                        intent_id=         p["intent_id"],
                        receipt_hash=      p["receipt_hash"],
                        receipt_version=   p["receipt_version"],
                        provider_ref_hash= p["provider_ref_hash"],
                        final_status=      IntentStatus(p["final_status"]),
                        final_reason=      FailReason(p["final_reason"]),
                    )
                else:
                    continue
                applied += 1

        logger.info("receipt registry restored from %d facts", applied)
        return applied
