"""
Reconciliation engine for comparing intents against their committed receipts.

The two registries never check each other. This engine is a read-only
consumer that flags where a receipt disagrees with the intent it names.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Tuple

from intentledger.core.vocabulary import is_terminal
from intentledger.registry.intents import IntentRegistry
from intentledger.registry.receipts import ReceiptRegistry


logger = logging.getLogger(__name__)


class ReconciliationState(Enum):
    MATCHED              = "MATCHED"
    RECEIPT_MISSING      = "RECEIPT_MISSING"
    INTENT_MISSING       = "INTENT_MISSING"
    RECEIPT_NOT_TERMINAL = "RECEIPT_NOT_TERMINAL"
    INTENT_NOT_TERMINAL  = "INTENT_NOT_TERMINAL"
    STATUS_MISMATCH      = "STATUS_MISMATCH"
    REASON_MISMATCH      = "REASON_MISMATCH"
    PROVIDER_MISMATCH    = "PROVIDER_MISMATCH"


@dataclass(frozen=True)
class ReconciliationResult:
    intent_id: int
    state:     ReconciliationState
    reason:    str

    @property
    def matched(self) -> bool:
        return self.state is ReconciliationState.MATCHED


class ReconciliationEngine:
    """
    Compares IntentRegistry records with ReceiptRegistry proofs.

    Detects:
    - Intents with no receipt, and receipts for intents never created
    - Receipts or intents that are not in a terminal status
    - Status, fail reason or provider disagreements

    Reads only through the registries' public getters.
    """

    def __init__(self, intents: IntentRegistry, receipts: ReceiptRegistry):
        self.intents = intents
        self.receipts = receipts

    def reconcile(self, intent_id: int) -> ReconciliationResult:
        state, reason = self._evaluate(intent_id)
        if state is not ReconciliationState.MATCHED:
            logger.debug("intent %d reconciled as %s: %s", intent_id, state.value, reason)
        return ReconciliationResult(intent_id=intent_id, state=state, reason=reason)

    def reconcile_many(self, intent_ids: Iterable[int]) -> List[ReconciliationResult]:
        return [self.reconcile(intent_id) for intent_id in intent_ids]

    def reconcile_all(self) -> List[ReconciliationResult]:
        """
        Every allocated id (1 to the current id), plus any id that holds an
        intent record or a receipt without having been allocated.
        """
        ids = set(range(1, self.intents.current_intent_id + 1))
        ids.update(self.intents.intent_ids())
        ids.update(self.receipts.receipt_ids())
        return self.reconcile_many(sorted(ids))

    def _evaluate(self, intent_id: int) -> Tuple[ReconciliationState, str]:
        """
        Evaluate the pair. First failing check wins.

        Returns:
            (state, reason)
        """
        intent = self.intents.get_intent(intent_id)
        receipt = self.receipts.get_receipt(intent_id)

        if not receipt.exists:
            return (
                ReconciliationState.RECEIPT_MISSING,
                f"No receipt committed for intent {intent_id}",
            )

        if not intent.exists:
            return (
                ReconciliationState.INTENT_MISSING,
                f"Receipt committed by {receipt.committed_by!r} for unknown intent {intent_id}",
            )

        if not is_terminal(receipt.final_status):
            return (
                ReconciliationState.RECEIPT_NOT_TERMINAL,
                f"Receipt asserts non-terminal status {receipt.final_status.name}",
            )

        if not is_terminal(intent.status):
            return (
                ReconciliationState.INTENT_NOT_TERMINAL,
                f"Intent is still {intent.status.name}",
            )

        if receipt.final_status != intent.status:
            return (
                ReconciliationState.STATUS_MISMATCH,
                f"Status mismatch: intent {intent.status.name}, "
                f"receipt {receipt.final_status.name}",
            )

        if receipt.final_reason != intent.last_fail_reason:
            return (
                ReconciliationState.REASON_MISMATCH,
                f"Fail reason mismatch: intent {intent.last_fail_reason.name}, "
                f"receipt {receipt.final_reason.name}",
            )

        if receipt.provider_ref_hash != intent.chosen_provider_ref_hash:
            return (
                ReconciliationState.PROVIDER_MISMATCH,
                f"Provider mismatch: intent ...{intent.chosen_provider_ref_hash[-12:]}, "
                f"receipt ...{receipt.provider_ref_hash[-12:]}",
            )

        return (
            ReconciliationState.MATCHED,
            "Receipt matches intent outcome and provider",
        )

    @staticmethod
    def get_stats(results: Iterable[ReconciliationResult]) -> Dict:
        """
        Returns:
            Dict with the total and counts by state
        """
        results = list(results)
        counts = Counter(r.state.value for r in results)
        return {
            "total": len(results),
            "matched": counts.get(ReconciliationState.MATCHED.value, 0),
            "by_state": dict(counts),
        }
