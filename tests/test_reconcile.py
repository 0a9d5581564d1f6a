"""
tests/test_reconcile.py

ReconciliationEngine: first failing check wins, registries are never mutated.
"""

import pytest

from conftest import COMMITTER, EXECUTOR, h

from intentledger.core.vocabulary import FailReason, IntentStatus
from intentledger.settlement.reconcile import ReconciliationEngine, ReconciliationState


@pytest.fixture
def engine(intents, receipts):
    return ReconciliationEngine(intents, receipts)


@pytest.fixture
def confirmed(intents, make_create, make_update):
    intents.create_intent(EXECUTOR, make_create())
    intents.update_intent(EXECUTOR, 1, make_update(IntentStatus.CONFIRMED))
    return intents.get_intent(1)


class TestReconcile:

    def test_matched(self, engine, receipts, confirmed, make_commit):
        receipts.commit_receipt(COMMITTER, make_commit(intent_id=1))
        result = engine.reconcile(1)
        assert result.state is ReconciliationState.MATCHED
        assert result.matched

    def test_receipt_missing(self, engine, confirmed):
        assert engine.reconcile(1).state is ReconciliationState.RECEIPT_MISSING

    def test_intent_missing(self, engine, receipts, make_commit):
        receipts.commit_receipt(COMMITTER, make_commit(intent_id=9))
        result = engine.reconcile(9)
        assert result.state is ReconciliationState.INTENT_MISSING
        assert COMMITTER in result.reason

    def test_status_only_record_is_not_an_intent(
        self, engine, intents, receipts, make_update, make_commit
    ):
        intents.update_intent(EXECUTOR, 5, make_update(IntentStatus.CONFIRMED))
        receipts.commit_receipt(COMMITTER, make_commit(intent_id=5))
        assert engine.reconcile(5).state is ReconciliationState.INTENT_MISSING

    def test_receipt_not_terminal(self, engine, receipts, confirmed, make_commit):
        receipts.commit_receipt(COMMITTER, make_commit(final_status=IntentStatus.PENDING))
        assert engine.reconcile(1).state is ReconciliationState.RECEIPT_NOT_TERMINAL

    def test_intent_not_terminal(self, engine, intents, receipts, make_create, make_commit):
        intents.create_intent(EXECUTOR, make_create())
        receipts.commit_receipt(COMMITTER, make_commit())
        assert engine.reconcile(1).state is ReconciliationState.INTENT_NOT_TERMINAL

    def test_status_mismatch(self, engine, receipts, confirmed, make_commit):
        receipts.commit_receipt(COMMITTER, make_commit(final_status=IntentStatus.FAILED))
        assert engine.reconcile(1).state is ReconciliationState.STATUS_MISMATCH

    def test_reason_mismatch(self, engine, receipts, confirmed, make_commit):
        receipts.commit_receipt(COMMITTER, make_commit(final_reason=FailReason.TIMEOUT))
        assert engine.reconcile(1).state is ReconciliationState.REASON_MISMATCH

    def test_provider_mismatch(self, engine, receipts, confirmed, make_commit):
        receipts.commit_receipt(COMMITTER, make_commit(provider_ref_hash=h(0xB9)))
        assert engine.reconcile(1).state is ReconciliationState.PROVIDER_MISMATCH

    def test_status_checked_before_reason(self, engine, receipts, confirmed, make_commit):
        receipts.commit_receipt(COMMITTER, make_commit(
            final_status=IntentStatus.CANCELLED,
            final_reason=FailReason.DUPLICATE,
            provider_ref_hash=h(0xB9),
        ))
        assert engine.reconcile(1).state is ReconciliationState.STATUS_MISMATCH

    def test_never_mutates(self, engine, intents, receipts, sink, confirmed):
        before = len(sink)
        engine.reconcile_many([1, 2, 3])
        assert len(sink) == before
        assert intents.get_intent(1) == confirmed
        assert not receipts.get_receipt(1).exists


class TestAggregation:

    def test_reconcile_all_and_stats(
        self, engine, intents, receipts, confirmed, make_create, make_commit
    ):
        intents.create_intent(EXECUTOR, make_create())
        receipts.commit_receipt(COMMITTER, make_commit(intent_id=1))

        results = engine.reconcile_all()
        assert [r.intent_id for r in results] == [1, 2]

        stats = ReconciliationEngine.get_stats(results)
        assert stats == {
            "total": 2,
            "matched": 1,
            "by_state": {"MATCHED": 1, "RECEIPT_MISSING": 1},
        }

    def test_reconcile_all_covers_unallocated_ids(
        self, engine, intents, receipts, make_create, make_update, make_commit
    ):
        intents.create_intent(EXECUTOR, make_create())
        intents.update_intent(EXECUTOR, 5, make_update(IntentStatus.CONFIRMED))
        receipts.commit_receipt(COMMITTER, make_commit(intent_id=5))
        receipts.commit_receipt(COMMITTER, make_commit(intent_id=9))

        results = {r.intent_id: r.state for r in engine.reconcile_all()}
        assert results == {
            1: ReconciliationState.RECEIPT_MISSING,
            5: ReconciliationState.INTENT_MISSING,
            9: ReconciliationState.INTENT_MISSING,
        }
