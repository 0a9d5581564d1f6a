"""
tests/test_receipt_registry.py

ReceiptRegistry behaviour: commit, overwrite, zero records, committer gating.
The registry never consults intents, so none are created here.
"""

import pytest

from conftest import ADMIN, COMMITTER, STRANGER, T0, h

from intentledger.core.exceptions import AuthorizationError, Reason, ValidationError
from intentledger.core.facts import FactType
from intentledger.core.hashes import ZERO_HASH
from intentledger.core.vocabulary import FailReason, IntentStatus
from intentledger.registry.models import ReceiptProof
from intentledger.registry.receipts import ReceiptRegistry


class TestCommitReceipt:

    def test_commit_stores_proof(self, receipts, make_commit):
        proof = receipts.commit_receipt(COMMITTER, make_commit(intent_id=7))

        assert proof.intent_id == 7
        assert proof.receipt_hash == h(0xCE)
        assert proof.final_status == IntentStatus.CONFIRMED
        assert proof.evidence_hash == ZERO_HASH
        assert proof.committed_at == T0
        assert proof.committed_by == COMMITTER
        assert proof.exists
        assert receipts.get_receipt(7) == proof

    def test_emits_receipt_committed_in_field_order(self, receipts, sink, make_commit):
        receipts.commit_receipt(COMMITTER, make_commit(
            intent_id=3,
            receipt_version=2,
            final_status=IntentStatus.FAILED,
            final_reason=FailReason.INSUFFICIENT_FUNDS,
        ))

        fact = sink.facts[-1]
        assert fact.fact_type == FactType.RECEIPT_COMMITTED
        assert fact.source == ReceiptRegistry.SOURCE
        assert fact.intent_id == 3
        assert fact.values() == (
            3, h(0xCE), 2, h(0xB2), int(IntentStatus.FAILED), int(FailReason.INSUFFICIENT_FUNDS),
        )

    def test_second_commit_replaces_first(self, receipts, clock, make_commit):
        receipts.commit_receipt(COMMITTER, make_commit(intent_id=1))
        clock.advance(60)
        second = receipts.commit_receipt(COMMITTER, make_commit(
            intent_id=1,
            receipt_hash=h(0xC2),
            receipt_version=2,
            final_status=IntentStatus.FAILED,
            final_reason=FailReason.TIMEOUT,
        ))

        stored = receipts.get_receipt(1)
        assert stored == second
        assert stored.receipt_hash == h(0xC2)
        assert stored.receipt_version == 2
        assert stored.committed_at == T0 + 60

    def test_non_terminal_status_and_unknown_intent_accepted(self, receipts, make_commit):
        proof = receipts.commit_receipt(COMMITTER, make_commit(
            intent_id=12345, final_status=IntentStatus.PENDING
        ))
        assert proof.final_status == IntentStatus.PENDING

    def test_zero_receipt_hash_rejected_without_trace(self, receipts, sink, make_commit):
        before = len(sink)

        with pytest.raises(ValidationError) as exc:
            receipts.commit_receipt(COMMITTER, make_commit(receipt_hash=ZERO_HASH))

        assert exc.value.reason == Reason.INVALID_RECEIPT_HASH
        assert len(sink) == before
        assert receipts.get_receipt(1) == ReceiptProof.empty()

    @pytest.mark.parametrize("field,value,reason", [
        ("provider_ref_hash", ZERO_HASH, Reason.INVALID_PROVIDER_REF),
        ("receipt_uri_hash",  ZERO_HASH, Reason.INVALID_RECEIPT_URI_HASH),
        ("receipt_version",   -1,        Reason.INVALID_RECEIPT_VERSION),
        ("final_status",      10,        Reason.INVALID_ENUM),
        ("evidence_hash",     b"short",  Reason.MALFORMED_HASH),
        ("intent_id",         "1",       Reason.INVALID_INTENT_ID),
    ])
    def test_invalid_params(self, receipts, make_commit, field, value, reason):
        with pytest.raises(ValidationError) as exc:
            receipts.commit_receipt(COMMITTER, make_commit(**{field: value}))
        assert exc.value.reason == reason

    def test_rejected_overwrite_keeps_previous(self, receipts, make_commit):
        first = receipts.commit_receipt(COMMITTER, make_commit())
        with pytest.raises(ValidationError):
            receipts.commit_receipt(COMMITTER, make_commit(receipt_hash=ZERO_HASH))
        assert receipts.get_receipt(1) == first

    def test_non_committer_rejected_before_validation(self, receipts, make_commit):
        with pytest.raises(AuthorizationError) as exc:
            receipts.commit_receipt(STRANGER, make_commit(receipt_hash=ZERO_HASH))
        assert exc.value.reason == Reason.NOT_COMMITTER


class TestManageCommitters:

    def test_grant_revoke(self, receipts, sink, make_commit):
        receipts.manage_committers(ADMIN, "backup", True)
        assert receipts.is_committer("backup")
        assert receipts.committers() == ["backup", COMMITTER]
        assert sink.facts[-1].fact_type == FactType.COMMITTER_UPDATED
        assert sink.facts[-1].values() == ("backup", True)

        receipts.manage_committers(ADMIN, "backup", False)
        with pytest.raises(AuthorizationError):
            receipts.commit_receipt("backup", make_commit())

    def test_only_admin(self, receipts):
        with pytest.raises(AuthorizationError) as exc:
            receipts.manage_committers(COMMITTER, "backup", True)
        assert exc.value.reason == Reason.NOT_ADMIN
        assert not receipts.is_committer("backup")


class TestReads:

    def test_missing_receipt_is_zero_record(self, receipts):
        empty = receipts.get_receipt(5)
        assert empty == ReceiptProof.empty()
        assert empty.committed_by == ""
        assert not empty.exists

    def test_owner(self, receipts):
        assert receipts.owner == ADMIN


class TestRestore:

    def test_rebuilds_proofs_and_committers(self, receipts, sink, clock, make_commit):
        receipts.commit_receipt(COMMITTER, make_commit(intent_id=3))
        receipts.commit_receipt(COMMITTER, make_commit(
            intent_id=3, receipt_version=2, final_status=IntentStatus.FAILED,
            final_reason=FailReason.PROVIDER_DOWN,
        ))
        receipts.manage_committers(ADMIN, "auditor", True)
        receipts.manage_committers(ADMIN, COMMITTER, False)

        restored = ReceiptRegistry(admin=ADMIN, sink=sink, clock=clock)
        before = len(sink)
        assert restored.restore(sink.facts) == len(sink.facts)
        assert len(sink) == before

        proof = restored.get_receipt(3)
        assert proof.exists
        assert proof.receipt_version == 2
        assert proof.final_status == IntentStatus.FAILED
        assert proof.final_reason == FailReason.PROVIDER_DOWN
        assert proof.provider_ref_hash == h(0xB2)
        assert restored.receipt_ids() == [3]
        assert restored.committers() == ["auditor"]

    def test_refuses_a_registry_with_state(self, receipts):
        with pytest.raises(RuntimeError):
            receipts.restore([])
