"""
tests/test_facts.py

Fact construction and the in-memory sink.
"""

import pytest

from conftest import EXECUTOR, COMMITTER

from intentledger.core.facts import FACT_FIELDS, Fact, FactType, MemoryFactLog
from intentledger.core.vocabulary import IntentStatus


class TestFact:

    def test_create_orders_payload_and_strips_enums(self):
        fact = Fact.create(
            FactType.INTENT_STATUS_UPDATED,
            source="test",
            last_fail_reason=0,
            chosen_provider_ref_hash="ab" * 32,
            status=IntentStatus.SENT,
            id=4,
        )
        assert list(fact.payload) == list(FACT_FIELDS[FactType.INTENT_STATUS_UPDATED])
        assert type(fact.payload["status"]) is int
        assert fact.values() == (4, 4, "ab" * 32, 0)
        assert fact.intent_id == 4

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            Fact.create("IntentDeleted", id=1)

    def test_wrong_field_set_rejected(self):
        with pytest.raises(ValueError):
            Fact.create(FactType.INTENT_CANCELLED, id=1, extra=2)
        with pytest.raises(ValueError):
            Fact.create(FactType.EXECUTOR_UPDATED, executor="a")

    def test_role_facts_have_no_intent(self):
        fact = Fact.create(FactType.COMMITTER_UPDATED, committer="c", authorized=True)
        assert fact.intent_id is None

    def test_facts_are_frozen(self):
        fact = Fact.create(FactType.INTENT_CANCELLED, id=1)
        with pytest.raises(AttributeError):
            fact.fact_type = FactType.INTENT_CREATED


class TestMemoryFactLog:

    def test_shared_sink_keeps_emission_order(
        self, intents, receipts, sink, make_create, make_commit
    ):
        intents.create_intent(EXECUTOR, make_create())
        receipts.commit_receipt(COMMITTER, make_commit(intent_id=1))
        intents.cancel_intent(EXECUTOR, 2)

        assert [f.fact_type for f in sink.facts] == [
            FactType.EXECUTOR_UPDATED,
            FactType.COMMITTER_UPDATED,
            FactType.INTENT_CREATED,
            FactType.RECEIPT_COMMITTED,
            FactType.INTENT_CANCELLED,
        ]
        assert [f.fact_type for f in sink.for_intent(1)] == [
            FactType.INTENT_CREATED,
            FactType.RECEIPT_COMMITTED,
        ]
        assert len(sink.of_type(FactType.INTENT_CANCELLED)) == 1

    def test_facts_is_a_snapshot(self):
        log = MemoryFactLog()
        log.emit(Fact.create(FactType.INTENT_CANCELLED, id=1))
        snapshot = log.facts
        log.emit(Fact.create(FactType.INTENT_CANCELLED, id=2))
        assert len(snapshot) == 1
        assert len(log) == 2
