"""
tests/test_concurrency.py

Concurrent callers on one registry: ids stay unique and gap-free, the
shared journal stays a single valid chain.

Run:
    pytest tests/test_concurrency.py -v --tb=short
"""

import threading

from conftest import ADMIN, COMMITTER, EXECUTOR

from intentledger.core.facts import FactType
from intentledger.ledger.journal import FactJournal
from intentledger.ledger.replay import JournalReplay
from intentledger.registry.intents import IntentRegistry
from intentledger.registry.receipts import ReceiptRegistry


THREADS    = 4
PER_THREAD = 15


def _run(target):
    errors = []

    def guarded():
        try:
            target()
        except Exception as e:
            errors.append(repr(e))

    threads = [threading.Thread(target=guarded) for _ in range(THREADS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return errors


class TestConcurrency:

    def test_concurrent_creates_get_unique_ids(self, intents, sink, make_create):
        created = []

        def create_batch():
            for _ in range(PER_THREAD):
                created.append(intents.create_intent(EXECUTOR, make_create()).id)

        assert _run(create_batch) == []

        total = THREADS * PER_THREAD
        assert sorted(created) == list(range(1, total + 1))
        assert intents.current_intent_id == total
        assert len(sink.of_type(FactType.INTENT_CREATED)) == total

    def test_two_registries_share_one_journal(self, key, clock, tmp_path, make_create, make_commit):
        journal  = FactJournal(key, str(tmp_path / "journal"))
        intents  = IntentRegistry(admin=ADMIN, sink=journal, clock=clock)
        receipts = ReceiptRegistry(admin=ADMIN, sink=journal, clock=clock)
        intents.manage_executors(ADMIN, EXECUTOR, True)
        receipts.manage_committers(ADMIN, COMMITTER, True)

        def mixed():
            for i in range(PER_THREAD):
                intents.create_intent(EXECUTOR, make_create())
                receipts.commit_receipt(COMMITTER, make_commit(intent_id=i + 1))

        assert _run(mixed) == []

        replay = JournalReplay()
        replay.load(journal.journal_file)
        summary = replay.verify()
        assert summary.chain_valid
        assert summary.total_entries == 2 + 2 * THREADS * PER_THREAD
