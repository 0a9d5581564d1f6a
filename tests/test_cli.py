"""
tests/test_cli.py

`intentledger verify` and `intentledger facts` through click's CliRunner.
"""

import json

import pytest
from click.testing import CliRunner

from conftest import ADMIN, COMMITTER, EXECUTOR

from intentledger.cli import cli
from intentledger.core.vocabulary import IntentStatus
from intentledger.ledger.journal import FactJournal
from intentledger.registry.intents import IntentRegistry
from intentledger.registry.receipts import ReceiptRegistry


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def journal_dir(tmp_path, key, clock, make_create, make_update, make_commit):
    path     = tmp_path / "journal"
    journal  = FactJournal(key, str(path))
    intents  = IntentRegistry(admin=ADMIN, sink=journal, clock=clock)
    receipts = ReceiptRegistry(admin=ADMIN, sink=journal, clock=clock)

    intents.manage_executors(ADMIN, EXECUTOR, True)
    receipts.manage_committers(ADMIN, COMMITTER, True)
    intents.create_intent(EXECUTOR, make_create())
    intents.create_intent(EXECUTOR, make_create())
    intents.update_intent(EXECUTOR, 1, make_update(IntentStatus.CONFIRMED))
    receipts.commit_receipt(COMMITTER, make_commit(intent_id=1))
    return path


def _tamper(journal_dir):
    path  = journal_dir / "journal.jsonl"
    lines = path.read_text().splitlines()
    data  = json.loads(lines[2])
    data["payload"]["amount"] = 1
    lines[2] = json.dumps(data)
    path.write_text("\n".join(lines) + "\n")


class TestVerifyCommand:

    def test_valid_human(self, runner, journal_dir):
        result = runner.invoke(cli, ["verify", str(journal_dir), "--no-color"])
        assert result.exit_code == 0, result.output
        assert "VALID" in result.output
        assert "6 / 6 valid" in result.output

    def test_valid_json(self, runner, journal_dir):
        result = runner.invoke(cli, ["verify", str(journal_dir / "journal.jsonl"), "--format", "json"])
        assert result.exit_code == 0
        out = json.loads(result.output)["intentledger_verify"]
        assert out["journal_valid"] is True
        assert out["total_entries"] == 6
        assert out["chain_head_sequence"] == 5
        assert len(out["chain_head_hash"]) == 64

    def test_tampered_exits_1(self, runner, journal_dir):
        _tamper(journal_dir)
        result = runner.invoke(cli, ["verify", str(journal_dir), "--format", "compact"])
        assert result.exit_code == 1
        assert result.output.startswith("INVALID")

    def test_quiet(self, runner, journal_dir):
        assert runner.invoke(cli, ["verify", str(journal_dir), "--quiet"]).exit_code == 0
        _tamper(journal_dir)
        result = runner.invoke(cli, ["verify", str(journal_dir), "--quiet"])
        assert result.exit_code == 1
        assert result.output == ""

    def test_missing_journal_exits_2(self, runner, tmp_path):
        result = runner.invoke(cli, ["verify", str(tmp_path / "nope"), "--format", "json"])
        assert result.exit_code == 2
        assert "error" in json.loads(result.output)["intentledger_verify"]

    def test_export(self, runner, journal_dir, tmp_path):
        report = tmp_path / "report.json"
        result = runner.invoke(cli, ["verify", str(journal_dir), "--quiet", "--export", str(report)])
        assert result.exit_code == 0
        assert json.loads(report.read_text())["fact_journal_report"]["chain_valid"] is True


class TestFactsCommand:

    def test_lists_all_in_order(self, runner, journal_dir):
        result = runner.invoke(cli, ["facts", str(journal_dir), "--format", "json", "--no-color"])
        assert result.exit_code == 0
        facts = json.loads(result.output)
        assert [f["sequence"] for f in facts] == list(range(6))
        assert facts[2]["fact_type"] == "IntentCreated"
        assert facts[2]["fields"][0] == ["id", 1]

    def test_filter_by_intent(self, runner, journal_dir):
        result = runner.invoke(cli, ["facts", str(journal_dir), "--intent", "1", "--format", "json"])
        types = [f["fact_type"] for f in json.loads(result.output)]
        assert types == ["IntentCreated", "IntentStatusUpdated", "ReceiptCommitted"]

    def test_filter_by_type_human(self, runner, journal_dir):
        result = runner.invoke(cli, ["facts", str(journal_dir), "--type", "IntentCreated", "--no-color"])
        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert len(lines) == 2
        assert "amount=1000" in lines[0]

    def test_unknown_type_is_usage_error(self, runner, journal_dir):
        result = runner.invoke(cli, ["facts", str(journal_dir), "--type", "Bogus"])
        assert result.exit_code == 2

    def test_missing_journal(self, runner, tmp_path):
        result = runner.invoke(cli, ["facts", str(tmp_path / "nope")])
        assert result.exit_code == 2
