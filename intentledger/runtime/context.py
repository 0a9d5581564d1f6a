"""
Deployment context: both registries wired to one fact sink from a YAML file.

    journal:
      path: .intentledger/journal          # omit the section for an in-memory log
      key_file: .intentledger/keys/journal.pem
    intents:
      admin: ops-admin
      executors: [orchestrator]
    receipts:
      admin: ops-admin
      committers: [settler]
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

import yaml

from intentledger.core.crypto import JournalKey
from intentledger.core.exceptions import LedgerError, Reason, ValidationError
from intentledger.core.facts import Fact, FactSink, FactType, MemoryFactLog
from intentledger.core.time import Clock
from intentledger.ledger.journal import FactJournal
from intentledger.ledger.replay import JournalReplay
from intentledger.registry.intents import IntentRegistry
from intentledger.registry.receipts import ReceiptRegistry
from intentledger.settlement.reconcile import ReconciliationEngine


logger = logging.getLogger(__name__)

CONFIG_ENV_VAR   = "INTENTLEDGER_CONFIG"
DEFAULT_KEY_NAME = "journal_key.pem"


def _config_error(message: str, **details: Any) -> ValidationError:
    return ValidationError(message, reason=Reason.INVALID_CONFIG, details=details)


def _section(config: Dict[str, Any], name: str, required: bool = True) -> Dict[str, Any]:
    section = config.get(name)
    if section is None and not required:
        return {}
    if not isinstance(section, dict):
        raise _config_error(f"'{name}' section must be a mapping", section=name)
    return section


def _admin(section: Dict[str, Any], name: str) -> str:
    admin = section.get("admin")
    if not isinstance(admin, str) or not admin:
        raise _config_error(f"'{name}.admin' must be a non-empty string", section=name)
    return admin


def _identities(section: Dict[str, Any], name: str, key: str) -> List[str]:
    identities = section.get(key) or []
    if not isinstance(identities, list) or not all(
        isinstance(i, str) and i for i in identities
    ):
        raise _config_error(
            f"'{name}.{key}' must be a list of non-empty strings", section=name
        )
    return identities


def _journal_history(journal: FactJournal) -> List[Fact]:
    """
    Facts already in the journal, oldest first. Empty for a new journal.

    Raises:
        LedgerError — the journal does not load or does not verify
    """
    if not journal.journal_file.exists() or journal.journal_file.stat().st_size == 0:
        return []

    replay = JournalReplay()
    replay.load(journal.journal_file)
    summary = replay.verify()
    if not summary.chain_valid:
        raise LedgerError(
            "journal failed verification, registries not rebuilt",
            reason=  Reason.JOURNAL_CORRUPT,
            details= {
                "journal_file": str(journal.journal_file),
                "violations":   len(summary.violations),
            },
        )
    return replay.facts()


def _decided(history: List[Fact], fact_type: str, key: str) -> Set[str]:
    """Identities the journal has granted or revoked a role for."""
    return {f.payload[key] for f in history if f.fact_type == fact_type}


@dataclass
class Deployment:
    """Both registries, the shared sink and (for a journal) its signing key."""

    intents:     IntentRegistry
    receipts:    ReceiptRegistry
    sink:        FactSink
    key_manager: Optional[JournalKey] = None

    @classmethod
    def from_config(
        cls,
        config_file: Union[str, Path],
        clock:       Optional[Clock] = None,
    ) -> "Deployment":
        """
        Load a deployment from YAML.

        Role grants listed in the file are issued through each registry's
        admin, so they are recorded as ExecutorUpdated/CommitterUpdated facts.

        An existing journal is replayed first: intents, receipts, roles and
        the id counter continue from where the last run stopped. A listed
        identity the journal already granted or revoked is not granted again.

        Raises:
            FileNotFoundError — config file missing
            ValidationError   — INVALID_CONFIG for a malformed file
            LedgerError       — existing journal does not load or verify
        """
        config_file = Path(config_file)
        with open(config_file, "r", encoding="utf-8") as f:
            try:
                config = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise _config_error(f"invalid YAML: {exc}", file=str(config_file)) from exc

        if not isinstance(config, dict):
            raise _config_error("config root must be a mapping", file=str(config_file))
        return cls.from_dict(config, clock=clock)

    @classmethod
    def from_dict(
        cls,
        config: Dict[str, Any],
        clock:  Optional[Clock] = None,
    ) -> "Deployment":
        intents_cfg  = _section(config, "intents")
        receipts_cfg = _section(config, "receipts")
        journal_cfg  = _section(config, "journal", required=False)

        intents_admin  = _admin(intents_cfg, "intents")
        receipts_admin = _admin(receipts_cfg, "receipts")
        executors      = _identities(intents_cfg, "intents", "executors")
        committers     = _identities(receipts_cfg, "receipts", "committers")

        key_manager: Optional[JournalKey] = None
        history:     List[Fact]           = []
        sink: FactSink
        if journal_cfg:
            path = journal_cfg.get("path")
            if not isinstance(path, str) or not path:
                raise _config_error("'journal.path' must be a non-empty string", section="journal")
            key_file = journal_cfg.get("key_file") or str(Path(path) / DEFAULT_KEY_NAME)
            key_manager = JournalKey.load_or_create(Path(key_file))
            sink = FactJournal(key_manager, path)
            history = _journal_history(sink)
            logger.info("journal at %s signed by %s", path, key_manager.public_key_hex[:16])
        else:
            sink = MemoryFactLog()
            logger.info("no journal configured, facts kept in memory")

        intents  = IntentRegistry(admin=intents_admin, sink=sink, clock=clock)
        receipts = ReceiptRegistry(admin=receipts_admin, sink=sink, clock=clock)

        if history:
            intents.restore(history)
            receipts.restore(history)
            logger.info("registries rebuilt from %d journal facts", len(history))

        # The journal outranks the file: an identity it already granted or
        # revoked is left as recorded.
        decided_executors  = _decided(history, FactType.EXECUTOR_UPDATED, "executor")
        decided_committers = _decided(history, FactType.COMMITTER_UPDATED, "committer")
        for executor in executors:
            if executor not in decided_executors and not intents.is_executor(executor):
                intents.manage_executors(intents_admin, executor, True)
        for committer in committers:
            if committer not in decided_committers and not receipts.is_committer(committer):
                receipts.manage_committers(receipts_admin, committer, True)

        return cls(intents=intents, receipts=receipts, sink=sink, key_manager=key_manager)

    @classmethod
    def from_env(cls, clock: Optional[Clock] = None) -> "Deployment":
        """Load from the file named by INTENTLEDGER_CONFIG."""
        config_file = os.environ.get(CONFIG_ENV_VAR)
        if not config_file:
            raise _config_error(f"{CONFIG_ENV_VAR} is not set")
        return cls.from_config(config_file, clock=clock)

    def reconciler(self) -> ReconciliationEngine:
        return ReconciliationEngine(self.intents, self.receipts)

    def __repr__(self) -> str:
        return (
            f"Deployment("
            f"intents_admin={self.intents.owner!r}, "
            f"receipts_admin={self.receipts.owner!r}, "
            f"sink={type(self.sink).__name__})"
        )
