"""
intentledger/ledger/journal.py

Fact Journal — the durable FactSink.

emit() MUST, in this exact order:
  1. Acquire lock
  2. FactEnvelope.create(fact, signer_public_key, sequence, prev=last_envelope)
  3. envelope.sign(key_manager)
  4. Assert chain invariants  — causal_hash, sequence
  5. Append to JSONL journal  — one line per fact
  6. Advance internal state   — only after confirmed write
  7. Return signed envelope

A registry publishes its state change only after emit() returns, so a
failed write leaves both the journal and the registry untouched.
"""

import json
import logging
import threading
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

from intentledger.core.crypto import JournalKey
from intentledger.core.exceptions import LedgerError, Reason
from intentledger.core.facts import Fact
from intentledger.ledger.envelope import FactEnvelope, GENESIS_HASH, JOURNAL_VERSION


logger = logging.getLogger(__name__)

JOURNAL_FILENAME = "journal.jsonl"


class FactJournal:
    """
    Signed, hash-chained, append-only fact log.

    Chain state:
        _sequence       — next sequence number (0, 1, 2, ...)
        _last_envelope  — last envelope appended, or None

    Thread-safe via internal lock (single process). State survives a
    restart by reading the last line of the journal on construction.

    Usage:
        journal = FactJournal(JournalKey.generate(), ".intentledger/journal")
        registry = IntentRegistry(admin="ops-admin", sink=journal)
    """

    def __init__(
        self,
        key_manager:  JournalKey,
        journal_path: str = ".intentledger/journal",
    ) -> None:
        self.key_manager = key_manager

        self._lock:          threading.Lock         = threading.Lock()
        self._sequence:      int                    = 0
        self._last_envelope: Optional[FactEnvelope] = None

        self._journal_dir  = Path(journal_path)
        self._journal_dir.mkdir(parents=True, exist_ok=True)
        self._journal_file = self._journal_dir / JOURNAL_FILENAME

        self._restore_state()

    @property
    def journal_file(self) -> Path:
        return self._journal_file

    # ── Public API ────────────────────────────────────────────

    def emit(self, fact: Fact) -> FactEnvelope:
        """
        Append one signed envelope carrying `fact`.

        Raises:
            LedgerError — chain invariant violated or write failed.
                          Journal state is unchanged.
        """
        with self._lock:
            envelope = FactEnvelope.create(
                fact=              fact,
                signer_public_key= self.key_manager.public_key_hex,
                sequence=          self._sequence,
                prev=              self._last_envelope,
            ).sign(self.key_manager)

            self._assert_chain_invariants(envelope)
            self._append_to_journal(envelope)

            self._sequence      += 1
            self._last_envelope  = envelope

        logger.debug("journal seq=%d %s", envelope.sequence, envelope.fact_type)
        return envelope

    def verify_chain(self) -> bool:
        """
        Verify the whole journal file from genesis: sequence, causal_hash and
        signature of every line. False on the first violation or unreadable line.
        """
        if not self._journal_file.exists():
            return True

        prev: Optional[FactEnvelope] = None
        try:
            with open(self._journal_file, "r", encoding="utf-8") as f:
                index = 0
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    env = FactEnvelope.from_dict(json.loads(line))
                    if not (
                        env.verify_sequence(index)
                        and env.verify_chain(prev)
                        and env.verify_signature()
                    ):
                        return False
                    prev   = env
                    index += 1
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("journal %s unreadable: %s", self._journal_file, exc)
            return False

        return True

    def get_stats(self) -> Dict[str, Any]:
        """Current chain state snapshot."""
        return {
            "next_sequence":    self._sequence,
            "last_record_id":   (
                self._last_envelope.record_id
                if self._last_envelope else None
            ),
            "last_causal_hash": (
                self._last_envelope.causal_hash
                if self._last_envelope else GENESIS_HASH
            ),
            "journal_file":     str(self._journal_file),
            "journal_version":  JOURNAL_VERSION,
            "signer":           self.key_manager.public_key_hex,
        }

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        """
        Restore sequence and last envelope from an existing journal.
        On a corrupted last line, state stays at genesis and a RuntimeWarning
        is issued; call verify_chain() before emitting.
        """
        if not self._journal_file.exists():
            return

        last_line = None
        with open(self._journal_file, "r", encoding="utf-8") as f:
            for line in f:
                stripped = line.strip()
                if stripped:
                    last_line = stripped

        if not last_line:
            return

        try:
            env    = FactEnvelope.from_dict(json.loads(last_line))
            schema = env.validate_schema()
            if not schema:
                raise ValueError(f"schema violation in last journal line: {schema.errors}")
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("could not restore journal state from %s: %s",
                           self._journal_file, exc)
            warnings.warn(
                f"FactJournal: could not restore state from {self._journal_file}: {exc}. "
                "Last line may be corrupted. Call verify_chain() before emitting.",
                RuntimeWarning,
                stacklevel=3,
            )
            return

        self._sequence      = env.sequence + 1
        self._last_envelope = env
        logger.debug("journal restored at seq=%d", self._sequence)

    def _assert_chain_invariants(self, envelope: FactEnvelope) -> None:
        if not envelope.verify_sequence(self._sequence):
            raise LedgerError(
                "sequence mismatch",
                reason=Reason.JOURNAL_CORRUPT,
                details={"expected": self._sequence, "got": envelope.sequence},
            )
        if not envelope.verify_chain(self._last_envelope):
            expected = envelope.expected_causal_hash_from(self._last_envelope)
            raise LedgerError(
                "causal_hash mismatch",
                reason=Reason.JOURNAL_CORRUPT,
                details={
                    "expected": f"...{expected[-12:]}",
                    "got":      f"...{envelope.causal_hash[-12:]}",
                },
            )

    def _append_to_journal(self, envelope: FactEnvelope) -> None:
        """State MUST NOT advance if this raises."""
        try:
            with open(self._journal_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(envelope.to_dict()) + "\n")
        except OSError as exc:
            raise LedgerError(
                f"journal write failed: {exc}",
                reason=Reason.JOURNAL_WRITE_FAILED,
                details={"journal_file": str(self._journal_file)},
            ) from exc
