"""
intentledger/ledger/replay.py

Journal Replay — offline verification and history reconstruction.

    1. Load    → FactEnvelope.from_dict(line), then validate_schema()
    2. Version → every envelope shares journal_version
    3. Chain   → verify_sequence(i) and verify_chain(prev), sequentially
    4. Nonce   → no two envelopes share a nonce
    5. Sig     → verify_signature() per envelope

All hashing and signature checks delegate to FactEnvelope.
"""

import json
import logging
from collections import Counter
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set

from intentledger.core.exceptions import LedgerError, Reason
from intentledger.core.facts import Fact
from intentledger.ledger.envelope import FactEnvelope


logger = logging.getLogger(__name__)


@dataclass
class ChainViolation:
    """A single detected violation in the journal."""
    at_sequence:    int
    record_id:      str
    violation_type: str   # "sequence_gap" | "chain_break" | "duplicate_nonce" | "invalid_signature"
    detail:         str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReplaySummary:
    """Aggregate result of a full journal verification pass."""
    total_entries:      int
    chain_valid:        bool
    violations:         List[ChainViolation]
    valid_signatures:   int
    invalid_signatures: int
    fact_type_counts:   Dict[str, int]
    sources_seen:       List[str]
    signers_seen:       List[str]
    journal_version:    Optional[str]
    first_timestamp:    Optional[str]
    last_timestamp:     Optional[str]


class JournalReplay:
    """
    Usage:
        replay = JournalReplay()
        replay.load(Path(".intentledger/journal/journal.jsonl"))
        summary = replay.verify()
        for fact in replay.history(intent_id=1):
            ...
    """

    def __init__(self) -> None:
        self.envelopes:     List[FactEnvelope]   = []
        self.violations:    List[ChainViolation] = []
        self._journal_path: Optional[Path]       = None

    # ── Load ──────────────────────────────────────────────────

    def load(self, journal_path: Path) -> None:
        """
        Load a journal JSONL file. A directory is resolved to its journal.jsonl.

        Raises:
            FileNotFoundError — journal does not exist
            LedgerError       — malformed JSON, missing field, schema
                                violation, or mixed journal_version
        """
        journal_path = Path(journal_path)
        if journal_path.is_dir():
            journal_path = journal_path / "journal.jsonl"

        self._journal_path = journal_path
        self.envelopes     = []
        self.violations    = []

        if not journal_path.exists():
            raise FileNotFoundError(f"Fact journal not found: {journal_path}")

        with open(journal_path, "r", encoding="utf-8") as f:
            for line_num, raw in enumerate(f, 1):
                raw = raw.strip()
                if not raw:
                    continue

                try:
                    data = json.loads(raw)
                except json.JSONDecodeError as e:
                    raise self._corrupt(f"malformed JSON: {e}", line_num) from e
                if not isinstance(data, dict):
                    raise self._corrupt("line is not a JSON object", line_num)

                try:
                    env = FactEnvelope.from_dict(data)
                except KeyError as e:
                    raise self._corrupt(f"missing required field {e}", line_num) from e

                schema = env.validate_schema()
                if not schema:
                    raise self._corrupt(
                        f"schema violation (record_id={data.get('record_id', '?')}): "
                        f"{schema.errors}",
                        line_num,
                    )

                self.envelopes.append(env)

        self.envelopes.sort(key=lambda e: e.sequence)

        versions = {e.journal_version for e in self.envelopes}
        if len(versions) > 1:
            raise LedgerError(
                f"journal contains mixed journal_version values: {sorted(versions)}",
                reason=Reason.JOURNAL_CORRUPT,
                details={"journal": journal_path.name},
            )

        logger.info("loaded %d envelopes from %s", len(self.envelopes), journal_path)

    # ── Verify ────────────────────────────────────────────────

    def verify(self) -> ReplaySummary:
        """Full verification pass. Returns a summary; never raises on violations."""
        links   = list(self._link_violations())
        forged  = list(self._signature_violations())
        self.violations = links + forged

        envs = self.envelopes
        return ReplaySummary(
            total_entries=      len(envs),
            chain_valid=        not self.violations,
            violations=         list(self.violations),
            valid_signatures=   len(envs) - len(forged),
            invalid_signatures= len(forged),
            fact_type_counts=   dict(Counter(e.fact_type for e in envs)),
            sources_seen=       sorted({e.source for e in envs}),
            signers_seen=       sorted({e.signer_public_key for e in envs}),
            journal_version=    envs[0].journal_version if envs else None,
            first_timestamp=    envs[0].timestamp if envs else None,
            last_timestamp=     envs[-1].timestamp if envs else None,
        )

    def _link_violations(self) -> Iterator[ChainViolation]:
        """Position, causal link and nonce reuse, walked in sequence order."""
        nonces: Set[str]               = set()
        prev:   Optional[FactEnvelope] = None

        for position, env in enumerate(self.envelopes):
            if not env.verify_sequence(position):
                yield ChainViolation(
                    position, env.record_id, "sequence_gap",
                    f"line holds sequence {env.sequence} at position {position}",
                )
            if not env.verify_chain(prev):
                want = env.expected_causal_hash_from(prev)
                yield ChainViolation(
                    env.sequence, env.record_id, "chain_break",
                    f"causal_hash ...{env.causal_hash[-12:]} does not link to "
                    f"predecessor ...{want[-12:]}",
                )
            if env.nonce in nonces:
                yield ChainViolation(
                    env.sequence, env.record_id, "duplicate_nonce",
                    f"nonce {env.nonce} already used earlier in the journal",
                )
            nonces.add(env.nonce)
            prev = env

    def _signature_violations(self) -> Iterator[ChainViolation]:
        for env in self.envelopes:
            if not env.verify_signature():
                yield ChainViolation(
                    env.sequence, env.record_id, "invalid_signature",
                    f"signature does not verify under {env.signer_public_key[:16]}...",
                )

    # ── History ───────────────────────────────────────────────

    def facts(self, fact_type: Optional[str] = None) -> List[Fact]:
        """Facts in journal order, optionally filtered by type."""
        return [
            env.to_fact() for env in self.envelopes
            if fact_type is None or env.fact_type == fact_type
        ]

    def history(self, intent_id: int) -> List[Fact]:
        """Every intent and receipt fact about `intent_id`, in journal order."""
        return [f for f in self.facts() if f.intent_id == intent_id]

    # ── Export ────────────────────────────────────────────────

    def export_json(self, output_path: Path) -> None:
        """Write the verification summary as a JSON audit report. Requires load()."""
        if not self.envelopes:
            raise RuntimeError("No envelopes loaded. Call load() before export_json().")

        body = asdict(self.verify())
        body["journal"]    = str(self._journal_path or "in-memory")
        body["version"]    = "1.0"

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps({"fact_journal_report": body}, indent=2), encoding="utf-8"
        )
        logger.info("replay report exported to %s", output_path)

    # ── Internal ──────────────────────────────────────────────

    def _corrupt(self, message: str, line_num: int) -> LedgerError:
        return LedgerError(
            message,
            reason=  Reason.JOURNAL_CORRUPT,
            details= {"line": line_num},
        )
