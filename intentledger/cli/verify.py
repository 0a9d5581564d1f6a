"""
intentledger/cli/verify.py

intentledger verify — Fact Journal Verification
===============================================

Usage:
    intentledger verify <journal>                       Human output (default)
    intentledger verify <journal> --format json         Machine-readable JSON
    intentledger verify <journal> --format compact      One-line pipeline output
    intentledger verify <journal> --export report.json  Export full audit report
    intentledger verify <journal> --quiet               Exit code only
    intentledger verify <journal> --no-color            Disable ANSI

<journal> is a journal.jsonl file or the directory holding one.

Exit codes:
    0  Journal fully valid  (sequence + chain + nonces + signatures)
    1  Journal has violations
    2  Error  (file missing, malformed line, schema violation)
"""

import json
import sys
import time
from pathlib import Path
from typing import Optional, Tuple

import click

from intentledger.cli.style import Color, row_fail, row_info, row_ok
from intentledger.core.canonical import canonical_hash
from intentledger.core.exceptions import LedgerError
from intentledger.ledger.replay import JournalReplay, ReplaySummary


def _compute_head_hash(replay: JournalReplay) -> Tuple[Optional[str], Optional[int]]:
    """
    The causal_hash the next entry would carry: SHA-256(JCS(last.to_chain_dict())).
    A commitment to the whole journal, suitable for external anchoring.

    Returns (None, None) for an empty journal.
    """
    if not replay.envelopes:
        return None, None
    last = replay.envelopes[-1]
    return canonical_hash(last.to_chain_dict()), last.sequence


@click.command(name="verify")
@click.argument("journal", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json", "compact"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format: human (default), json (CI/automation), compact (pipelines).",
)
@click.option(
    "--export",
    "export_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Export full audit report to a JSON file.",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress all output. Use exit code only (0=valid, 1=invalid, 2=error).",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable ANSI color output.",
)
def verify_command(
    journal:     str,
    fmt:         str,
    export_path: Optional[str],
    quiet:       bool,
    no_color:    bool,
) -> None:
    """
    Verify a fact journal — sequence, chain, nonces, signatures.

    \b
    Examples:
      intentledger verify .intentledger/journal
      intentledger verify journal.jsonl --format json
      intentledger verify journal.jsonl --export report.json
      intentledger verify journal.jsonl --quiet && echo "clean"
    """
    Color.configure(not no_color)

    journal_path = Path(journal)
    if not journal_path.exists():
        _emit_error(f"Journal not found: {journal}", fmt, quiet)
        sys.exit(2)

    replay  = JournalReplay()
    t_start = time.perf_counter()

    try:
        replay.load(journal_path)
        summary = replay.verify()
    except (FileNotFoundError, LedgerError) as e:
        _emit_error(str(e), fmt, quiet)
        sys.exit(2)

    elapsed = time.perf_counter() - t_start
    head_hash, head_sequence = _compute_head_hash(replay)
    journal_valid = len(summary.violations) == 0

    if export_path:
        try:
            replay.export_json(Path(export_path))
        except (OSError, RuntimeError) as e:
            if not quiet and fmt == "human":
                click.echo(Color.yellow(f"\n  ⚠️   Export failed: {e}"), err=True)

    if quiet:
        sys.exit(0 if journal_valid else 1)

    if fmt == "json":
        _output_json(summary, journal_path, elapsed, head_hash, head_sequence,
                     journal_valid, export_path)
    elif fmt == "compact":
        _output_compact(summary, journal_path, elapsed, journal_valid)
    else:
        _output_human(summary, journal_path, elapsed, head_hash, head_sequence,
                      journal_valid, export_path)

    sys.exit(0 if journal_valid else 1)


# ── Human output ──────────────────────────────────────────────────────────────

def _output_human(
    summary:       ReplaySummary,
    journal_path:  Path,
    elapsed:       float,
    head_hash:     Optional[str],
    head_sequence: Optional[int],
    journal_valid: bool,
    export_path:   Optional[str],
) -> None:
    BAR_HEAVY = "═" * 68
    BAR_LIGHT = "─" * 68
    total     = summary.total_entries

    click.echo()
    click.echo(Color.bold(f"  {BAR_HEAVY}"))
    click.echo(Color.bold(  "  IntentLedger  ·  Fact Journal Verification"))
    click.echo(Color.bold(f"  {BAR_HEAVY}"))
    click.echo()

    click.echo(row_info("Journal", str(journal_path)))
    click.echo(row_info("Entries", f"{total:,}"))
    click.echo(row_info("Version",
        f"v{summary.journal_version}" if summary.journal_version else "unknown"
    ))
    click.echo(row_info("Sources", ", ".join(summary.sources_seen) or "—"))
    click.echo()

    by_type = {}
    for v in summary.violations:
        by_type.setdefault(v.violation_type, []).append(v)

    if "chain_break" in by_type:
        click.echo(row_fail("Chain", Color.red(f"{len(by_type['chain_break'])} break(s)")))
    else:
        click.echo(row_ok("Chain", "intact — all causal hashes valid"))

    if summary.invalid_signatures:
        click.echo(row_fail("Signatures",
            f"{summary.valid_signatures:,} valid  "
            + Color.red(f"{summary.invalid_signatures:,} INVALID")
        ))
    else:
        click.echo(row_ok("Signatures", f"{summary.valid_signatures:,} / {total:,} valid"))

    if "sequence_gap" in by_type:
        click.echo(row_fail("Sequence", Color.red(f"{len(by_type['sequence_gap'])} gap(s)")))
    elif total:
        click.echo(row_ok("Sequence", f"0 → {total - 1:,}  (no gaps)"))
    else:
        click.echo(row_ok("Sequence", "empty journal"))

    if "duplicate_nonce" in by_type:
        click.echo(row_fail("Nonces", Color.red(f"{len(by_type['duplicate_nonce'])} duplicate(s)")))
    else:
        click.echo(row_ok("Nonces", "unique"))

    click.echo()

    if summary.first_timestamp:
        click.echo(row_info("First entry", summary.first_timestamp))
        click.echo(row_info("Last entry", summary.last_timestamp))
    if head_hash and head_sequence is not None:
        click.echo(row_info("Chain head",
            Color.cyan(head_hash[:16] + "..." + head_hash[-8:])
            + Color.dim(f"  [seq {head_sequence}]")
        ))
    if summary.fact_type_counts:
        click.echo(row_info("Fact types", "  ".join(
            f"{Color.cyan(k)}: {v:,}" for k, v in sorted(summary.fact_type_counts.items())
        )))
    click.echo(row_info("Verified", f"{elapsed:.3f}s"))
    if export_path:
        click.echo(row_info("Exported", export_path))
    click.echo()

    if summary.violations:
        click.echo(f"  {BAR_LIGHT}")
        for v in summary.violations:
            click.echo(
                f"  {Color.red(str(v.at_sequence)):>6}  "
                f"{Color.yellow(f'{v.violation_type:<18}')}  {v.detail}"
            )
        click.echo(f"  {BAR_LIGHT}")
        click.echo()

    click.echo(f"  {BAR_LIGHT}")
    if journal_valid:
        click.echo(Color.green(Color.bold(
            "  ✅  VALID  ·  0 violations  ·  journal integrity confirmed"
        )))
    else:
        click.echo(Color.red(Color.bold(
            f"  ❌  INVALID  ·  {len(summary.violations)} violation(s)"
            "  ·  journal integrity compromised"
        )))
    click.echo(f"  {BAR_LIGHT}")
    click.echo()


# ── JSON output ───────────────────────────────────────────────────────────────

def _output_json(
    summary:       ReplaySummary,
    journal_path:  Path,
    elapsed:       float,
    head_hash:     Optional[str],
    head_sequence: Optional[int],
    journal_valid: bool,
    export_path:   Optional[str],
) -> None:
    out = {
        "intentledger_verify": {
            "journal":             str(journal_path),
            "journal_version":     summary.journal_version,
            "total_entries":       summary.total_entries,
            "journal_valid":       journal_valid,
            "chain_valid":         summary.chain_valid,
            "chain_head_hash":     head_hash,
            "chain_head_sequence": head_sequence,
            "valid_signatures":    summary.valid_signatures,
            "invalid_signatures":  summary.invalid_signatures,
            "violation_count":     len(summary.violations),
            "sources_seen":        summary.sources_seen,
            "signers_seen":        summary.signers_seen,
            "fact_type_counts":    summary.fact_type_counts,
            "first_timestamp":     summary.first_timestamp,
            "last_timestamp":      summary.last_timestamp,
            "elapsed_seconds":     round(elapsed, 3),
            "export_path":         export_path,
            "violations":          [v.to_dict() for v in summary.violations],
        }
    }
    click.echo(json.dumps(out, indent=2))


# ── Compact output ────────────────────────────────────────────────────────────

def _output_compact(
    summary:       ReplaySummary,
    journal_path:  Path,
    elapsed:       float,
    journal_valid: bool,
) -> None:
    """
    Format:
        VALID    journal.jsonl   12 entries  0 violations  0.004s
    """
    status  = "VALID" if journal_valid else "INVALID"
    paint   = Color.green if journal_valid else Color.red
    vcount  = len(summary.violations)
    click.echo(
        paint(f"{status:<8}")
        + f"  {journal_path.name:<30}  {summary.total_entries:>10,} entries  "
        + f"{vcount} violation(s)  {elapsed:.3f}s"
    )


# ── Error output ──────────────────────────────────────────────────────────────

def _emit_error(msg: str, fmt: str, quiet: bool) -> None:
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({
            "intentledger_verify": {
                "error":         msg,
                "chain_valid":   False,
                "journal_valid": False,
            }
        }))
    else:
        click.echo(Color.red(f"\n  ❌  ERROR: {msg}\n"), err=True)
