"""
intentledger/cli/facts.py

intentledger facts — print journal facts in journal order.

Usage:
    intentledger facts <journal>
    intentledger facts <journal> --intent 7
    intentledger facts <journal> --type ReceiptCommitted --format json

Reads only. Does not verify; run `intentledger verify` for that.
Exit 2 if the journal cannot be loaded.
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from intentledger.cli.style import Color
from intentledger.core.exceptions import LedgerError
from intentledger.core.facts import FACT_FIELDS
from intentledger.ledger.replay import JournalReplay


@click.command(name="facts")
@click.argument("journal", type=click.Path(exists=False))
@click.option(
    "--intent", "intent_id",
    type=click.IntRange(min=0),
    default=None,
    metavar="ID",
    help="Only facts about this intent id.",
)
@click.option(
    "--type", "fact_type",
    type=click.Choice(sorted(FACT_FIELDS)),
    default=None,
    help="Only facts of this type.",
)
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def facts_command(
    journal:   str,
    intent_id: Optional[int],
    fact_type: Optional[str],
    fmt:       str,
    no_color:  bool,
) -> None:
    """Print the facts recorded in a fact journal."""
    Color.configure(not no_color)

    replay = JournalReplay()
    try:
        replay.load(Path(journal))
    except (FileNotFoundError, LedgerError) as e:
        click.echo(Color.red(f"ERROR: {e}"), err=True)
        sys.exit(2)

    selected = [
        env for env in replay.envelopes
        if (fact_type is None or env.fact_type == fact_type)
        and (intent_id is None or env.to_fact().intent_id == intent_id)
    ]

    if fmt == "json":
        click.echo(json.dumps([
            {
                "sequence":  env.sequence,
                "timestamp": env.timestamp,
                "fact_type": env.fact_type,
                "source":    env.source,
                "fields":    [
                    [name, env.payload[name]] for name in FACT_FIELDS[env.fact_type]
                ],
            }
            for env in selected
        ], indent=2))
        return

    for env in selected:
        fields = "  ".join(
            f"{name}={env.payload[name]}" for name in FACT_FIELDS[env.fact_type]
        )
        click.echo(
            f"[{env.sequence:04d}] {Color.dim(env.timestamp)}  "
            f"{Color.cyan(env.fact_type):<20}  {fields}"
        )
    if not selected:
        click.echo(Color.dim("no matching facts"))
