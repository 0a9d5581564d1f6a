"""
intentledger/cli/__init__.py

IntentLedger CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    intentledger = "intentledger.cli:cli"

The CLI inspects fact journals. It never issues registry calls.
"""

import logging

import click

from intentledger.cli.facts import facts_command
from intentledger.cli.verify import verify_command


@click.group()
@click.version_option(package_name="intentledger")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log at DEBUG level to stderr.")
def cli(verbose: bool) -> None:
    """
    IntentLedger — payment intent and receipt fact journals.

    \b
    Commands:
      verify    Verify a fact journal — chain, signatures, sequence.
      facts     Print the facts recorded in a journal.

    \b
    Quick start:
      intentledger verify .intentledger/journal
      intentledger facts .intentledger/journal --intent 1
    """
    logging.basicConfig(
        level=  logging.DEBUG if verbose else logging.WARNING,
        format= "%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


cli.add_command(verify_command)
cli.add_command(facts_command)
