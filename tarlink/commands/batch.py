"""Batch command implementation for tarlink.

Prints the order packages can be built in. Each batch only depends on
earlier batches, so its packages can be built in parallel. Packages caught
in dependency cycles come last.

Typical usage::

    $ tarlink batch
    $ tarlink batch --production --json > plan.json
    $ tarlink batch --reject-cycles
"""

from __future__ import annotations

import sys
import json
from typing import Optional

import click

from tarlink.core import batch_packages
from tarlink.exceptions import TarlinkError
from tarlink.context import TarlinkContext, pass_context
from tarlink.utils import get_logger, print_batches, print_error, print_warning

logger = get_logger("commands.batch")


@click.command()
@click.option(
    "--production",
    is_flag=True,
    help="Ignore devDependencies when ordering.",
)
@click.option(
    "--reject-cycles/--allow-cycles",
    default=None,
    help="Fail on dependency cycles (default from configuration).",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Print the plan as a JSON list of name lists.",
)
@pass_context
def batch(
    ctx: TarlinkContext,
    production: bool,
    reject_cycles: Optional[bool],
    as_json: bool,
) -> None:
    """Show parallel build batches for every package."""
    if reject_cycles is None:
        reject_cycles = ctx.config.reject_cycles

    try:
        batches = batch_packages(
            ctx.packages,
            reject_cycles=reject_cycles,
            graph_type=ctx.graph_type(False if production else None),
            project=ctx.project,
        )
    except TarlinkError as e:
        print_error(f"{e}")
        sys.exit(1)

    names = [[pkg.name for pkg in group] for group in batches]
    logger.info("Planned %d batch(es) for %d package(s)", len(names), len(ctx.packages))

    if as_json:
        click.echo(json.dumps(names, indent=2))
    elif not names:
        print_warning("No packages found")
    else:
        print_batches(names)
