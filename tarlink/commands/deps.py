"""Deps command implementation for tarlink.

Lists every sibling package a package needs, directly or through other
siblings, nearest first.

Typical usage::

    $ cd packages/app && tarlink deps
    $ tarlink deps @acme/app --production
"""

from __future__ import annotations

import os
import sys
import json
from pathlib import Path
from typing import Optional

import click

from tarlink.exceptions import TarlinkError
from tarlink.context import TarlinkContext, pass_context
from tarlink.core import PackageGraph, resolve_transitive_dependencies
from tarlink.utils import get_logger, print_error, print_table, print_warning

logger = get_logger("commands.deps")


@click.command()
@click.argument("name", required=False)
@click.option(
    "--production",
    is_flag=True,
    help="Ignore devDependencies.",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Print a JSON object of name to version.",
)
@pass_context
def deps(
    ctx: TarlinkContext,
    name: Optional[str],
    production: bool,
    as_json: bool,
) -> None:
    """Show the transitive local dependencies of NAME.

    NAME defaults to the package containing the working directory.
    """
    try:
        graph = PackageGraph(
            ctx.packages,
            graph_type=ctx.graph_type(False if production else None),
            project=ctx.project,
        )
        if name is None:
            name = ctx.require_current_package().name

        node = graph.get(name)
        if node is None:
            raise click.BadParameter(f"no package named {name!r}", param_hint="NAME")

        closure = resolve_transitive_dependencies(graph, node)
    except TarlinkError as e:
        print_error(f"{e}")
        sys.exit(1)

    logger.info("%s has %d transitive local dependencies", name, len(closure))

    if as_json:
        click.echo(json.dumps({dep: pkg.version for dep, pkg in closure.items()}, indent=2))
        return

    if not closure:
        print_warning(f"{name} has no local dependencies")
        return

    print_table(
        [
            {
                "Package": dep,
                "Version": pkg.version or "",
                "Location": Path(os.path.relpath(pkg.location, pkg.root_path)).as_posix(),
            }
            for dep, pkg in closure.items()
        ],
        title=f"Local dependencies of {name}",
        styles={"Package": "package", "Version": "version"},
    )
