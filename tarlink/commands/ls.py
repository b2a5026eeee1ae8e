"""Ls command implementation for tarlink.

Lists the packages of a project, dependents before their dependencies by
default, together with the local packages each one links to.

Typical usage::

    # Every package, topologically
    $ tarlink ls

    # The current package and everything it pulls in, as a tree
    $ cd packages/app && tarlink ls . --tree

    # Directory order, including dev-only links
    $ tarlink ls --sort dir --dev
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

import click
from rich.markup import escape

from tarlink.models import Package
from tarlink.exceptions import TarlinkError
from tarlink.context import TarlinkContext, pass_context
from tarlink.core import (
    PackageArg,
    PackageGraph,
    PackageGraphNode,
    SpecifierType,
    batch_packages,
    resolve_transitive_dependencies,
)
from tarlink.utils import get_logger, get_raw_console, print_error, print_tree

logger = get_logger("commands.ls")


class _Entry(NamedTuple):
    """One line of output: a package, optionally reached through a specifier."""

    pkg: Package
    node: Optional[PackageGraphNode]
    version: Optional[str]
    arg: Optional[PackageArg] = None


@click.command()
@click.argument("names", nargs=-1)
@click.option(
    "--sort",
    "-s",
    type=click.Choice(["topo", "dir"]),
    default="topo",
    show_default=True,
    help="Sort topologically or by directory.",
)
@click.option(
    "--tree",
    is_flag=True,
    help="Display local dependencies as a tree.",
)
@click.option(
    "--max-depth",
    "-d",
    type=click.IntRange(min=0),
    default=None,
    help='Tree depth. Defaults to 1 if NAMES includes ".", 0 otherwise.',
)
@click.option(
    "--dev",
    is_flag=True,
    help="Include links through devDependencies.",
)
@pass_context
def ls(
    ctx: TarlinkContext,
    names: Sequence[str],
    sort: str,
    tree: bool,
    max_depth: Optional[int],
    dev: bool,
) -> None:
    """List packages.

    NAMES are package directories. ``.`` selects the current package and
    all of its transitive local dependencies.
    """
    includes_dot = "." in names

    try:
        graph = PackageGraph(ctx.packages, graph_type=ctx.graph_type(), project=ctx.project)
        selected = _select_packages(ctx, graph, names)
        ordered = _order_packages(selected, sort, graph)
    except TarlinkError as e:
        print_error(f"{e}")
        sys.exit(1)

    depth = 0
    if tree:
        if max_depth is not None:
            depth = max_depth
        elif includes_dot:
            depth = 1

    entries = [_Entry(pkg, graph.get(pkg.name), pkg.version) for pkg in ordered]
    data = _to_tree(graph, entries, depth, dev=dev, flat=not tree, cwd=ctx.cwd)

    if tree:
        print_tree(data)
    else:
        console = get_raw_console()
        for line in data:
            console.print(line)


# ---------------------------------------------------------------------------
# Selection & ordering
# ---------------------------------------------------------------------------


def _select_packages(
    ctx: TarlinkContext,
    graph: PackageGraph,
    names: Sequence[str],
) -> List[Package]:
    packages = graph.raw_package_list
    if not names:
        return packages

    base_paths = {Path(os.path.normpath(os.path.join(ctx.cwd, name))) for name in names}

    if "." in names:
        current = ctx.require_current_package()
        closure = resolve_transitive_dependencies(graph, graph[current.name])
        return [p for p in packages if p.name in closure or p.location in base_paths]

    return [p for p in packages if p.location in base_paths]


def _order_packages(
    packages: List[Package],
    sort: str,
    graph: PackageGraph,
) -> List[Package]:
    if sort == "dir":
        return sorted(packages, key=lambda p: str(p.location))

    # dependents first, alphabetical within a batch
    batches = batch_packages(packages, graph_type=graph.graph_type, project=graph.project)
    ordered: List[Package] = []
    for group in reversed(batches):
        ordered.extend(sorted(group, key=lambda p: p.name))
    return ordered


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _to_tree(
    graph: PackageGraph,
    entries: List[_Entry],
    depth: int,
    *,
    dev: bool,
    flat: bool,
    cwd: Path,
) -> Dict[str, Any]:
    tree: Dict[str, Any] = {}

    for entry in entries:
        label = _label(entry, cwd)
        node = entry.node

        if node is not None and flat:
            summary = _local_dependency_summary(entry.pkg, node, dev=dev)
            if summary:
                label = f"{label} {summary}"

        if node is None or depth <= 0:
            tree[label] = {}
            continue

        children: List[_Entry] = []
        for dep_name, arg in node.local_dependencies.items():
            dep_node = graph.get(dep_name)
            if dep_node is None:
                continue
            version = _linked_version(arg)
            if version is None and arg.type is not SpecifierType.DIRECTORY:
                version = dep_node.version
            children.append(_Entry(dep_node.pkg, dep_node, version, arg))

        tree[label] = _to_tree(graph, children, depth - 1, dev=dev, flat=flat, cwd=cwd)

    return tree


def _linked_version(arg: PackageArg) -> Optional[str]:
    """Version a specifier pins: artifact version, else the override range."""
    if arg.artifact is not None:
        return arg.artifact.version
    if arg.override is not None:
        return arg.override.save_spec or arg.override.fetch_spec
    return None


def _label(entry: _Entry, cwd: Path) -> str:
    pkg, version = entry.pkg, entry.version
    name = escape(pkg.name)
    directory = entry.arg is not None and entry.arg.type is SpecifierType.DIRECTORY
    location = pkg.location.as_posix()

    if location.endswith(f"/{pkg.name}"):
        parent = escape(os.path.relpath(location[: -len(pkg.name)], cwd))
        if directory:
            tail = f" {escape(version)}" if version else ""
            return f"[dim]{parent}/[/dim][package]{name}[/package]{tail}"
        return f"[dim]{parent}/[/dim]{name} [version]{escape(version or '?')}[/version]"

    where = escape(os.path.relpath(location, cwd))
    if directory:
        tail = f"@{escape(version)}" if version else ""
        return f"[dim]{where}/[/dim][package]{name}[/package]{tail}"
    return f"[dim]{where}[/dim] {name}@[version]{escape(version or '?')}[/version]"


def _local_dependency_summary(pkg: Package, node: PackageGraphNode, *, dev: bool) -> str:
    runtime = pkg.dependencies or {}
    overrides = pkg.override_dependencies or {}

    parts: List[str] = []
    for dep_name, arg in node.local_dependencies.items():
        if not dev and dep_name not in runtime:
            continue
        version = arg.artifact.version if arg.artifact is not None else overrides.get(dep_name)
        if version:
            parts.append(
                f"[local]{escape(dep_name)}[/local]@[version]{escape(version)}[/version]"
            )
        else:
            parts.append(f"[package]{escape(dep_name)}[/package]")
    return " ".join(parts)
