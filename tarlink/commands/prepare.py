"""Prepare command implementation for tarlink.

Makes the current package publishable by replacing ``file:../sibling``
directory dependencies with the sibling's packed tarball under the build
root. The sibling's version range is kept in the ``tarlinkDependencies``
override collection so the dependency graph still treats it as local.

The command works on the current package and its whole local closure:

1. Resolve the transitive local dependencies of the current package.
2. Batch them, dependencies first.
3. Rewrite directory specifiers in memory, recording the packages changed.
4. Rebuild the graph with the project, so the rewritten specifiers are
   matched against the artifacts under the build root.
5. Check every referenced tarball exists. A missing tarball needed at
   runtime is an error; one needed only for development is a warning.
6. Write the changed manifests, batch by batch.

Typical usage::

    $ cd packages/app
    $ tarlink prepare --dry-run
    $ tarlink prepare
"""

from __future__ import annotations

import os
import sys
import json
import asyncio
from pathlib import Path
from typing import Dict, List, Tuple

import click

from tarlink.models import Package, Project
from tarlink.context import TarlinkContext, pass_context
from tarlink.exceptions import GraphInvariantError, TarlinkError, ValidationError
from tarlink.constants import (
    DEFAULT_SAVE_PREFIX,
    DEPENDENCY_COLLECTIONS,
    MANIFEST_WRITE_CONCURRENCY,
    OVERRIDE_DEPENDENCIES_KEY,
)
from tarlink.core import (
    GraphType,
    PackageGraph,
    SpecifierType,
    batch_packages,
    resolve_transitive_dependencies,
)
from tarlink.utils import (
    get_logger,
    get_raw_console,
    print_error,
    print_success,
    print_warning,
)

logger = get_logger("commands.prepare")

Batches = List[List[Package]]


@click.command()
@click.option(
    "--dev-deps",
    is_flag=True,
    help="Also prepare packages reached through devDependencies.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show the rewritten dependencies without writing manifests.",
)
@pass_context
def prepare(ctx: TarlinkContext, dev_deps: bool, dry_run: bool) -> None:
    """Point local directory dependencies at packed tarballs."""
    try:
        updates = plan_prepare(
            ctx.project,
            ctx.packages,
            ctx.require_current_package(),
            dev_deps=dev_deps,
        )
    except TarlinkError as e:
        print_error(f"{e}")
        sys.exit(1)

    if not updates:
        print_success("Nothing to do!")
        return

    if dry_run:
        _show_plan(updates)
        return

    written = asyncio.run(serialize_batches(updates))
    print_success(f"Updated {len(written)} package manifest(s)")


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def plan_prepare(
    project: Project,
    packages: List[Package],
    current: Package,
    *,
    dev_deps: bool = False,
) -> Batches:
    """Rewrite directory dependencies in memory and return the changed packages.

    The Package objects in ``packages`` are mutated; nothing is written.

    Args:
        project: Project providing the build root.
        packages: Every package of the project.
        current: Package to prepare.
        dev_deps: Follow devDependencies as well.

    Returns:
        Changed packages, grouped in dependency-ordered batches.

    Raises:
        ValidationError: ``ENOPKGFILE`` when a tarball a runtime dependency
            needs does not exist, or any graph construction error.
    """
    graph_type = GraphType.ALL_DEPENDENCIES if dev_deps else GraphType.DEPENDENCIES
    graph = PackageGraph(packages, graph_type=graph_type, project=project)

    closure = resolve_transitive_dependencies(graph, graph[current.name])
    batched = batch_packages(
        [*closure.values(), current],
        graph_type=graph_type,
        project=project,
    )

    updates: Batches = []
    for group in batched:
        changed = [pkg for pkg in group if _link_tarballs(graph, project, pkg)]
        if changed:
            logger.info("Will update %s", ", ".join(pkg.name for pkg in changed))
            updates.append(changed)
        else:
            logger.debug(
                "No updates in batch %s", ", ".join(pkg.name for pkg in group)
            )

    if updates:
        _check_tarballs(project, batched, updates, graph_type)
    else:
        logger.info("Nothing to do!")

    return updates


def _link_tarballs(graph: PackageGraph, project: Project, pkg: Package) -> bool:
    """Repoint ``pkg``'s local directory dependencies at build artifacts."""
    node = graph[pkg.name]
    directories = {
        dep_name: resolved
        for dep_name, resolved in node.local_dependencies.items()
        if resolved.type is SpecifierType.DIRECTORY
    }
    if not directories:
        return False

    logger.info("Resolving links for %s", pkg.name)
    changed = False
    for dep_name, resolved in directories.items():
        dep = graph[dep_name].pkg
        version = dep.version or "0.0.0"
        tarball = project.get_build_file(dep.name, version)
        changed |= pkg.update_local_dependency(
            resolved, tarball, version, DEFAULT_SAVE_PREFIX
        )
    return changed


def _check_tarballs(
    project: Project,
    batched: Batches,
    updates: Batches,
    graph_type: GraphType,
) -> None:
    """Verify every tarball a changed package now points at exists."""
    graph = PackageGraph(
        [pkg for group in batched for pkg in group],
        graph_type=graph_type,
        project=project,
    )

    required: Dict[str, Tuple[str, List[Package]]] = {}
    for pkg in (pkg for group in updates for pkg in group):
        for dep_name, resolved in graph[pkg.name].local_dependencies.items():
            if resolved.type is not SpecifierType.FILE:
                continue
            if not resolved.fetch_spec:
                raise GraphInvariantError(
                    "EUNRESOLVEDSPEC",
                    f"Tarball dependency {resolved.raw} of {pkg.name} has no path",
                )
            _, dependents = required.setdefault(resolved.fetch_spec, (dep_name, []))
            dependents.append(pkg)

    missing = {
        path: entry
        for path, entry in required.items()
        if not os.access(path, os.R_OK)
    }
    if not missing:
        return

    lines = [
        "{} (required by {})".format(
            _display_path(project, path),
            ",".join(pkg.name for pkg in dependents),
        )
        for path, (_, dependents) in missing.items()
    ]
    message = "Missing tarballs:\n" + "\n".join(lines)

    needed_at_runtime = any(
        dep_name in (pkg.dependencies or {})
        for dep_name, dependents in missing.values()
        for pkg in dependents
    )
    if needed_at_runtime:
        raise ValidationError("ENOPKGFILE", message)
    print_warning(message)


def _display_path(project: Project, path: str) -> str:
    relative = os.path.relpath(path, project.root_path)
    return relative if not relative.startswith("..") else path


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def _show_plan(updates: Batches) -> None:
    console = get_raw_console()
    for index, group in enumerate(updates, start=1):
        console.print(f"[bold]Batch {index}[/bold]")
        for pkg in group:
            summary = {
                key: pkg.get(key)
                for key in (*DEPENDENCY_COLLECTIONS, OVERRIDE_DEPENDENCIES_KEY)
                if pkg.get(key)
            }
            console.print(f"  [package]{pkg.name}[/package]", highlight=False)
            console.print(json.dumps(summary, indent=2), markup=False, highlight=False)


async def serialize_batches(
    updates: Batches,
    *,
    concurrency: int = MANIFEST_WRITE_CONCURRENCY,
) -> List[Path]:
    """Write manifests batch by batch; a batch is written concurrently."""
    semaphore = asyncio.Semaphore(concurrency)

    async def _write(pkg: Package) -> Path:
        async with semaphore:
            return await asyncio.to_thread(pkg.serialize)

    written: List[Path] = []
    for group in updates:
        logger.info("Updating %s...", ", ".join(pkg.name for pkg in group))
        written.extend(await asyncio.gather(*(_write(pkg) for pkg in group)))
    return written
