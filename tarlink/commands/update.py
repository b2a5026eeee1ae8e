"""Update command implementation for tarlink.

Refreshes tarball links that ``prepare`` wrote once a dependency has been
rebuilt at a newer version. Every package in the current package's local
closure, the current package included, is checked: a dependency linked to a
build artifact older than the requested version is repointed at the newer
artifact, and its override range follows.

Directory links, registry ranges and tarballs outside the build root are
never touched; ``prepare`` owns those.

Typical usage::

    $ cd packages/app
    $ tarlink update                 # every local dependency, current version
    $ tarlink update util@1.4.0      # one dependency, explicit version
"""

from __future__ import annotations

import os
import sys
import asyncio
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import click

from tarlink.models import Package, Project
from tarlink.exceptions import TarlinkError, ValidationError
from tarlink.context import TarlinkContext, pass_context
from tarlink.constants import DEFAULT_SAVE_PREFIX
from tarlink.commands.prepare import serialize_batches
from tarlink.core import GraphType, PackageGraph, resolve_transitive_dependencies
from tarlink.utils import (
    get_logger,
    get_raw_console,
    is_newer,
    print_error,
    print_success,
)
from tarlink.utils.version_utils import parse_version

logger = get_logger("commands.update")

#: ``(dependency name, version to link)``
Request = Tuple[str, str]


@click.command()
@click.argument("deps", nargs=-1)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show the relinked dependencies without writing manifests.",
)
@pass_context
def update(ctx: TarlinkContext, deps: Sequence[str], dry_run: bool) -> None:
    """Point stale tarball links at newer builds of DEPS.

    DEPS are ``name`` or ``name@version`` and default to the local
    dependencies of the current package. Without a version, the
    dependency's current version is used.
    """
    try:
        changed = plan_update(
            ctx.project,
            ctx.packages,
            ctx.require_current_package(),
            deps,
            graph_type=ctx.graph_type(),
        )
    except TarlinkError as e:
        print_error(f"{e}")
        sys.exit(1)

    if not changed:
        print_success("Nothing to do!")
        return

    if dry_run:
        console = get_raw_console()
        for pkg, dep_names in changed:
            for dep_name in dep_names:
                collection = pkg.get_dependency_collection(dep_name) or {}
                console.print(
                    f"{pkg.name}: {dep_name} -> {collection.get(dep_name)}",
                    markup=False,
                    highlight=False,
                )
        return

    written = asyncio.run(serialize_batches([[pkg for pkg, _ in changed]]))
    print_success(f"Updated {len(written)} package manifest(s)")


def split_request(request: str) -> Tuple[str, Optional[str]]:
    """Split ``name@version``; the leading ``@`` of a scope is not a separator.

    Examples:
        >>> split_request("@acme/ui@2.0.0")
        ('@acme/ui', '2.0.0')
        >>> split_request("util")
        ('util', None)
    """
    at = request.rfind("@")
    if at <= 0:
        return request, None
    version = request[at + 1:]
    return request[:at], None if version in ("", "*") else version


def _resolve_requests(
    graph: PackageGraph,
    current: Package,
    deps: Sequence[str],
) -> List[Request]:
    if not deps:
        deps = list(graph[current.name].local_dependencies)

    requests: List[Request] = []
    for request in deps:
        name, version = split_request(request)
        node = graph.get(name)
        if node is None:
            raise ValidationError(
                "ENOPKG", f"{name} is not a package of this project", request=request
            )
        if version is None:
            version = node.version or "0.0.0"
        elif parse_version(version) is None:
            raise ValidationError(
                "EINVALIDVERSION", f"{request} does not name a valid version", request=request
            )
        requests.append((name, version))
    return requests


def plan_update(
    project: Project,
    packages: List[Package],
    current: Package,
    deps: Sequence[str] = (),
    *,
    graph_type: GraphType = GraphType.ALL_DEPENDENCIES,
) -> List[Tuple[Package, List[str]]]:
    """Relink stale artifact dependencies in memory.

    The Package objects in ``packages`` are mutated; nothing is written.

    Args:
        project: Project providing the build root.
        packages: Every package of the project.
        current: Package whose closure is updated.
        deps: ``name`` or ``name@version`` requests.
        graph_type: Dependency collections that become graph edges.

    Returns:
        Each changed package with the names of its relinked dependencies,
        current package first.

    Raises:
        ValidationError: ``ENOPKG`` for a request naming an unknown
            package, ``EINVALIDVERSION`` for an unparseable version.
    """
    graph = PackageGraph(packages, graph_type=graph_type, project=project)
    requests = _resolve_requests(graph, current, deps)
    closure = resolve_transitive_dependencies(graph, graph[current.name])

    changed: List[Tuple[Package, List[str]]] = []
    for pkg in [current, *closure.values()]:
        node = graph[pkg.name]
        relinked: List[str] = []
        for dep_name, version in requests:
            resolved = node.local_dependencies.get(dep_name)
            if resolved is None or resolved.artifact is None:
                continue

            tarball = project.get_build_file(dep_name, version)
            build_spec = "file:" + Path(os.path.relpath(tarball, pkg.location)).as_posix()
            if build_spec == resolved.raw_spec or not is_newer(
                version, resolved.artifact.version
            ):
                logger.info(
                    "%s in %s is up to date (%s, requested %s)",
                    dep_name,
                    pkg.name,
                    resolved.artifact.version,
                    version,
                )
                continue

            logger.info(
                "%s -> %s: %s -> %s",
                pkg.name,
                dep_name,
                resolved.artifact.version,
                version,
            )
            if not tarball.exists():
                logger.warning("%s has not been built yet", tarball)
            if pkg.update_local_dependency(resolved, tarball, version, DEFAULT_SAVE_PREFIX):
                relinked.append(dep_name)

        if relinked:
            changed.append((pkg, relinked))

    if not changed:
        logger.info("Nothing to do!")
    return changed
