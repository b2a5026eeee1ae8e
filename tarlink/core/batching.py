"""Topological batching of packages for tarlink.

:func:`batch_packages` turns a package list into an ordered list of batches.
Every package's local dependencies live in earlier batches, and no two
packages in one batch depend on each other, so a batch can be processed
concurrently.

Cyclic packages cannot be ordered. They are isolated first and appended
after all acyclic batches: the cyclic package with the most dependents goes
alone, then the rest together.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Union

from tarlink.utils.logger import get_logger
from tarlink.exceptions import GraphInvariantError, ValidationError
from tarlink.core.package_graph import CyclePath, GraphType, PackageGraph

if TYPE_CHECKING:
    from tarlink.models.package import Package
    from tarlink.models.project import Project

logger = get_logger("core.batching")

__all__ = ["batch_packages", "format_cycle_report"]

Batch = List["Package"]


def format_cycle_report(cycle_paths: Sequence[CyclePath]) -> str:
    """Render cycle paths as one line each under a warning header.

    Example::

        Dependency cycles detected, you should fix these!
        a -> b -> a
    """
    lines = ["Dependency cycles detected, you should fix these!"]
    lines.extend(" -> ".join(path) for path in cycle_paths)
    return "\n".join(lines)


def batch_packages(
    packages: Iterable["Package"],
    *,
    reject_cycles: bool = False,
    graph_type: Union[GraphType, str] = GraphType.ALL_DEPENDENCIES,
    force_local: bool = False,
    project: Optional["Project"] = None,
) -> List[Batch]:
    """Group packages into dependency-ordered, parallel-safe batches.

    A private graph is built from ``packages``; no caller graph is mutated.

    Args:
        packages: Packages to order.
        reject_cycles: Raise on dependency cycles instead of warning.
        graph_type: Passed to :class:`PackageGraph`.
        force_local: Passed to :class:`PackageGraph`.
        project: Passed to :class:`PackageGraph`.

    Returns:
        Batches of packages; empty input gives an empty list.

    Raises:
        ValidationError: ``ECYCLE`` when cycles exist and ``reject_cycles``
            is set, or any error from graph construction.
    """
    graph = PackageGraph(
        packages,
        graph_type=graph_type,
        force_local=force_local,
        project=project,
    )
    cycle_paths, cycle_nodes = graph.partition_cycles()
    batches: List[Batch] = []

    if cycle_paths:
        report = format_cycle_report(cycle_paths)
        if reject_cycles:
            raise ValidationError("ECYCLE", report)
        logger.warning("%s", report)

    while len(graph):
        # "source" nodes: nothing left to wait on
        batch = [node for node in graph if not node.local_dependencies]
        if not batch:
            # partition_cycles removes every cycle, so this cannot happen
            raise GraphInvariantError(
                "ENOSOURCE",
                "No package without local dependencies among: "
                + ", ".join(graph.names()),
            )

        logger.debug("Batched %s", ", ".join(node.name for node in batch))
        batches.append([node.pkg for node in batch])

        # pruning changes which nodes have no local dependencies left
        graph.prune(*batch)

    if cycle_nodes:
        # sorted() is stable: ties keep discovery order
        ranked = sorted(
            cycle_nodes,
            key=lambda node: len(node.local_dependents),
            reverse=True,
        )
        king, rest = ranked[0], ranked[1:]
        batches.append([king.pkg])
        if rest:
            batches.append([node.pkg for node in rest])

    return batches
