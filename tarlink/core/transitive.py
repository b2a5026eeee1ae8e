"""Transitive local dependency resolution for tarlink."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional

from tarlink.utils.logger import get_logger
from tarlink.exceptions import GraphInvariantError
from tarlink.constants import MAX_TRANSITIVE_DEPTH

if TYPE_CHECKING:
    from tarlink.models.package import Package
    from tarlink.core.graph_node import PackageGraphNode
    from tarlink.core.package_graph import PackageGraph

logger = get_logger("core.transitive")

__all__ = ["resolve_transitive_dependencies"]


def resolve_transitive_dependencies(
    graph: "PackageGraph",
    start: "PackageGraphNode",
    *,
    max_depth: int = MAX_TRANSITIVE_DEPTH,
) -> Dict[str, "Package"]:
    """Collect every package ``start`` locally depends on, directly or not.

    The walk is breadth first, one frontier per level, so the result lists
    direct dependencies first, then their dependencies, and so on.

    Args:
        graph: Graph containing ``start``.
        start: Node whose closure is wanted. Never part of the result.
        max_depth: Level at which the graph is assumed to be corrupt.

    Returns:
        Package name to Package, in discovery order.

    Raises:
        GraphInvariantError: ``ERECURSION`` past ``max_depth`` levels.
    """
    collected: Dict[str, "Package"] = {}
    _collect_level(graph, [start], start.name, collected, 0, max_depth)
    logger.debug(
        "Transitive dependencies of %s: %s",
        start.name,
        ", ".join(collected) or "<none>",
    )
    return collected


def _collect_level(
    graph: "PackageGraph",
    frontier: List["PackageGraphNode"],
    start_name: str,
    collected: Dict[str, "Package"],
    depth: int,
    max_depth: int,
) -> None:
    if depth > max_depth:
        raise GraphInvariantError(
            "ERECURSION",
            f"Transitive dependency resolution exceeded depth {max_depth}; "
            "the package graph is inconsistent",
            start=start_name,
        )

    next_frontier: List["PackageGraphNode"] = []
    for parent in frontier:
        for dep_name in parent.local_dependencies:
            if dep_name == start_name or dep_name in collected:
                continue
            node: Optional["PackageGraphNode"] = graph.get(dep_name)
            if node is None:
                raise GraphInvariantError(
                    "EDANGLINGEDGE",
                    f"{parent.name} has a local dependency on {dep_name}, "
                    "which is not in the graph",
                    start=start_name,
                )
            collected[dep_name] = node.pkg
            next_frontier.append(node)

    if next_frontier:
        _collect_level(graph, next_frontier, start_name, collected, depth + 1, max_depth)
