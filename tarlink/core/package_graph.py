"""Package dependency graph for tarlink.

The graph has one :class:`PackageGraphNode` per package and classifies every
declared dependency as *local* or *external*:

- **local**: a package with that name is in the graph AND the edge is
  forced local, or the specifier points at the package's directory, or the
  package's current version satisfies the specifier;
- **external**: everything else, including a same-named local package at
  a version the specifier does not accept. Such a package is treated exactly
  like an unrelated registry package for build ordering.

Local edges are recorded twice: forward in the declaring node's
``local_dependencies`` and reverse in the target's ``local_dependents``.
Every structural mutation (:meth:`PackageGraph.remove`,
:meth:`PackageGraph.prune`) keeps the two in step.

Typical usage::

    graph = PackageGraph(packages, graph_type=GraphType.DEPENDENCIES)
    cycle_paths, cycle_nodes = graph.partition_cycles()
    node = graph.get("my-lib")
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Set,
    Tuple,
    Union,
)

from tarlink.utils.logger import get_logger
from tarlink.exceptions import ValidationError
from tarlink.core.graph_node import PackageGraphNode
from tarlink.core.package_arg import resolve_package_arg

if TYPE_CHECKING:
    from tarlink.models.package import Package
    from tarlink.models.project import Project

logger = get_logger("core.package_graph")

__all__ = [
    "CyclePath",
    "EdgeDirection",
    "GraphType",
    "PackageGraph",
]

#: Package names along a dependency cycle, first and last equal.
CyclePath = Tuple[str, ...]


class GraphType(Enum):
    """Which dependency collections become graph edges."""

    #: Runtime and optional dependencies only: what an installed artifact needs.
    DEPENDENCIES = "dependencies"
    #: Runtime, optional and dev dependencies.
    ALL_DEPENDENCIES = "allDependencies"


class EdgeDirection(Enum):
    """Edge map followed by :meth:`PackageGraph.extend_list`."""

    DEPENDENCIES = "local_dependencies"
    DEPENDENTS = "local_dependents"


class PackageGraph:
    """Dependency graph over a set of sibling packages.

    Args:
        packages: Packages to build the graph from. Their Package objects
            are shared, not copied.
        graph_type: Include dev dependencies (``ALL_DEPENDENCIES``, the
            default) or not (``DEPENDENCIES``).
        force_local: Link every same-named package regardless of version.
        project: Project context; enables artifact recognition under the
            project's build root.

    Raises:
        ValidationError: ``ENAME`` when two packages share a name.
    """

    def __init__(
        self,
        packages: Iterable["Package"],
        *,
        graph_type: Union[GraphType, str] = GraphType.ALL_DEPENDENCIES,
        force_local: bool = False,
        project: Optional["Project"] = None,
    ) -> None:
        package_list = list(packages)

        self._graph_type = GraphType(graph_type)
        self._force_local = force_local
        self._project = project
        self._nodes: Dict[str, PackageGraphNode] = {}

        for pkg in package_list:
            self._nodes[pkg.name] = PackageGraphNode(pkg)

        if len(self._nodes) != len(package_list):
            _raise_duplicates(package_list)

        build_root = project.build_root if project is not None else None
        for node in self._nodes.values():
            self._link(node, build_root)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _graph_dependencies(self, node: PackageGraphNode) -> Dict[str, str]:
        """Merge the dependency collections that become edges for ``node``.

        Later collections win: dev < optional < runtime.
        """
        pkg = node.pkg
        merged: Dict[str, str] = {}
        if self._graph_type is GraphType.ALL_DEPENDENCIES:
            merged.update(pkg.dev_dependencies or {})
        merged.update(pkg.optional_dependencies or {})
        merged.update(pkg.dependencies or {})
        return merged

    def _link(self, current: PackageGraphNode, build_root: Optional[Path]) -> None:
        overrides = current.pkg.override_dependencies or {}

        for dep_name, spec in self._graph_dependencies(current).items():
            resolved = resolve_package_arg(
                dep_name,
                spec,
                current.location,
                override_spec=overrides.get(dep_name),
                build_root=build_root,
            )

            dep_node = self._nodes.get(dep_name)
            if dep_node is None:
                current.external_dependencies[dep_name] = resolved
                continue

            logger.debug(
                "Checking if %s@%s satisfies %s", dep_name, dep_node.version, resolved.raw
            )

            if (
                self._force_local
                or resolved.points_at(dep_node.location)
                or dep_node.satisfies(resolved, current)
            ):
                current.local_dependencies[dep_name] = resolved
                dep_node.local_dependents[current.name] = current
            else:
                logger.debug(
                    "%s wants %s but local %s is at %s; treating as external",
                    current.name,
                    resolved.raw,
                    dep_name,
                    dep_node.version,
                )
                current.external_dependencies[dep_name] = resolved

    def rebuild(
        self,
        *,
        graph_type: Union[GraphType, str, None] = None,
        force_local: Optional[bool] = None,
        project: Optional["Project"] = None,
    ) -> "PackageGraph":
        """Build a fresh graph over the current packages.

        Options not given are carried over from this graph, except the
        project: a project-bound graph must be rebuilt with a project.

        Raises:
            ValidationError: ``EREBUILD`` if this graph was built with a
                project and none is given.
        """
        if self._project is not None and project is None:
            raise ValidationError(
                "EREBUILD",
                "A graph built with a project must be rebuilt with a project",
            )

        return PackageGraph(
            self.raw_package_list,
            graph_type=self._graph_type if graph_type is None else graph_type,
            force_local=self._force_local if force_local is None else force_local,
            project=project,
        )

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def graph_type(self) -> GraphType:
        return self._graph_type

    @property
    def project(self) -> Optional["Project"]:
        return self._project

    @property
    def raw_package_list(self) -> List["Package"]:
        """The Package behind every node, in insertion order."""
        return [node.pkg for node in self._nodes.values()]

    def get(self, name: str) -> Optional[PackageGraphNode]:
        return self._nodes.get(name)

    def names(self) -> List[str]:
        return list(self._nodes)

    def nodes(self) -> List[PackageGraphNode]:
        return list(self._nodes.values())

    def __getitem__(self, name: str) -> PackageGraphNode:
        return self._nodes[name]

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __iter__(self) -> Iterator[PackageGraphNode]:
        return iter(list(self._nodes.values()))

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"PackageGraph(nodes={len(self._nodes)}, type={self._graph_type.value})"

    # ------------------------------------------------------------------
    # Closure queries
    # ------------------------------------------------------------------

    def add_dependencies(self, packages: Iterable["Package"]) -> List["Package"]:
        """Return ``packages`` plus every package they locally depend on."""
        return self.extend_list(packages, EdgeDirection.DEPENDENCIES)

    def add_dependents(self, packages: Iterable["Package"]) -> List["Package"]:
        """Return ``packages`` plus every package that locally depends on them."""
        return self.extend_list(packages, EdgeDirection.DEPENDENTS)

    def extend_list(
        self,
        packages: Iterable["Package"],
        direction: EdgeDirection,
    ) -> List["Package"]:
        """Breadth-first expansion of ``packages`` along one edge map.

        Packages not in the graph are skipped. The result starts with the
        given packages in order, followed by discovered ones.
        """
        search: Dict[str, PackageGraphNode] = {}
        for pkg in packages:
            node = self._nodes.get(pkg.name)
            if node is None:
                logger.debug("extend_list: %s is not in the graph", pkg.name)
                continue
            search.setdefault(node.name, node)

        queue = list(search.values())
        index = 0
        while index < len(queue):
            current = queue[index]
            index += 1
            edges = getattr(current, direction.value)
            for dep_name in edges:
                dep_node = self._nodes.get(dep_name)
                if dep_node is None or dep_name in search:
                    continue
                search[dep_name] = dep_node
                queue.append(dep_node)

        return [node.pkg for node in queue]

    # ------------------------------------------------------------------
    # Cycles & pruning
    # ------------------------------------------------------------------

    def partition_cycles(self) -> Tuple[List[CyclePath], List[PackageGraphNode]]:
        """Find dependency cycles and remove their nodes from the graph.

        Each node is used as the root of a depth-first walk over
        ``local_dependents``. Reaching the root again closes a direct cycle.
        Reaching a node that the root itself depends on closes a transitive
        cycle through that node. Paths are reported in dependency order
        (each name depends on the next) and start and end on the same name.

        Returns:
            Distinct cycle paths and distinct cycle nodes, in discovery
            order. The nodes have been pruned from the graph.
        """
        cycle_paths: Dict[CyclePath, None] = {}
        cycle_nodes: Dict[str, PackageGraphNode] = {}

        for root in self._nodes.values():
            for path, node in self._walk_dependents(root):
                cycle_paths.setdefault(path, None)
                cycle_nodes.setdefault(node.name, node)

        if cycle_nodes:
            logger.debug("Pruning cycle nodes: %s", ", ".join(cycle_nodes))
            self.prune(*cycle_nodes.values())

        return list(cycle_paths), list(cycle_nodes.values())

    def _walk_dependents(
        self,
        root: PackageGraphNode,
    ) -> Iterator[Tuple[CyclePath, PackageGraphNode]]:
        """Yield ``(path, cycle_node)`` for every cycle reachable from ``root``."""
        seen: Set[str] = set()
        stack: List[Tuple[PackageGraphNode, Tuple[str, ...]]] = [
            (dependent, (root.name,))
            for dependent in reversed(list(root.local_dependents.values()))
        ]

        while stack:
            node, walk = stack.pop()
            step = walk + (node.name,)

            if node.name in seen:
                continue
            seen.add(node.name)

            if node is root:
                # a direct cycle: root <- ... <- root
                yield tuple(reversed(step)), root
                continue

            if root.name in node.local_dependents:
                # a transitive cycle: root depends on node, node reaches root
                yield tuple(reversed(step)) + (node.name,), node

            for dependent in reversed(list(node.local_dependents.values())):
                stack.append((dependent, step))

    def prune(self, *candidates: PackageGraphNode) -> None:
        """Remove every candidate node and its edges."""
        if len(candidates) == len(self._nodes) and all(
            self._nodes.get(node.name) is node for node in candidates
        ):
            self._nodes.clear()
            return

        for node in candidates:
            self.remove(node)

    def remove(self, candidate: PackageGraphNode) -> None:
        """Delete a node and every edge pointing at it from remaining nodes."""
        self._nodes.pop(candidate.name, None)

        for node in self._nodes.values():
            # incoming edges
            node.local_dependencies.pop(candidate.name, None)
            # outgoing edges
            node.local_dependents.pop(candidate.name, None)


def _raise_duplicates(packages: List["Package"]) -> None:
    """Raise ``ENAME`` listing every location of every duplicated name."""
    seen: Dict[str, List[str]] = {}
    for pkg in packages:
        seen.setdefault(pkg.name, []).append(str(pkg.location))

    collisions = {name: paths for name, paths in seen.items() if len(paths) > 1}
    lines: List[str] = []
    for name, paths in collisions.items():
        lines.append(f'Package name "{name}" used in multiple packages:')
        lines.extend(f"\t{path}" for path in paths)

    raise ValidationError("ENAME", "\n".join(lines), packages=", ".join(collisions))
