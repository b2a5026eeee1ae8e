"""Graph vertex for tarlink's package graph."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional

from tarlink.core.package_arg import PackageArg
from tarlink.utils.logger import get_logger
from tarlink.exceptions import GraphInvariantError, ValidationError
from tarlink.utils.version_utils import (
    coerce,
    prerelease_id,
    satisfies,
    versions_equal,
)

if TYPE_CHECKING:
    from tarlink.models.package import Package

logger = get_logger("core.graph_node")

__all__ = ["PackageGraphNode"]


class PackageGraphNode:
    """One package in a :class:`~tarlink.core.package_graph.PackageGraph`.

    The node does not own its Package: ``version`` and ``pkg`` read through
    to the shared instance, so bumping the Package's version changes what
    the node reports. ``name``, ``location`` and ``prerelease_id`` are fixed
    when the node is created.

    Attributes:
        external_dependencies: Dependencies not linked inside the graph.
        local_dependencies: Dependencies linked to other nodes, by name.
        local_dependents: Nodes that depend on this one, by name. Always the
            transpose of the other nodes' ``local_dependencies``.
    """

    __slots__ = (
        "_pkg",
        "_name",
        "_location",
        "_prerelease_id",
        "external_dependencies",
        "local_dependencies",
        "local_dependents",
    )

    def __init__(self, pkg: "Package") -> None:
        self._pkg = pkg
        self._name = pkg.name
        self._location = pkg.location
        # only the prerelease id at graph creation time matters
        self._prerelease_id = prerelease_id(pkg.version)

        self.external_dependencies: Dict[str, PackageArg] = {}
        self.local_dependencies: Dict[str, PackageArg] = {}
        self.local_dependents: Dict[str, PackageGraphNode] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def location(self) -> Path:
        return self._location

    @property
    def prerelease_id(self) -> Optional[str]:
        return self._prerelease_id

    @property
    def version(self) -> Optional[str]:
        return self._pkg.version

    @property
    def pkg(self) -> "Package":
        return self._pkg

    def satisfies(
        self,
        resolved: PackageArg,
        parent: Optional["PackageGraphNode"] = None,
    ) -> bool:
        """Return True if this node's current version satisfies ``resolved``.

        An artifact with an override range must itself satisfy that range;
        the node is then tested against the override. An artifact without an
        override is a frozen snapshot and only matches its exact version.
        Everything else is a range check against the git committish, the git
        range or the fetch spec, in that order.

        Args:
            resolved: Specifier pointing at this node's package.
            parent: Node declaring the dependency, used in error messages.

        Raises:
            ValidationError: ``EINVALIDVERSION`` when the artifact's version
                does not satisfy the override range.
            GraphInvariantError: ``EUNRESOLVEDSPEC`` when the specifier has
                nothing to compare against.
        """
        artifact = resolved.artifact
        override = resolved.override

        if artifact is not None and override is not None and override.fetch_spec:
            logger.debug(
                "satisfies? %s@%s against %s (override)",
                self._name,
                self.version,
                override.fetch_spec,
            )
            artifact_version = coerce(artifact.version)
            if artifact_version is None or not satisfies(
                artifact_version, override.fetch_spec
            ):
                raise ValidationError(
                    "EINVALIDVERSION",
                    f"File {artifact.build_path} does not satisfy version "
                    f"{override.fetch_spec} in "
                    f"{parent.name if parent is not None else '<unknown>'}",
                    artifact=artifact.build_path,
                    required=override.fetch_spec,
                )
            return satisfies(self.version, override.fetch_spec)

        if artifact is not None:
            return versions_equal(self.version, artifact.version)

        range_expr = resolved.git_committish or resolved.git_range or resolved.fetch_spec
        if range_expr is None:
            raise GraphInvariantError(
                "EUNRESOLVEDSPEC",
                f"Specifier {resolved.raw} has no committish, range or fetch spec",
                dependency=self._name,
            )
        return satisfies(self.version, range_expr)

    def __repr__(self) -> str:
        return (
            "PackageGraphNode("
            f"name={self._name!r}, "
            f"version={self.version!r}, "
            f"local_dependencies={list(self.local_dependencies)!r}, "
            f"local_dependents={list(self.local_dependents)!r}"
            ")"
        )
