"""
Core functionality exports for tarlink.

Importing from here keeps user-facing imports clean and stable:

    from tarlink.core import PackageGraph, batch_packages
"""

from __future__ import annotations

from tarlink.core.graph_node import PackageGraphNode
from tarlink.core.batching import batch_packages, format_cycle_report
from tarlink.core.transitive import resolve_transitive_dependencies
from tarlink.core.package_graph import CyclePath, EdgeDirection, GraphType, PackageGraph
from tarlink.core.package_arg import (
    BuildFile,
    PackageArg,
    SpecifierType,
    from_pack_target,
    get_pack_target,
    resolve_package_arg,
    validate_package_name,
)

__all__ = [
    # Specifiers
    "BuildFile",
    "PackageArg",
    "SpecifierType",
    "from_pack_target",
    "get_pack_target",
    "resolve_package_arg",
    "validate_package_name",
    # Graph
    "CyclePath",
    "EdgeDirection",
    "GraphType",
    "PackageGraph",
    "PackageGraphNode",
    # Algorithms
    "batch_packages",
    "format_cycle_report",
    "resolve_transitive_dependencies",
]
