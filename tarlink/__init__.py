"""
tarlink: build ordering and artifact linking for multi-package repositories.

tarlink reads the ``package.json`` manifests of a repository's packages,
builds a dependency graph between them, and answers the questions a build
orchestrator asks of it:

    • which packages depend on which, and which only look like they do
    • in what order, and in which parallel batches, packages can be built
    • what a package transitively needs from its siblings
    • how to repoint sibling dependencies at packed ``.tgz`` artifacts

Example:
    >>> from tarlink import Project, batch_packages
    >>> packages = Project().load_packages()
    >>> [[p.name for p in batch] for batch in batch_packages(packages)]
"""

from __future__ import annotations

from tarlink.__version__ import __version__
from tarlink.models import Package, Project
from tarlink.core import (
    GraphType,
    PackageGraph,
    batch_packages,
    resolve_package_arg,
    resolve_transitive_dependencies,
)
from tarlink.exceptions import (
    GraphInvariantError,
    SpecifierError,
    TarlinkError,
    ValidationError,
)

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__description__ = "Build ordering and artifact linking for multi-package repositories."

__all__ = [
    "__version__",
    "GraphInvariantError",
    "GraphType",
    "Package",
    "PackageGraph",
    "Project",
    "SpecifierError",
    "TarlinkError",
    "ValidationError",
    "batch_packages",
    "resolve_package_arg",
    "resolve_transitive_dependencies",
]
