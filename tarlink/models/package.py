"""
Package data model for tarlink.

A :class:`Package` wraps one ``package.json`` manifest. The manifest dict is
held by reference: graph nodes built from a Package see every later change
to its version or dependency maps. Callers that need a point-in-time view
take an explicit :meth:`Package.copy` before mutating.
"""

from __future__ import annotations

import os
import copy as _copy
from pathlib import Path
from typing import Any, Dict, Optional, Union

from tarlink.utils.logger import get_logger
from tarlink.utils.filesystem import write_manifest
from tarlink.core.package_arg import (
    PackageArg,
    SpecifierType,
    get_pack_target,
    validate_package_name,
)
from tarlink.constants import (
    DEPENDENCY_COLLECTIONS,
    MANIFEST_FILE,
    OVERRIDE_DEPENDENCIES_KEY,
)

logger = get_logger("models.package")

Dependencies = Dict[str, str]
PathLike = Union[str, Path]


def _bin_safe_name(name: str, scope: Optional[str]) -> str:
    """Strip the scope from a package name for use as an executable name."""
    return name[len(scope) + 1:] if scope else name


def _shallow_copy(manifest: Dict[str, Any]) -> Dict[str, Any]:
    """Copy a manifest one level deep; package.json is not deeply nested."""
    result: Dict[str, Any] = {}
    for key, value in manifest.items():
        if isinstance(value, list):
            result[key] = list(value)
        elif isinstance(value, dict):
            result[key] = dict(value)
        else:
            result[key] = value
    return result


class Package:
    """A package manifest at a fixed location.

    Args:
        manifest: Parsed ``package.json`` contents. Held by reference.
        location: Directory containing the manifest.
        root_path: Project root; defaults to ``location``.

    Raises:
        SpecifierError: The manifest's name is missing or invalid.
    """

    __slots__ = ("_manifest", "_name", "_location", "_root_path", "_scope", "_bin")

    def __init__(
        self,
        manifest: Dict[str, Any],
        location: PathLike,
        root_path: Optional[PathLike] = None,
    ) -> None:
        name = manifest.get("name")
        self._scope = validate_package_name(name if isinstance(name, str) else "")
        self._manifest = manifest
        self._name: str = name
        self._location = Path(os.path.normpath(os.path.abspath(location)))
        self._root_path = (
            Path(os.path.normpath(os.path.abspath(root_path)))
            if root_path is not None
            else self._location
        )

        raw_bin = manifest.get("bin")
        if isinstance(raw_bin, str):
            self._bin: Dict[str, str] = {_bin_safe_name(name, self._scope): raw_bin}
        else:
            self._bin = dict(raw_bin or {})

    # ------------------------------------------------------------------
    # Identity (read-only)
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def scope(self) -> Optional[str]:
        return self._scope

    @property
    def location(self) -> Path:
        return self._location

    @property
    def root_path(self) -> Path:
        return self._root_path

    @property
    def private(self) -> bool:
        return bool(self._manifest.get("private"))

    @property
    def bin(self) -> Dict[str, str]:
        """Executable name to script path."""
        return dict(self._bin)

    @property
    def scripts(self) -> Dict[str, str]:
        return dict(self._manifest.get("scripts") or {})

    @property
    def manifest_location(self) -> Path:
        return self._location / MANIFEST_FILE

    @property
    def node_modules_location(self) -> Path:
        return self._location / "node_modules"

    @property
    def bin_location(self) -> Path:
        return self.node_modules_location / ".bin"

    # ------------------------------------------------------------------
    # Mutable state
    # ------------------------------------------------------------------

    @property
    def version(self) -> Optional[str]:
        return self._manifest.get("version")

    @version.setter
    def version(self, version: str) -> None:
        self._manifest["version"] = version

    @property
    def dependencies(self) -> Optional[Dependencies]:
        return self._manifest.get("dependencies")

    @property
    def dev_dependencies(self) -> Optional[Dependencies]:
        return self._manifest.get("devDependencies")

    @property
    def optional_dependencies(self) -> Optional[Dependencies]:
        return self._manifest.get("optionalDependencies")

    @property
    def peer_dependencies(self) -> Optional[Dependencies]:
        return self._manifest.get("peerDependencies")

    @property
    def override_dependencies(self) -> Optional[Dependencies]:
        """Authoritative version ranges kept alongside rewritten file specs."""
        return self._manifest.get(OVERRIDE_DEPENDENCIES_KEY)

    @property
    def pack_target(self) -> str:
        """File name ``npm pack`` produces for this package and version."""
        return get_pack_target(self._name, self.version or "")

    @property
    def build_file(self) -> str:
        """Artifact path relative to a build root: ``<name>/<pack_target>``."""
        return f"{self._name}/{self.pack_target}"

    def get(self, key: str, default: Any = None) -> Any:
        """Return an arbitrary manifest field."""
        return self._manifest.get(key, default)

    def set(self, key: str, value: Any) -> "Package":
        """Store an arbitrary manifest field; returns ``self`` for chaining."""
        self._manifest[key] = value
        return self

    def get_path(self, *parts: str) -> Path:
        return self._location.joinpath(*parts)

    # ------------------------------------------------------------------
    # Copies & serialization
    # ------------------------------------------------------------------

    def to_json(self) -> Dict[str, Any]:
        """Return a shallow copy of the manifest for munging."""
        return _shallow_copy(self._manifest)

    def copy(self) -> "Package":
        """Return an independent Package over a deep copy of the manifest."""
        return Package(_copy.deepcopy(self._manifest), self._location, self._root_path)

    def serialize(self) -> Path:
        """Write the manifest back to ``manifest_location``."""
        return write_manifest(self.manifest_location, self._manifest)

    # ------------------------------------------------------------------
    # Dependency rewriting
    # ------------------------------------------------------------------

    def get_dependency_collection(self, dep_name: str) -> Optional[Dependencies]:
        """Return the collection declaring ``dep_name``.

        Runtime dependencies win over optional ones, which win over dev
        dependencies.
        """
        for key in DEPENDENCY_COLLECTIONS:
            collection = self._manifest.get(key)
            if collection and dep_name in collection:
                return collection
        return None

    def update_local_dependency(
        self,
        resolved: PackageArg,
        tarball: PathLike,
        dep_version: str,
        save_prefix: str,
    ) -> bool:
        """Point a local dependency at a built tarball.

        The declaring collection entry becomes a ``file:`` path to
        ``tarball`` relative to this package, and the override collection
        records ``save_prefix + dep_version`` so the intended range survives
        the rewrite. Registry ranges, sibling directories and links to an
        older build artifact can be relinked; other specifiers are left alone.

        Args:
            resolved: Current specifier of the dependency.
            tarball: Absolute path of the artifact.
            dep_version: Version of the artifact.
            save_prefix: Range prefix for the override entry (e.g. ``^``).

        Returns:
            True if the manifest was changed.
        """
        dep_name = resolved.name
        collection = self.get_dependency_collection(dep_name)

        if collection is None:
            logger.info(
                "Requested update for unknown dependency %s of %s to %s%s",
                resolved.raw,
                self._name,
                save_prefix,
                dep_version,
            )
            return False

        relinkable = (
            resolved.registry
            or resolved.type is SpecifierType.DIRECTORY
            or resolved.artifact is not None
        )
        if not relinkable:
            logger.warning(
                "Cannot relink %s in %s: %s specifiers are left untouched",
                dep_name,
                self._name,
                resolved.type.value,
            )
            return False

        overrides = self.override_dependencies
        if overrides is None:
            overrides = {}
            self.set(OVERRIDE_DEPENDENCIES_KEY, overrides)

        relative = os.path.relpath(os.fspath(tarball), self._location)
        overrides[dep_name] = f"{save_prefix}{dep_version}"
        collection[dep_name] = f"file:{Path(relative).as_posix()}"
        return True

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self._name}@{self.version}" if self.version else self._name

    def __repr__(self) -> str:
        return (
            "Package("
            f"name={self._name!r}, "
            f"version={self.version!r}, "
            f"location={str(self._location)!r}"
            ")"
        )
