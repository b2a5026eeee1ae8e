"""
Project model for tarlink.

A :class:`Project` is the repository a set of packages lives in: the
directory holding the tarlink configuration, the package globs to search,
and the build root artifacts are packed into.

Manifests are loaded concurrently. A shared :class:`asyncio.Semaphore`
bounds the number of files open at once, and the blocking JSON reads run
in worker threads::

    project = Project(Path.cwd())
    packages = project.load_packages()
"""

from __future__ import annotations

import os
import asyncio
from pathlib import Path
from typing import Iterable, List, Optional, Union

from tarlink.models.package import Package
from tarlink.exceptions import ValidationError
from tarlink.utils.logger import get_logger
from tarlink.core.package_arg import get_pack_target
from tarlink.config import CONFIG_FILE, TarlinkConfig, load_config
from tarlink.utils.filesystem import find_manifests, read_manifest
from tarlink.constants import MANIFEST_FILE, MANIFEST_READ_CONCURRENCY

logger = get_logger("models.project")

PathLike = Union[str, Path]


class Project:
    """Root of a multi-package repository.

    Args:
        cwd: Directory to start configuration discovery from. Defaults to
            the current working directory.
        config: Already-loaded configuration. When given, no discovery is
            done and ``cwd`` is the project root.
        config_path: Explicit configuration file, as with ``--config``.

    Raises:
        ConfigError: The configuration file is invalid.
    """

    def __init__(
        self,
        cwd: Optional[PathLike] = None,
        *,
        config: Optional[TarlinkConfig] = None,
        config_path: Optional[Path] = None,
    ) -> None:
        start = Path(os.path.abspath(cwd)) if cwd is not None else Path.cwd()

        if config is None:
            config = load_config(config_path, start=start)

        self.config = config
        if config.source_path is not None:
            self.root_config_location = config.source_path
        else:
            # nothing found: behave as if an empty config sat in cwd
            self.root_config_location = start / CONFIG_FILE
        self.root_path = self.root_config_location.parent

        logger.info("Project root: %s", self.root_path)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @property
    def package_globs(self) -> List[str]:
        return list(self.config.packages)

    @property
    def build_root(self) -> Path:
        """Absolute directory build artifacts are written to."""
        return Path(os.path.normpath(self.root_path / self.config.build_root))

    def get_build_dir(self, pkg: Package) -> Path:
        """Return ``<build_root>/<name>`` for ``pkg``."""
        return self.build_root / pkg.name

    def get_build_file(self, name: str, version: str) -> Path:
        """Return the artifact path of ``name`` at ``version``."""
        return self.build_root / name / get_pack_target(name, version)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def find_manifest_paths(self) -> List[Path]:
        """Return the manifest path of every package matched by the globs.

        Raises:
            ValidationError: ``EPKGCONFIG`` when a globstar pattern is mixed
                with an explicit ``node_modules`` path.
        """
        globs = self.package_globs
        if any("**" in pattern for pattern in globs) and any(
            "node_modules" in pattern for pattern in globs
        ):
            raise ValidationError(
                "EPKGCONFIG",
                "An explicit node_modules package path does not allow globstars (**)",
                packages=", ".join(globs),
            )

        paths = find_manifests(self.root_path, globs, manifest_name=MANIFEST_FILE)
        logger.debug("Found %d package manifest(s) under %s", len(paths), self.root_path)
        return paths

    async def get_packages(
        self,
        *,
        concurrency: int = MANIFEST_READ_CONCURRENCY,
    ) -> List[Package]:
        """Load every package of the project, in discovery order.

        Raises:
            ValidationError: Invalid globs or an unparsable manifest.
            FileOperationError: A manifest cannot be read.
            SpecifierError: A manifest has an invalid package name.
        """
        semaphore = asyncio.Semaphore(concurrency)

        async def _load(manifest_path: Path) -> Package:
            async with semaphore:
                manifest = await asyncio.to_thread(read_manifest, manifest_path)
            return Package(manifest, manifest_path.parent, self.root_path)

        paths = self.find_manifest_paths()
        # gather keeps input order and re-raises the first failure
        return list(await asyncio.gather(*(_load(path) for path in paths)))

    def load_packages(self) -> List[Package]:
        """Synchronous wrapper around :meth:`get_packages`."""
        return asyncio.run(self.get_packages())

    def __repr__(self) -> str:
        return f"Project(root_path={str(self.root_path)!r})"


def find_current_package(
    packages: Iterable[Package],
    cwd: Optional[PathLike] = None,
) -> Optional[Package]:
    """Return the package containing ``cwd``, innermost first.

    Args:
        packages: Candidate packages.
        cwd: Directory to look from; defaults to the working directory.
    """
    here = Path(os.path.normpath(os.path.abspath(cwd if cwd is not None else os.getcwd())))
    by_location = {pkg.location: pkg for pkg in packages}

    for directory in (here, *here.parents):
        pkg = by_location.get(directory)
        if pkg is not None:
            return pkg
    return None
