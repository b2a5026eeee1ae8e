"""
Shared context object for tarlink CLI commands.

The root command builds one :class:`TarlinkContext` per invocation. Commands
ask it for the :class:`~tarlink.models.Project` and its packages, which are
loaded on first use and then reused.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import click

from tarlink.config import TarlinkConfig
from tarlink.core import GraphType
from tarlink.exceptions import ValidationError
from tarlink.models import Package, Project, find_current_package


class TarlinkContext:
    """Global context object for tarlink CLI commands.

    Attributes:
        config_path: Path to the tarlink configuration file, if any.
        verbose: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG).
        color: Whether colored terminal output is enabled.
        cwd: Directory commands run from.
        config: Loaded configuration.
    """

    __slots__ = ("config_path", "verbose", "color", "cwd", "config", "_project", "_packages")

    def __init__(self) -> None:
        self.config_path: Optional[Path] = None
        self.verbose: int = 0
        self.color: bool = True
        self.cwd: Path = Path.cwd()
        self.config: TarlinkConfig = TarlinkConfig()
        self._project: Optional[Project] = None
        self._packages: Optional[List[Package]] = None

    @property
    def project(self) -> Project:
        if self._project is None:
            self._project = Project(self.cwd, config=self.config)
        return self._project

    @property
    def packages(self) -> List[Package]:
        """All packages of the project, loaded once."""
        if self._packages is None:
            self._packages = self.project.load_packages()
        return self._packages

    def graph_type(self, include_dev: Optional[bool] = None) -> GraphType:
        """Graph type for a command; ``None`` defers to the configuration."""
        if include_dev is None:
            include_dev = self.config.include_dev
        return GraphType.ALL_DEPENDENCIES if include_dev else GraphType.DEPENDENCIES

    def current_package(self) -> Optional[Package]:
        """Return the package containing :attr:`cwd`, if any."""
        return find_current_package(self.packages, self.cwd)

    def require_current_package(self) -> Package:
        """Like :meth:`current_package`, but the package must exist.

        Raises:
            ValidationError: ``ENOTPKGDIR`` outside every package.
        """
        pkg = self.current_package()
        if pkg is None:
            raise ValidationError(
                "ENOTPKGDIR",
                "This command must be run from inside a package directory",
                cwd=str(self.cwd),
            )
        return pkg


#: Click decorator for injecting :class:`TarlinkContext` into commands.
pass_context = click.make_pass_decorator(TarlinkContext, ensure=True)
