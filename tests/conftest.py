from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Generator, Optional

import pytest
from click.testing import CliRunner, Result

import tarlink.utils.logger as logger_module
from tarlink.cli import cli
from tarlink.models.package import Package
from tarlink.utils.console import reconfigure_console

PackageFactory = Callable[..., Package]
ManifestWriter = Callable[..., Path]


@pytest.fixture(autouse=True)
def clean_logger_state() -> Generator[None, None, None]:
    """Undo any ``setup_logging`` call a test (or a CLI run) made.

    ``setup_logging`` turns off propagation, which would hide records from
    ``caplog`` in later tests.
    """
    yield
    root_logger = logging.getLogger(logger_module.ROOT_LOGGER_NAME)
    root_logger.handlers.clear()
    root_logger.setLevel(logging.NOTSET)
    root_logger.propagate = True
    logger_module._logging_configured = False
    reconfigure_console()


@pytest.fixture
def make_package(tmp_path: Path) -> PackageFactory:
    """Build in-memory packages under ``tmp_path/packages/<dir>``.

    Returns:
        Factory ``(name, version="1.0.0", *, dependencies=None, ...)``.
    """

    def _make(
        name: str,
        version: Optional[str] = "1.0.0",
        *,
        dependencies: Optional[Dict[str, str]] = None,
        dev_dependencies: Optional[Dict[str, str]] = None,
        optional_dependencies: Optional[Dict[str, str]] = None,
        overrides: Optional[Dict[str, str]] = None,
        directory: Optional[str] = None,
        **extra: Any,
    ) -> Package:
        manifest: Dict[str, Any] = {"name": name}
        if version is not None:
            manifest["version"] = version
        if dependencies is not None:
            manifest["dependencies"] = dependencies
        if dev_dependencies is not None:
            manifest["devDependencies"] = dev_dependencies
        if optional_dependencies is not None:
            manifest["optionalDependencies"] = optional_dependencies
        if overrides is not None:
            manifest["tarlinkDependencies"] = overrides
        manifest.update(extra)

        location = tmp_path / "packages" / (directory or name.replace("@", "").replace("/", "-"))
        return Package(manifest, location, tmp_path)

    return _make


@pytest.fixture
def write_manifest_file(tmp_path: Path) -> ManifestWriter:
    """Write ``package.json`` files below ``tmp_path``.

    Returns:
        Writer ``(relative_dir, manifest) -> manifest path``.
    """

    def _write(relative_dir: str, manifest: Dict[str, Any]) -> Path:
        directory = tmp_path / relative_dir
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / "package.json"
        path.write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def monorepo(tmp_path: Path, write_manifest_file: ManifestWriter) -> Path:
    """Three packages under ``packages/``: app -> util -> core.

    ``app`` links ``util`` at runtime and ``core`` for development, both
    through ``file:`` directory specifiers; ``util`` takes ``core`` by range.

    Returns:
        The project root.
    """
    (tmp_path / "tarlink.toml").write_text(
        '[tarlink]\npackages = ["packages/*"]\n', encoding="utf-8"
    )
    write_manifest_file("packages/core", {"name": "core", "version": "1.0.0"})
    write_manifest_file(
        "packages/util",
        {"name": "util", "version": "1.0.0", "dependencies": {"core": "^1.0.0"}},
    )
    write_manifest_file(
        "packages/app",
        {
            "name": "app",
            "version": "1.0.0",
            "dependencies": {"util": "file:../util"},
            "devDependencies": {"core": "file:../core"},
        },
    )
    return tmp_path


@pytest.fixture
def run_cli() -> Callable[..., Result]:
    """Invoke the ``tarlink`` group in-process.

    ``--color`` and ``--no-color`` edit ``NO_COLOR``; passing it through
    ``env`` makes the runner restore it afterwards.
    """
    runner = CliRunner()

    def _run(*args: str) -> Result:
        return runner.invoke(cli, list(args), env={"NO_COLOR": None, "TARLINK_CONFIG": None})

    return _run


@pytest.fixture
def pack_tarball(monorepo: Path) -> Callable[..., Path]:
    """Create empty stand-ins for ``npm pack`` output under ``build/``.

    Returns:
        Factory ``(name, version="1.0.0") -> tarball path``.
    """

    def _pack(name: str, version: str = "1.0.0") -> Path:
        tarball = monorepo / "build" / name / f"{name}-{version}.tgz"
        tarball.parent.mkdir(parents=True, exist_ok=True)
        tarball.write_bytes(b"")
        return tarball

    return _pack


@pytest.fixture
def prepared_monorepo(monorepo: Path, pack_tarball, run_cli) -> Path:
    """``monorepo`` after ``tarlink prepare`` in ``packages/app``.

    ``app`` then depends on ``file:../../build/util/util-1.0.0.tgz`` with
    the override ``^1.0.0``.
    """
    pack_tarball("util")
    result = run_cli("-C", str(monorepo / "packages" / "app"), "prepare")
    assert result.exit_code == 0, result.output
    return monorepo
