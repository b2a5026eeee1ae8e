from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from tarlink.config import TarlinkConfig
from tarlink.models.package import Package
from tarlink.models.project import Project, find_current_package
from tarlink.exceptions import SpecifierError, ValidationError


def _write_config(root: Path, body: str) -> Path:
    path = root / "tarlink.toml"
    path.write_text(body, encoding="utf-8")
    return path


@pytest.mark.unit
class TestProjectLayout:
    """Tests for root discovery and build paths."""

    def test_root_is_config_directory(self, tmp_path: Path) -> None:
        _write_config(tmp_path, '[tarlink]\npackages = ["libs/*"]\n')
        nested = tmp_path / "libs" / "a" / "src"
        nested.mkdir(parents=True)

        project = Project(nested)

        assert project.root_path == tmp_path.resolve()
        assert project.package_globs == ["libs/*"]

    def test_defaults_without_config(self, tmp_path: Path) -> None:
        project = Project(tmp_path)

        assert project.root_path == tmp_path
        assert project.root_config_location == tmp_path / "tarlink.toml"
        assert project.package_globs == ["packages/*"]
        assert project.build_root == tmp_path / "build"

    def test_explicit_config_wins(self, tmp_path: Path) -> None:
        config = TarlinkConfig(build_root="out/../dist")

        project = Project(tmp_path, config=config)

        assert project.build_root == tmp_path / "dist"

    def test_build_file_for_scoped_package(self, tmp_path: Path, make_package) -> None:
        project = Project(tmp_path, config=TarlinkConfig())

        assert project.get_build_file("@acme/lib", "1.2.3") == (
            tmp_path / "build" / "@acme" / "lib" / "acme-lib-1.2.3.tgz"
        )
        assert project.get_build_dir(make_package("@acme/lib")) == (
            tmp_path / "build" / "@acme" / "lib"
        )


@pytest.mark.unit
class TestProjectPackages:
    """Tests for manifest discovery and loading."""

    def test_load_packages_in_directory_order(
        self, tmp_path: Path, write_manifest_file
    ) -> None:
        write_manifest_file("packages/zeta", {"name": "zeta", "version": "1.0.0"})
        write_manifest_file("packages/alpha", {"name": "alpha", "version": "2.0.0"})
        (tmp_path / "packages" / "empty").mkdir()

        packages = Project(tmp_path).load_packages()

        assert [pkg.name for pkg in packages] == ["alpha", "zeta"]
        assert all(pkg.root_path == tmp_path for pkg in packages)
        assert packages[0].location == tmp_path / "packages" / "alpha"

    def test_globstar_skips_node_modules(self, tmp_path: Path, write_manifest_file) -> None:
        write_manifest_file("libs/a", {"name": "a"})
        write_manifest_file("libs/group/b", {"name": "b"})
        write_manifest_file("libs/a/node_modules/dep", {"name": "dep"})
        config = TarlinkConfig(packages=["libs/**"])

        packages = Project(tmp_path, config=config).load_packages()

        assert sorted(pkg.name for pkg in packages) == ["a", "b"]

    def test_globstar_with_node_modules_pattern_is_rejected(self, tmp_path: Path) -> None:
        config = TarlinkConfig(packages=["packages/**", "node_modules/@acme/*"])

        with pytest.raises(ValidationError) as exc_info:
            Project(tmp_path, config=config).find_manifest_paths()

        assert exc_info.value.code == "EPKGCONFIG"

    def test_invalid_manifest_json(self, tmp_path: Path) -> None:
        broken = tmp_path / "packages" / "broken"
        broken.mkdir(parents=True)
        (broken / "package.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(ValidationError) as exc_info:
            Project(tmp_path).load_packages()

        assert exc_info.value.code == "EJSON"

    def test_invalid_package_name_propagates(self, tmp_path: Path, write_manifest_file) -> None:
        write_manifest_file("packages/a", {"name": ".hidden"})

        with pytest.raises(SpecifierError):
            Project(tmp_path).load_packages()

    @pytest.mark.asyncio
    async def test_get_packages_with_low_concurrency(
        self, tmp_path: Path, write_manifest_file
    ) -> None:
        for index in range(6):
            write_manifest_file(f"packages/p{index}", {"name": f"p{index}"})

        packages = await Project(tmp_path).get_packages(concurrency=2)

        assert [pkg.name for pkg in packages] == [f"p{i}" for i in range(6)]

    def test_load_packages_outside_event_loop(self, tmp_path: Path) -> None:
        project = Project(tmp_path)

        assert asyncio.run(project.get_packages()) == []
        assert project.load_packages() == []


@pytest.mark.unit
class TestFindCurrentPackage:
    """Tests for find_current_package."""

    def test_innermost_package_wins(self, tmp_path: Path) -> None:
        outer = Package({"name": "outer"}, tmp_path / "outer")
        inner = Package({"name": "inner"}, tmp_path / "outer" / "inner")

        found = find_current_package([outer, inner], tmp_path / "outer" / "inner" / "src")

        assert found is inner

    def test_parent_package_is_found_from_subdirectory(self, tmp_path: Path) -> None:
        pkg = Package({"name": "app"}, tmp_path / "app")

        assert find_current_package([pkg], tmp_path / "app" / "lib" / "deep") is pkg

    def test_outside_every_package(self, tmp_path: Path) -> None:
        pkg = Package({"name": "app"}, tmp_path / "app")

        assert find_current_package([pkg], tmp_path) is None

    def test_defaults_to_working_directory(self, tmp_path: Path, monkeypatch) -> None:
        pkg = Package({"name": "app"}, tmp_path / "app")
        (tmp_path / "app").mkdir()
        monkeypatch.chdir(tmp_path / "app")

        assert find_current_package([pkg]) is pkg
