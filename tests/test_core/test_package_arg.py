from __future__ import annotations

import os
from pathlib import Path

import pytest

from tarlink.exceptions import SpecifierError
from tarlink.core.package_arg import (
    BuildFile,
    SpecifierType,
    escape_scoped,
    from_pack_target,
    get_pack_target,
    is_subdir_path,
    resolve_package_arg,
    validate_package_name,
)


@pytest.fixture
def where(tmp_path: Path) -> Path:
    """Directory of the declaring package."""
    location = tmp_path / "packages" / "app"
    location.mkdir(parents=True)
    return location


@pytest.mark.unit
class TestValidatePackageName:
    """Tests for validate_package_name."""

    def test_unscoped_name_has_no_scope(self) -> None:
        assert validate_package_name("left-pad") is None

    def test_scoped_name_returns_scope(self) -> None:
        assert validate_package_name("@acme/widgets") == "@acme"

    def test_legacy_uppercase_is_accepted(self) -> None:
        assert validate_package_name("JSONStream") is None

    @pytest.mark.parametrize(
        "name",
        ["", "   ", ".hidden", "_private", "a/b/c", "has space", " padded"],
        ids=["empty", "blank", "period", "underscore", "slashes", "space", "leading-space"],
    )
    def test_invalid_names_raise(self, name: str) -> None:
        with pytest.raises(SpecifierError):
            validate_package_name(name)


@pytest.mark.unit
class TestArtifactNames:
    """Tests for artifact file naming helpers."""

    def test_escape_scoped(self) -> None:
        assert escape_scoped("@scope/pkg") == "scope-pkg"
        assert escape_scoped("pkg") == "pkg"

    def test_get_pack_target(self) -> None:
        assert get_pack_target("@scope/pkg", "1.0.0") == "scope-pkg-1.0.0.tgz"
        assert get_pack_target("pkg", "2.1.0-beta.1") == "pkg-2.1.0-beta.1.tgz"

    @pytest.mark.parametrize(
        "relative,expected",
        [("", True), (".", True), ("a/b", True), ("../a", False), ("..", False)],
    )
    def test_is_subdir_path(self, relative: str, expected: bool) -> None:
        assert is_subdir_path(relative) is expected

    def test_absolute_path_is_not_subdir(self) -> None:
        assert is_subdir_path(os.path.abspath("elsewhere")) is False


@pytest.mark.unit
class TestResolveRegistry:
    """Registry versions, ranges and tags."""

    def test_range(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "^1.2.0", where)

        assert arg.type is SpecifierType.REGISTRY
        assert arg.registry is True
        assert arg.fetch_spec == "^1.2.0"
        assert arg.raw == "lib@^1.2.0"

    def test_empty_spec_means_any(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "", where)

        assert arg.fetch_spec == "*"
        assert arg.raw == "lib"

    def test_dist_tag(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "next", where)

        assert arg.type is SpecifierType.REGISTRY
        assert arg.fetch_spec == "next"

    def test_invalid_tag_raises(self, where: Path) -> None:
        with pytest.raises(SpecifierError) as exc_info:
            resolve_package_arg("lib", "not a tag", where)

        assert exc_info.value.spec == "not a tag"

    def test_scope_is_recorded(self, where: Path) -> None:
        assert resolve_package_arg("@acme/lib", "1.0.0", where).scope == "@acme"

    def test_invalid_dependency_name_raises(self, where: Path) -> None:
        with pytest.raises(SpecifierError):
            resolve_package_arg(".bad", "1.0.0", where)


@pytest.mark.unit
class TestResolveLocalPaths:
    """file:, link: and bare relative specifiers."""

    def test_file_directory(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "file:../lib", where)

        assert arg.type is SpecifierType.DIRECTORY
        assert arg.fetch_spec == str(where.parent / "lib")
        assert arg.save_spec == "file:../lib"
        assert arg.is_local_path is True

    def test_bare_relative_path(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "../lib", where)

        assert arg.type is SpecifierType.DIRECTORY
        assert arg.points_at(where.parent / "lib")

    def test_link_is_file_alias(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "link:../lib", where)

        assert arg.type is SpecifierType.DIRECTORY
        assert arg.raw_spec == "file:../lib"

    def test_tarball(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "file:../../build/lib/lib-1.0.0.tgz", where)

        assert arg.type is SpecifierType.FILE
        assert arg.fetch_spec.endswith(os.path.join("build", "lib", "lib-1.0.0.tgz"))

    def test_points_at_other_directory_is_false(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "file:../lib", where)

        assert arg.points_at(where.parent / "other") is False

    def test_registry_never_points_at_a_location(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "^1.0.0", where)

        assert arg.points_at(where.parent / "lib") is False


@pytest.mark.unit
class TestResolveGitAndRemote:
    """Git references and remote tarballs."""

    def test_hosted_shortcut_with_committish(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "github:acme/lib#1.0.0", where)

        assert arg.type is SpecifierType.GIT_COMMITTISH
        assert arg.git_committish == "1.0.0"
        assert arg.fetch_spec == "https://github.com/acme/lib.git"

    def test_shorthand_with_semver_range(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "acme/lib#semver:^1.0.0", where)

        assert arg.type is SpecifierType.GIT_RANGE
        assert arg.git_range == "^1.0.0"
        assert arg.git_committish is None

    def test_git_url_without_fragment(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "git+https://example.com/lib.git", where)

        assert arg.type is SpecifierType.GIT_COMMITTISH
        assert arg.git_committish is None

    def test_remote_tarball(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "https://example.com/lib-1.0.0.tgz", where)

        assert arg.type is SpecifierType.REMOTE
        assert arg.fetch_spec == "https://example.com/lib-1.0.0.tgz"


@pytest.mark.unit
class TestOverridesAndArtifacts:
    """Override specifiers and build artifact recognition."""

    def test_override_is_resolved(self, where: Path) -> None:
        arg = resolve_package_arg("lib", "file:../lib", where, override_spec="^1.0.0")

        assert arg.override is not None
        assert arg.override.type is SpecifierType.REGISTRY
        assert arg.override.fetch_spec == "^1.0.0"

    @pytest.mark.parametrize("name", ["lib", "@acme/lib"], ids=["unscoped", "scoped"])
    def test_artifact_round_trip(self, tmp_path: Path, where: Path, name: str) -> None:
        build_root = tmp_path / "build"
        target = get_pack_target(name, "1.2.3")
        tarball = build_root / name / target

        arg = resolve_package_arg(name, f"file:{tarball}", where, build_root=build_root)

        assert arg.artifact == BuildFile(
            name=name,
            version="1.2.3",
            build_path=f"{name}/{target}",
            basename=target[: -len(".tgz")],
        )

    def test_prerelease_artifact_version(self, tmp_path: Path, where: Path) -> None:
        tarball = tmp_path / "build" / "lib" / "lib-2.0.0-rc.1.tgz"

        arg = resolve_package_arg(
            "lib", f"file:{tarball}", where, build_root=tmp_path / "build"
        )

        assert arg.artifact is not None
        assert arg.artifact.version == "2.0.0-rc.1"

    def test_no_build_root_means_no_artifact(self, tmp_path: Path, where: Path) -> None:
        tarball = tmp_path / "build" / "lib" / "lib-1.0.0.tgz"

        assert resolve_package_arg("lib", f"file:{tarball}", where).artifact is None

    def test_outside_build_root_is_untracked(self, tmp_path: Path, where: Path) -> None:
        tarball = tmp_path / "elsewhere" / "lib" / "lib-1.0.0.tgz"

        arg = resolve_package_arg(
            "lib", f"file:{tarball}", where, build_root=tmp_path / "build"
        )

        assert arg.artifact is None

    @pytest.mark.parametrize(
        "relative",
        ["lib/other-1.0.0.tgz", "lib-1.0.0.tgz", "lib/lib-.tgz"],
        ids=["wrong-name", "top-level", "no-version"],
    )
    def test_unconventional_file_names_are_untracked(
        self, tmp_path: Path, where: Path, relative: str
    ) -> None:
        tarball = tmp_path / "build" / relative

        arg = resolve_package_arg(
            "lib", f"file:{tarball}", where, build_root=tmp_path / "build"
        )

        assert arg.artifact is None

    def test_directory_spec_is_never_an_artifact(self, tmp_path: Path, where: Path) -> None:
        arg = resolve_package_arg(
            "lib", "file:../lib", where, build_root=tmp_path / "packages"
        )

        assert from_pack_target(tmp_path / "packages", arg) is None
        assert arg.artifact is None
