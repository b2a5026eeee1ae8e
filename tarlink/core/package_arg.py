"""Dependency specifier resolution for tarlink.

Turns one declared dependency (``name`` plus the raw string found in a
manifest) into a structured :class:`PackageArg`. Supported shapes:

- registry versions, ranges and dist-tags (``1.2.3``, ``^1.2.0``, ``next``)
- git references, fixed (``git+https://host/repo.git#v1.0.0``) or ranged
  (``github:user/repo#semver:^1.0.0``)
- local directories (``file:../sibling``, ``../sibling``)
- local tarballs (``file:../build/pkg/pkg-1.0.0.tgz``)
- remote tarball URLs

``link:`` is accepted as an alias of ``file:``. When a build root is known
and the specifier is a local tarball under it, the file path is decomposed
into a :class:`BuildFile` following the ``<name>/<escaped-name>-<version>.tgz``
layout that :func:`get_pack_target` produces.

Typical usage::

    arg = resolve_package_arg("my-lib", "^1.2.0", "/repo/packages/app")
    arg.type          # SpecifierType.REGISTRY
    arg.fetch_spec    # "^1.2.0"
"""

from __future__ import annotations

import os
import re
from enum import Enum
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple, Union
from urllib.parse import quote

from tarlink.exceptions import SpecifierError
from tarlink.utils.logger import get_logger
from tarlink.utils.version_utils import parse_range, parse_version
from tarlink.constants import ARTIFACT_EXTENSION, TARBALL_EXTENSIONS

logger = get_logger("core.package_arg")

__all__ = [
    "BuildFile",
    "PackageArg",
    "SpecifierType",
    "escape_scoped",
    "from_pack_target",
    "get_pack_target",
    "is_subdir_path",
    "resolve_package_arg",
    "validate_package_name",
]

PathLike = Union[str, Path]

_NAME_PATTERN = re.compile(r"^(?:@([^/]+?)/)?([^/]+?)$")
_WINDOWS_DRIVE = re.compile(r"^[a-zA-Z]:[\\/]")
_HOSTED_SHORTCUTS = {
    "github": "https://github.com/{path}.git",
    "gitlab": "https://gitlab.com/{path}.git",
    "bitbucket": "https://bitbucket.org/{path}.git",
    "gist": "https://gist.github.com/{path}.git",
}
_GITHUB_SHORTHAND = re.compile(r"^[^@:/\s][^:/\s]*/[^/\s#]+(?:#.*)?$")
_GIT_PROTOCOLS = ("git+ssh://", "git+https://", "git+http://", "git+file://", "git://")
_SCP_LIKE = re.compile(r"^[\w.-]+@[\w.-]+:")


class SpecifierType(Enum):
    """Shape of a resolved dependency specifier."""

    REGISTRY = "registry"  # version, range or dist-tag
    GIT_COMMITTISH = "git-committish"
    GIT_RANGE = "git-range"
    DIRECTORY = "directory"
    FILE = "file"
    REMOTE = "remote"


@dataclass(frozen=True)
class BuildFile:
    """A packed artifact found under the project's build root.

    Attributes:
        name: Package name the artifact was built from (its directory).
        version: Version encoded in the artifact file name.
        build_path: Path relative to the build root (POSIX separators).
        basename: File name without the ``.tgz`` extension.
    """

    name: str
    version: str
    build_path: str
    basename: str


@dataclass
class PackageArg:
    """Structured form of one dependency declaration.

    Attributes:
        name: Dependency name.
        type: Specifier shape, see :class:`SpecifierType`.
        raw: ``name@spec`` as declared.
        raw_spec: Specifier after ``link:`` normalisation.
        fetch_spec: What would be fetched: a range, absolute path or URL.
        save_spec: Form written back to a manifest, for non-registry specs.
        git_committish: Fixed git reference (branch, tag or sha), if any.
        git_range: Semver range of a ``#semver:`` git reference, if any.
        scope: ``@scope`` of a scoped name, or ``None``.
        override: Secondary specifier from the override collection.
        artifact: Build artifact this specifier points at, if recognised.
    """

    name: str
    type: SpecifierType
    raw: str
    raw_spec: str
    fetch_spec: Optional[str] = None
    save_spec: Optional[str] = None
    git_committish: Optional[str] = None
    git_range: Optional[str] = None
    scope: Optional[str] = None
    override: Optional["PackageArg"] = None
    artifact: Optional[BuildFile] = None

    @property
    def registry(self) -> bool:
        """True for versions, ranges and dist-tags."""
        return self.type is SpecifierType.REGISTRY

    @property
    def is_local_path(self) -> bool:
        """True for local directory and tarball specifiers."""
        return self.type in (SpecifierType.DIRECTORY, SpecifierType.FILE)

    def points_at(self, location: PathLike) -> bool:
        """Return True if this local specifier resolves to ``location``."""
        if not self.is_local_path or not self.fetch_spec:
            return False
        return _normalize(self.fetch_spec) == _normalize(location)


# ---------------------------------------------------------------------------
# Names and artifact file names
# ---------------------------------------------------------------------------


def validate_package_name(name: str) -> Optional[str]:
    """Validate a package name and return its scope.

    Names valid for legacy packages are accepted, so uppercase letters and
    long names pass; anything that could not appear in a registry URL does
    not.

    Args:
        name: Candidate name, scoped (``@scope/pkg``) or not.

    Returns:
        The ``@scope`` part, or ``None`` for unscoped names.

    Raises:
        SpecifierError: The name is empty or malformed.
    """
    if not name or not name.strip():
        raise SpecifierError("Package name cannot be empty", name=name)

    problems: List[str] = []
    if name != name.strip():
        problems.append("name cannot contain leading or trailing spaces")
    if name.startswith(".") or name.startswith("_"):
        problems.append("name cannot start with a period or underscore")

    scope: Optional[str] = None
    match = _NAME_PATTERN.match(name)
    if not match:
        problems.append("name can contain at most one '/' after a scope")
    else:
        scope, bare = match.groups()
        for part in filter(None, (scope, bare)):
            if quote(part, safe="~'!()*") != part:
                problems.append(f"{part!r} contains URL-unsafe characters")

    if problems:
        raise SpecifierError(
            f"Invalid package name {name!r}: {'; '.join(problems)}",
            name=name,
        )
    return f"@{scope}" if scope else None


def escape_scoped(name: str) -> str:
    """Return the artifact-file form of a package name.

    Examples:
        >>> escape_scoped("@scope/pkg")
        'scope-pkg'
        >>> escape_scoped("pkg")
        'pkg'
    """
    if name.startswith("@"):
        return name[1:].replace("/", "-")
    return name


def get_pack_target(name: str, version: str) -> str:
    """Return the artifact file name for ``name`` at ``version``.

    Examples:
        >>> get_pack_target("@scope/pkg", "1.0.0")
        'scope-pkg-1.0.0.tgz'
    """
    return f"{escape_scoped(name)}-{version}{ARTIFACT_EXTENSION}"


def is_subdir_path(relative: str) -> bool:
    """Return True if a relative path stays inside its base directory."""
    if relative in ("", "."):
        return True
    if os.path.isabs(relative):
        return False
    first = PurePosixPath(relative.replace("\\", "/")).parts[0]
    return first != ".."


def from_pack_target(
    build_root: Optional[PathLike],
    arg: PackageArg,
) -> Optional[BuildFile]:
    """Recover the artifact behind a local tarball specifier.

    The tarball must live at ``<build_root>/<name>/<escaped-name>-<version>.tgz``.
    Anything else (no build root, not a tarball, outside the build root, or a
    file name that does not follow the convention) is simply untracked.

    Args:
        build_root: Absolute build output directory, or ``None``.
        arg: Resolved specifier.

    Returns:
        The :class:`BuildFile`, or ``None`` if the specifier is untracked.
    """
    if build_root is None or arg.type is not SpecifierType.FILE:
        return None
    if not arg.fetch_spec:
        return None

    relative = os.path.relpath(_normalize(arg.fetch_spec), _normalize(build_root))
    if not is_subdir_path(relative):
        return None

    build_path = PurePosixPath(relative.replace(os.sep, "/"))
    name = str(build_path.parent)
    if name in ("", "."):
        return None

    filename = build_path.name
    if not filename.endswith(ARTIFACT_EXTENSION):
        return None
    basename = filename[: -len(ARTIFACT_EXTENSION)]

    prefix = f"{escape_scoped(name)}-"
    if not basename.startswith(prefix) or len(basename) == len(prefix):
        logger.debug("%s does not follow the artifact naming convention", build_path)
        return None

    return BuildFile(
        name=name,
        version=basename[len(prefix):],
        build_path=str(build_path),
        basename=basename,
    )


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def resolve_package_arg(
    name: str,
    spec: Optional[str],
    where: PathLike,
    *,
    override_spec: Optional[str] = None,
    build_root: Optional[PathLike] = None,
) -> PackageArg:
    """Resolve one dependency declaration.

    Args:
        name: Dependency name.
        spec: Raw specifier from the manifest (``None`` or empty means ``*``).
        where: Directory relative paths are resolved against (the
            declaring package's location).
        override_spec: Specifier from the override collection, if declared.
        build_root: Build output directory used to recognise artifacts.

    Returns:
        The resolved :class:`PackageArg`.

    Raises:
        SpecifierError: Invalid name, tag or specifier syntax.
    """
    # Yarn's "link:" means what npm calls "file:"
    fixed = re.sub(r"^link:", "file:", (spec or "").strip())

    resolved = _resolve(name, fixed, where)

    if override_spec:
        resolved.override = _resolve(name, override_spec.strip(), where)

    artifact = from_pack_target(build_root, resolved)
    if artifact is not None:
        resolved.artifact = artifact

    return resolved


def _resolve(name: str, spec: str, where: PathLike) -> PackageArg:
    scope = validate_package_name(name)
    raw = f"{name}@{spec}" if spec else name

    if _is_file_spec(spec):
        return _from_file(name, spec, where, raw=raw, scope=scope)
    if _is_git_spec(spec):
        return _from_git(name, spec, raw=raw, scope=scope)
    if spec.startswith(("http://", "https://")):
        return PackageArg(
            name=name,
            type=SpecifierType.REMOTE,
            raw=raw,
            raw_spec=spec,
            fetch_spec=spec,
            save_spec=spec,
            scope=scope,
        )
    return _from_registry(name, spec, raw=raw, scope=scope)


def _is_file_spec(spec: str) -> bool:
    if spec.startswith("file:"):
        return True
    return spec.startswith((".", "/", "~/", "~\\", "\\")) or bool(
        _WINDOWS_DRIVE.match(spec)
    )


def _is_git_spec(spec: str) -> bool:
    if spec.startswith(_GIT_PROTOCOLS) or _SCP_LIKE.match(spec):
        return True
    if spec.split(":", 1)[0] in _HOSTED_SHORTCUTS and ":" in spec:
        return True
    if spec.startswith(("http://", "https://")):
        return spec.split("#", 1)[0].endswith(".git")
    return bool(_GITHUB_SHORTHAND.match(spec))


def _from_file(
    name: str,
    spec: str,
    where: PathLike,
    *,
    raw: str,
    scope: Optional[str],
) -> PackageArg:
    path_spec = spec[len("file:"):] if spec.startswith("file:") else spec
    if path_spec.startswith("//"):
        # file:///abs/path and file://host/path both mean a local path
        path_spec = "/" + path_spec.lstrip("/")

    if path_spec.startswith(("~/", "~\\")) or path_spec == "~":
        resolved = os.path.expanduser(path_spec)
    else:
        resolved = os.path.join(_normalize(where), path_spec)
    resolved = _normalize(resolved)

    is_tarball = resolved.lower().endswith(TARBALL_EXTENSIONS)
    relative = os.path.relpath(resolved, _normalize(where)).replace(os.sep, "/")

    return PackageArg(
        name=name,
        type=SpecifierType.FILE if is_tarball else SpecifierType.DIRECTORY,
        raw=raw,
        raw_spec=spec,
        fetch_spec=resolved,
        save_spec=f"file:{relative}",
        scope=scope,
    )


def _from_git(
    name: str,
    spec: str,
    *,
    raw: str,
    scope: Optional[str],
) -> PackageArg:
    url, _, fragment = spec.partition("#")

    shortcut, _, rest = url.partition(":")
    if shortcut in _HOSTED_SHORTCUTS and rest and not rest.startswith("//"):
        url = _HOSTED_SHORTCUTS[shortcut].format(path=rest)
    elif _GITHUB_SHORTHAND.match(spec) and "://" not in url and not _SCP_LIKE.match(url):
        url = _HOSTED_SHORTCUTS["github"].format(path=url)

    committish, git_range = _split_committish(fragment)
    return PackageArg(
        name=name,
        type=SpecifierType.GIT_RANGE if git_range else SpecifierType.GIT_COMMITTISH,
        raw=raw,
        raw_spec=spec,
        fetch_spec=url,
        save_spec=spec,
        git_committish=committish,
        git_range=git_range,
        scope=scope,
    )


def _split_committish(fragment: str) -> Tuple[Optional[str], Optional[str]]:
    if not fragment:
        return None, None
    if fragment.startswith("semver:"):
        return None, fragment[len("semver:"):] or "*"
    return fragment, None


def _from_registry(
    name: str,
    spec: str,
    *,
    raw: str,
    scope: Optional[str],
) -> PackageArg:
    fetch_spec = spec or "*"

    if parse_version(fetch_spec) is None and parse_range(fetch_spec) is None:
        # Anything that is neither a version nor a range must be a dist-tag
        if quote(fetch_spec, safe="-_.!~*'()") != fetch_spec:
            raise SpecifierError(
                f"Invalid tag name {fetch_spec!r}: tags may not have any "
                "characters that encodeURIComponent encodes",
                name=name,
                spec=spec,
            )

    return PackageArg(
        name=name,
        type=SpecifierType.REGISTRY,
        raw=raw,
        raw_spec=spec or "*",
        fetch_spec=fetch_spec,
        scope=scope,
    )


def _normalize(path: PathLike) -> str:
    return os.path.normpath(os.path.abspath(os.fspath(path)))
