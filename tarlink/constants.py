"""
Centralized constants for tarlink.

This module defines immutable configuration values used across tarlink,
including manifest field names, artifact naming, discovery defaults and
logging formats. All values are intended to be treated as read-only.
"""

from typing import Final, Sequence

# ---------------------------------------------------------------------------
# Manifest layout
# ---------------------------------------------------------------------------

#: File name of a package manifest.
MANIFEST_FILE: Final[str] = "package.json"

#: Manifest key holding the override (authoritative version) dependencies.
OVERRIDE_DEPENDENCIES_KEY: Final[str] = "tarlinkDependencies"

#: Dependency collections in the order a declaration is looked up.
DEPENDENCY_COLLECTIONS: Final[Sequence[str]] = (
    "dependencies",
    "optionalDependencies",
    "devDependencies",
)

#: Prefix written in front of an override version by ``prepare``.
DEFAULT_SAVE_PREFIX: Final[str] = "^"

# ---------------------------------------------------------------------------
# Build artifacts
# ---------------------------------------------------------------------------

#: Extension of a packed build artifact.
ARTIFACT_EXTENSION: Final[str] = ".tgz"

#: File extensions recognised as local tarball specifiers.
TARBALL_EXTENSIONS: Final[Sequence[str]] = (".tgz", ".tar.gz", ".tar")

# ---------------------------------------------------------------------------
# Project discovery
# ---------------------------------------------------------------------------

#: Package globs used when the configuration does not list any.
DEFAULT_PACKAGE_GLOBS: Final[Sequence[str]] = ("packages/*",)

#: Build output directory, relative to the project root.
DEFAULT_BUILD_ROOT: Final[str] = "build"

#: Reject dependency cycles while batching unless configured otherwise.
DEFAULT_REJECT_CYCLES: Final[bool] = False

#: Include devDependencies in the graph unless configured otherwise.
DEFAULT_INCLUDE_DEV: Final[bool] = True

#: Maximum number of manifests read concurrently.
MANIFEST_READ_CONCURRENCY: Final[int] = 50

#: Maximum number of manifests written concurrently within a batch.
MANIFEST_WRITE_CONCURRENCY: Final[int] = 4

# ---------------------------------------------------------------------------
# Graph limits
# ---------------------------------------------------------------------------

#: Depth at which transitive resolution assumes the graph is corrupt.
MAX_TRANSITIVE_DEPTH: Final[int] = 100

# ---------------------------------------------------------------------------
# Security constraints
# ---------------------------------------------------------------------------

#: Maximum allowed file size (in bytes) when reading manifests.
MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024  # 10 MB

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
