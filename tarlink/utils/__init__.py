"""
Shared helpers: manifest I/O, npm semver checks, logging and terminal output.

Commands import from here rather than from the individual modules.
"""

from __future__ import annotations

from tarlink.utils.console import (
    get_raw_console,
    print_batches,
    print_error,
    print_success,
    print_table,
    print_tree,
    print_warning,
    reconfigure_console,
)
from tarlink.utils.filesystem import (
    find_manifests,
    read_manifest,
    safe_read_file,
    write_manifest,
)
from tarlink.utils.logger import (
    get_logger,
    is_logging_configured,
    level_for_verbosity,
    setup_logging,
)
from tarlink.utils.version_utils import coerce, is_newer, satisfies, versions_equal

__all__ = [
    "coerce",
    "find_manifests",
    "get_logger",
    "get_raw_console",
    "is_logging_configured",
    "is_newer",
    "level_for_verbosity",
    "print_batches",
    "print_error",
    "print_success",
    "print_table",
    "print_tree",
    "print_warning",
    "read_manifest",
    "reconfigure_console",
    "safe_read_file",
    "satisfies",
    "setup_logging",
    "versions_equal",
    "write_manifest",
]
