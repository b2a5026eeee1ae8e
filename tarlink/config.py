"""Configuration file loader for tarlink.

Handles discovery, loading, parsing, and validation of configuration files.
Supports two formats:

- ``tarlink.toml``: settings under the ``[tarlink]`` table
- ``pyproject.toml``: settings under the ``[tool.tarlink]`` table

Discovery order:

1. Explicit path from ``--config`` or ``TARLINK_CONFIG``
2. ``tarlink.toml`` in the start directory or the nearest parent having one
3. ``pyproject.toml`` with a ``[tool.tarlink]`` section, searched the same way

The directory holding the configuration file is the project root.
Configuration precedence: defaults < config file < CLI args.

Example (``tarlink.toml``)::

    [tarlink]
    packages = ["packages/*", "tools/*"]
    build_root = "dist"
    reject_cycles = true
"""

from __future__ import annotations

import tomli as tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from tarlink.exceptions import ConfigError
from tarlink.utils.logger import get_logger
from tarlink.constants import (
    DEFAULT_BUILD_ROOT,
    DEFAULT_INCLUDE_DEV,
    DEFAULT_PACKAGE_GLOBS,
    DEFAULT_REJECT_CYCLES,
)

logger = get_logger("config")

CONFIG_FILE = "tarlink.toml"
FALLBACK_CONFIG_FILE = "pyproject.toml"


@dataclass
class TarlinkConfig:
    """Parsed and validated tarlink configuration.

    All fields have defaults, so empty config files are valid.

    Attributes:
        packages: Globs of package directories, relative to the project root.
        build_root: Directory receiving packed artifacts, relative to the
            project root.
        reject_cycles: Fail instead of warning when batching finds cycles.
        include_dev: Whether graphs include devDependencies by default.
        source_path: Path to the loaded config file, or ``None``.
    """

    packages: List[str] = field(default_factory=lambda: list(DEFAULT_PACKAGE_GLOBS))
    build_root: str = DEFAULT_BUILD_ROOT
    reject_cycles: bool = DEFAULT_REJECT_CYCLES
    include_dev: bool = DEFAULT_INCLUDE_DEV

    # Metadata (not a user-facing option)
    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as a dictionary for debug logging."""
        return {
            "packages": list(self.packages),
            "build_root": self.build_root,
            "reject_cycles": self.reject_cycles,
            "include_dev": self.include_dev,
        }


def discover_config_file(
    explicit_path: Optional[Path] = None,
    *,
    start: Optional[Path] = None,
) -> Optional[Path]:
    """Find the configuration file to load.

    Args:
        explicit_path: Explicit config path. If provided, must exist.
        start: Directory to start searching from; defaults to the cwd.

    Returns:
        Resolved path to the config file, or ``None`` if none is found.

    Raises:
        ConfigError: Explicit path provided but does not exist.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        candidate = directory / CONFIG_FILE
        if candidate.is_file():
            logger.debug("Found %s: %s", CONFIG_FILE, candidate)
            return candidate

        pyproject = directory / FALLBACK_CONFIG_FILE
        if pyproject.is_file() and _pyproject_has_tarlink_section(pyproject):
            logger.debug("Found [tool.tarlink] in %s", pyproject)
            return pyproject

    logger.debug("No configuration file found above %s", origin)
    return None


def _pyproject_has_tarlink_section(path: Path) -> bool:
    """Return True if ``path`` parses and contains ``[tool.tarlink]``.

    An unreadable pyproject.toml is not ours to report; it is skipped.
    """
    try:
        raw = _read_toml(path)
    except ConfigError:
        return False
    return "tarlink" in raw.get("tool", {})


def load_config(
    config_path: Optional[Path] = None,
    *,
    start: Optional[Path] = None,
) -> TarlinkConfig:
    """Load and validate tarlink configuration.

    Args:
        config_path: Explicit path to a config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).
        start: Directory auto-discovery starts from.

    Returns:
        Validated :class:`TarlinkConfig` with values from file or defaults.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path, start=start)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        return TarlinkConfig()

    logger.info("Loading configuration from %s", resolved)
    raw = _read_toml(resolved)

    if resolved.name == FALLBACK_CONFIG_FILE:
        section = raw.get("tool", {}).get("tarlink", {})
    else:
        section = raw.get("tarlink", {})

    if not section:
        logger.debug("Config file found but no tarlink section; using defaults")
        return TarlinkConfig(source_path=resolved)

    config = _parse_section(section, config_path=str(resolved))
    config.source_path = resolved

    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or is not valid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> TarlinkConfig:
    """Validate a ``[tarlink]`` / ``[tool.tarlink]`` table.

    Raises:
        ConfigError: Unknown keys or values of the wrong type.
    """
    config = TarlinkConfig()

    known = {"packages", "build_root", "reject_cycles", "include_dev"}
    unknown = set(section.keys()) - known
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            config_path=config_path,
        )

    if "packages" in section:
        val = section["packages"]
        if not isinstance(val, list) or not all(isinstance(v, str) for v in val):
            raise ConfigError(
                "packages must be a list of strings",
                config_path=config_path,
                option="packages",
            )
        if not val:
            raise ConfigError(
                "packages must list at least one glob",
                config_path=config_path,
                option="packages",
            )
        config.packages = list(val)

    if "build_root" in section:
        val = section["build_root"]
        if not isinstance(val, str) or not val.strip():
            raise ConfigError(
                "build_root must be a non-empty string",
                config_path=config_path,
                option="build_root",
            )
        config.build_root = val

    for option in ("reject_cycles", "include_dev"):
        if option in section:
            val = section[option]
            if not isinstance(val, bool):
                raise ConfigError(
                    f"{option} must be a boolean, got {type(val).__name__}",
                    config_path=config_path,
                    option=option,
                )
            setattr(config, option, val)

    return config
