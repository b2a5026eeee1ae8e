"""
Filesystem utilities for tarlink.

Manifest reads are size-limited and JSON-decoded; manifest writes go through
a temporary file followed by an atomic replace, so an interrupted
``prepare`` never leaves a half-written ``package.json``. All filesystem
errors are normalized to :class:`FileOperationError`.
"""

from __future__ import annotations

import os
import json
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from tarlink.utils.logger import get_logger
from tarlink.exceptions import FileOperationError, ValidationError
from tarlink.constants import MANIFEST_FILE, MAX_FILE_SIZE

logger = get_logger("filesystem")

PathLike = Union[str, Path]


def _atomic_write(target: Path, content: str) -> None:
    """Atomically write text to a file using a temporary file + replace."""
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Optional[Path] = None

    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=str(target.parent),
            delete=False,
            prefix=f".{target.name}.",
            suffix=".tmp",
        ) as tmp:
            temp_path = Path(tmp.name)
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())

        temp_path.replace(target)

    except OSError as exc:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError as cleanup_exc:
                logger.warning(
                    "Failed to clean up temporary file %s: %s",
                    temp_path,
                    cleanup_exc,
                )

        raise FileOperationError(
            f"Atomic write failed: {exc}",
            file_path=str(target),
            operation="write",
            original_error=exc,
        ) from exc


def safe_read_file(
    file_path: PathLike,
    *,
    max_size: Optional[int] = MAX_FILE_SIZE,
    encoding: str = "utf-8",
) -> str:
    """Read a text file, refusing files larger than ``max_size`` bytes.

    Raises:
        FileOperationError: Missing file, oversized file or read failure.
    """
    path = Path(file_path)
    if not path.is_file():
        raise FileOperationError(
            f"File not found: {path}",
            file_path=str(path),
            operation="read",
        )

    size = path.stat().st_size
    if max_size is not None and size > max_size:
        raise FileOperationError(
            f"File too large: {size} bytes (max {max_size})",
            file_path=str(path),
            operation="read",
        )

    try:
        return path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as exc:
        raise FileOperationError(
            f"Failed to read file: {exc}",
            file_path=str(path),
            operation="read",
            original_error=exc,
        ) from exc


def read_manifest(file_path: PathLike) -> Dict[str, Any]:
    """Load a ``package.json`` file.

    Raises:
        FileOperationError: The file cannot be read.
        ValidationError: The file is not a JSON object (code ``EJSON``).
    """
    text = safe_read_file(file_path)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(
            "EJSON",
            f"Invalid JSON in {file_path}: {exc.msg} at line {exc.lineno}",
            path=str(file_path),
        ) from exc

    if not isinstance(data, dict):
        raise ValidationError(
            "EJSON",
            f"Manifest {file_path} must contain a JSON object",
            path=str(file_path),
        )
    return data


def write_manifest(file_path: PathLike, manifest: Dict[str, Any]) -> Path:
    """Write a manifest with two-space indentation and a trailing newline."""
    path = Path(file_path)
    content = json.dumps(manifest, indent=2, ensure_ascii=False) + "\n"
    _atomic_write(path, content)
    logger.debug("Wrote manifest %s", path)
    return path


def find_manifests(
    root: PathLike,
    patterns: Iterable[str],
    *,
    manifest_name: str = MANIFEST_FILE,
) -> List[Path]:
    """Find package manifests matched by directory globs under ``root``.

    Results are sorted per pattern and de-duplicated across patterns, so a
    package matched twice is only loaded once. Globstar patterns never
    descend into ``node_modules``.

    Args:
        root: Project root directory.
        patterns: Package directory globs such as ``packages/*``.
        manifest_name: Manifest file looked for in each matched directory.

    Returns:
        Absolute manifest paths.
    """
    base = Path(root)
    seen: Dict[Path, None] = {}

    for pattern in sorted(patterns):
        matches = sorted(base.glob(f"{pattern.rstrip('/')}/{manifest_name}"))
        for match in matches:
            if "**" in pattern and "node_modules" in match.relative_to(base).parts:
                continue
            seen.setdefault(Path(os.path.abspath(match)), None)

    return list(seen)
