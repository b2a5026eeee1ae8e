"""
Custom exception hierarchy for tarlink.

All exceptions inherit from :class:`TarlinkError` and carry optional
structured metadata via the ``details`` attribute. Graph and batching code
raises :class:`ValidationError` with a short ``code`` that callers branch
on; :class:`GraphInvariantError` signals an internal inconsistency rather
than bad input.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Optional


class TarlinkError(Exception):
    """Base exception for all tarlink errors.

    Args:
        message: Human-readable error message.
        details: Optional structured metadata describing the error.
    """

    __slots__ = ("message", "details")

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.message: str = message
        # Internally normalize to a mutable dict
        self.details: MutableMapping[str, Any] = dict(details) if details else {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        formatted = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({formatted})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, details={dict(self.details)!r})"
        )


def _add_if(details: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Add a key to ``details`` only if ``value`` is not ``None``."""
    if value is not None:
        details[key] = value


class ValidationError(TarlinkError):
    """Raised when packages, graphs or artifacts fail validation.

    Args:
        code: Short machine-readable code (``ENAME``, ``ECYCLE``, ...).
        message: Error description.
        **details: Additional structured metadata.
    """

    __slots__ = ("code",)

    def __init__(self, code: str, message: str, **details: Any) -> None:
        super().__init__(message, {k: v for k, v in details.items() if v is not None})
        self.code = code

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class GraphInvariantError(TarlinkError):
    """Raised when the package graph is in a state it should never reach.

    Not a :class:`ValidationError`: it points at a bug in graph
    construction or pruning, not at user input.

    Args:
        code: Short machine-readable code (``EUNRESOLVEDSPEC``, ``ERECURSION``).
        message: Error description.
    """

    __slots__ = ("code",)

    def __init__(self, code: str, message: str, **details: Any) -> None:
        super().__init__(message, {k: v for k, v in details.items() if v is not None})
        self.code = code

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class SpecifierError(TarlinkError):
    """Raised when a package name or dependency specifier cannot be parsed.

    Args:
        message: Error description.
        name: Dependency name being resolved.
        spec: Raw specifier string.
    """

    __slots__ = ("name", "spec")

    def __init__(
        self,
        message: str,
        *,
        name: Optional[str] = None,
        spec: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "name", name)
        _add_if(details, "spec", spec)

        super().__init__(message, details)

        self.name = name
        self.spec = spec


class ConfigError(TarlinkError):
    """Raised when a configuration file is missing, malformed or invalid.

    Args:
        message: Error description.
        config_path: Path to the configuration file involved.
        option: Offending option name, if any.
    """

    __slots__ = ("config_path", "option")

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", config_path)
        _add_if(details, "option", option)

        super().__init__(message, details)

        self.config_path = config_path
        self.option = option


class FileOperationError(TarlinkError):
    """Raised when file system operations fail.

    Args:
        message: Error description.
        file_path: Path to the file involved.
        operation: Operation being performed (read/write).
        original_error: Original exception that triggered this error.
    """

    __slots__ = ("file_path", "operation", "original_error")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", file_path)
        _add_if(details, "operation", operation)
        _add_if(
            details,
            "original_error",
            str(original_error) if original_error else None,
        )

        super().__init__(message, details)

        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error
