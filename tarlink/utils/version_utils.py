"""
Semantic version helpers for tarlink.

Thin adapter over :mod:`semantic_version`, whose :class:`NpmSpec` evaluates
ranges with npm semantics (``^1.2.0``, ``~1.2``, ``1.x``, ``>=1 <2``,
``a || b``). Comparisons here never raise on malformed input: an invalid
version or range simply does not satisfy, as in npm.

Prerelease versions are eligible for range matching, as with npm's
``includePrerelease`` option: the parsed range is evaluated comparator by
comparator against the full version, so ``1.2.0-alpha.1`` sorts below
``1.2.0`` and fails ``^1.2.0``. An upper bound ``<X.Y.Z`` excludes the
prereleases of ``X.Y.Z``, matching the ``<X.Y.Z-0`` bounds npm derives for
caret, tilde and x-ranges.
"""

from __future__ import annotations

import re
from typing import Optional

from semantic_version import NpmSpec, Version
from semantic_version.base import AllOf, AnyOf, Range

_COERCE_PATTERN = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def parse_version(value: Optional[str]) -> Optional[Version]:
    """Parse a strict semantic version, tolerating a leading ``v`` or ``=``.

    Args:
        value: Version string such as ``"1.2.3"`` or ``"v1.2.3-rc.1"``.

    Returns:
        Parsed :class:`Version`, or ``None`` if the string is not valid.
    """
    if not value:
        return None
    text = value.strip().lstrip("=v").strip()
    try:
        return Version(text)
    except ValueError:
        return None


def parse_range(value: Optional[str]) -> Optional[NpmSpec]:
    """Parse an npm range expression; empty means ``*``.

    Returns:
        Parsed :class:`NpmSpec`, or ``None`` if the expression is invalid.
    """
    text = (value or "").strip() or "*"
    try:
        return NpmSpec(text)
    except ValueError:
        return None


def satisfies(version: Optional[str], range_expr: Optional[str]) -> bool:
    """Return True if ``version`` satisfies the npm range ``range_expr``.

    Examples:
        >>> satisfies("1.4.0", "^1.2.0")
        True
        >>> satisfies("2.0.0", "^1.0.0")
        False
        >>> satisfies("1.3.0-beta.1", "^1.2.0")
        True
        >>> satisfies("1.2.0-alpha.1", "^1.2.0")
        False
    """
    parsed = parse_version(version)
    spec = parse_range(range_expr)
    if parsed is None or spec is None:
        return False

    return _clause_matches(spec.clause, parsed.truncate("prerelease"))


def _clause_matches(clause, version: Version) -> bool:
    if isinstance(clause, AnyOf):
        return any(_clause_matches(sub, version) for sub in clause.clauses)
    if isinstance(clause, AllOf):
        return all(_clause_matches(sub, version) for sub in clause.clauses)
    if isinstance(clause, Range):
        return _compare(clause.operator, clause.target.truncate("prerelease"), version)
    return clause.match(version)


def _compare(operator: str, target: Version, version: Version) -> bool:
    if operator == Range.OP_LT:
        if (
            version.prerelease
            and not target.prerelease
            and version.truncate() == target.truncate()
        ):
            return False
        return version < target
    if operator == Range.OP_LTE:
        return version <= target
    if operator == Range.OP_GT:
        return version > target
    if operator == Range.OP_GTE:
        return version >= target
    if operator == Range.OP_NEQ:
        return version != target
    return version == target


def versions_equal(left: Optional[str], right: Optional[str]) -> bool:
    """Return True if both strings have the same precedence (build ignored)."""
    a = parse_version(left)
    b = parse_version(right)
    if a is None or b is None:
        return False
    return a.truncate("prerelease") == b.truncate("prerelease")


def is_newer(candidate: Optional[str], current: Optional[str]) -> bool:
    """Return True if ``candidate`` has a higher precedence than ``current``.

    Unparseable input is never newer.
    """
    a = parse_version(candidate)
    b = parse_version(current)
    if a is None or b is None:
        return False
    return a.truncate("prerelease") > b.truncate("prerelease")


def coerce(value: Optional[str]) -> Optional[str]:
    """Extract a plain ``major.minor.patch`` version from loose text.

    Prerelease and build suffixes are dropped and missing parts default to
    zero, so ``"1.2.3-dirty+abc"`` becomes ``"1.2.3"`` and ``"v2"`` becomes
    ``"2.0.0"``.

    Returns:
        The coerced version string, or ``None`` if no digits are found.
    """
    if not value:
        return None
    match = _COERCE_PATTERN.search(value)
    if not match:
        return None
    major, minor, patch = (int(part or 0) for part in match.groups())
    return str(Version(major=major, minor=minor, patch=patch))


def prerelease_id(version: Optional[str]) -> Optional[str]:
    """Return the first prerelease component of ``version``.

    Examples:
        >>> prerelease_id("1.0.0-alpha.3")
        'alpha'
        >>> prerelease_id("1.0.0") is None
        True
    """
    parsed = parse_version(version)
    if parsed is None or not parsed.prerelease:
        return None
    return parsed.prerelease[0]
