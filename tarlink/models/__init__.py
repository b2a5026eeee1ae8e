"""
Data model exports for tarlink.

Example:
    >>> from tarlink.models import Package, Project
"""

from __future__ import annotations

from tarlink.models.package import Package
from tarlink.models.project import Project, find_current_package

__all__ = [
    "Package",
    "Project",
    "find_current_package",
]
