"""
Rich-based terminal output for tarlink commands.

Commands report to the user through this module: one-line status messages,
dependency tables, link trees and batch plans. Diagnostics belong in
:mod:`tarlink.utils.logger` instead; nothing here writes log records.

All helpers share one lazily created :class:`~rich.console.Console` that
writes to whatever ``sys.stdout`` is at print time, so output captured by a
test runner or redirected by the shell is picked up without extra wiring.
"""

from __future__ import annotations

import sys
import threading
from typing import Any, Mapping, Optional, Sequence

from rich.tree import Tree
from rich.table import Table
from rich.theme import Theme
from rich.console import Console

from tarlink.utils.logger import stream_supports_color

TARLINK_THEME = Theme(
    {
        "success": "bold green",
        "error": "bold red",
        "warning": "bold yellow",
        "info": "bold cyan",
        "dim": "dim",
        "package": "cyan",
        "version": "yellow",
        "local": "green",
    }
)

#: Nested ``label -> children`` mapping rendered by :func:`print_tree`.
TreeData = Mapping[str, "TreeData"]

_STATUS_PREFIXES = {
    "success": "[OK]",
    "error": "[ERROR]",
    "warning": "[WARNING]",
}

_console: Optional[Console] = None
_console_lock = threading.Lock()


def _get_console() -> Console:
    """Create the shared console on first use."""
    global _console

    if _console is None:
        with _console_lock:
            if _console is None:
                _console = Console(
                    theme=TARLINK_THEME,
                    no_color=not stream_supports_color(sys.stdout),
                    highlight=False,
                )
    return _console


def reconfigure_console() -> None:
    """Drop the shared console so the next print re-reads NO_COLOR."""
    global _console
    with _console_lock:
        _console = None


def get_raw_console() -> Console:
    """Return the shared console for output the helpers do not cover."""
    return _get_console()


# ---------------------------------------------------------------------------
# Status lines
# ---------------------------------------------------------------------------


def _print_status(style: str, message: str, prefix: Optional[str]) -> None:
    label = _STATUS_PREFIXES[style] if prefix is None else prefix
    # paths and specifiers may contain brackets
    _get_console().print(f"{label} {message}", style=style, markup=False)


def print_success(message: str, *, prefix: Optional[str] = None) -> None:
    """Print a finished action, e.g. ``[OK] Nothing to do!``."""
    _print_status("success", message, prefix)


def print_error(message: str, *, prefix: Optional[str] = None) -> None:
    _print_status("error", message, prefix)


def print_warning(message: str, *, prefix: Optional[str] = None) -> None:
    _print_status("warning", message, prefix)


# ---------------------------------------------------------------------------
# Tables, trees and plans
# ---------------------------------------------------------------------------


def print_table(
    rows: Sequence[Mapping[str, Any]],
    *,
    columns: Optional[Sequence[str]] = None,
    title: Optional[str] = None,
    styles: Optional[Mapping[str, str]] = None,
    numeric: Sequence[str] = (),
) -> None:
    """Render rows as a table with one column per key.

    Args:
        rows: Row mappings; a missing key renders as an empty cell.
        columns: Column order. Defaults to the keys of the first row.
        title: Caption above the table.
        styles: Rich style name per column.
        numeric: Columns that are right-aligned and never wrapped.
    """
    if not rows:
        return

    names = list(columns) if columns is not None else list(rows[0])
    styles = styles or {}

    table = Table(title=title, header_style="bold")
    for name in names:
        is_numeric = name in numeric
        table.add_column(
            name,
            style=styles.get(name),
            justify="right" if is_numeric else "left",
            no_wrap=is_numeric,
            overflow="fold",
        )

    for row in rows:
        table.add_row(*(str(row.get(name, "")) for name in names))

    _get_console().print(table)


def _add_branches(parent: Tree, children: TreeData) -> None:
    for label, grandchildren in children.items():
        _add_branches(parent.add(label), grandchildren)


def print_tree(data: TreeData) -> None:
    """Print each top-level entry of ``data`` as its own tree.

    Labels may contain Rich markup.
    """
    console = _get_console()
    for label, children in data.items():
        tree = Tree(label, guide_style="dim")
        _add_branches(tree, children)
        console.print(tree)


def print_batches(batches: Sequence[Sequence[str]], *, title: str = "Build batches") -> None:
    """Render a batch plan: one row per batch, names comma separated."""
    print_table(
        [
            {"Batch": index, "Packages": ", ".join(names)}
            for index, names in enumerate(batches, start=1)
        ],
        columns=["Batch", "Packages"],
        title=title,
        styles={"Packages": "package"},
        numeric=("Batch",),
    )
