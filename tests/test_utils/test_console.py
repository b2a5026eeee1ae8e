from __future__ import annotations

import io
from typing import Generator
from unittest.mock import MagicMock

import pytest
from rich.console import Console

import tarlink.utils.console as console_module
from tarlink.utils.console import (
    TARLINK_THEME,
    _get_console,
    get_raw_console,
    print_batches,
    print_error,
    print_success,
    print_table,
    print_tree,
    print_warning,
    reconfigure_console,
)


@pytest.fixture
def output(monkeypatch: pytest.MonkeyPatch) -> Generator[io.StringIO, None, None]:
    """Route the shared console into a wide, colorless buffer."""
    buffer = io.StringIO()
    console = Console(file=buffer, theme=TARLINK_THEME, no_color=True, width=200)
    monkeypatch.setattr(console_module, "_console", console)
    yield buffer


@pytest.mark.unit
class TestConsoleLifecycle:
    """Tests for the console singleton."""

    def test_singleton(self) -> None:
        reconfigure_console()

        assert _get_console() is _get_console()
        assert get_raw_console() is _get_console()

    def test_reconfigure_creates_new_console(self) -> None:
        first = _get_console()

        reconfigure_console()

        assert _get_console() is not first

    def test_no_color_env_disables_color(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "1")
        reconfigure_console()

        assert _get_console().no_color is True
        reconfigure_console()

    def test_color_follows_stdout_support(self, monkeypatch: pytest.MonkeyPatch) -> None:
        supports = MagicMock(return_value=True)
        monkeypatch.setattr(console_module, "stream_supports_color", supports)
        reconfigure_console()

        assert _get_console().no_color is False
        supports.assert_called_once_with(console_module.sys.stdout)
        reconfigure_console()


@pytest.mark.unit
class TestStatusMessages:
    """Tests for print_success, print_error and print_warning."""

    def test_prefixes(self, output: io.StringIO) -> None:
        print_success("done")
        print_error("failed")
        print_warning("careful")

        assert output.getvalue().splitlines() == [
            "[OK] done",
            "[ERROR] failed",
            "[WARNING] careful",
        ]

    def test_markup_is_not_interpreted(self, output: io.StringIO) -> None:
        print_error("bad [bold]spec[/bold]", prefix="!")

        assert output.getvalue() == "! bad [bold]spec[/bold]\n"


@pytest.mark.unit
class TestStructuredOutput:
    """Tests for print_table, print_tree and print_batches."""

    def test_table_rows_and_title(self, output: io.StringIO) -> None:
        print_table(
            [{"Package": "core", "Version": "1.0.0"}, {"Package": "util", "Version": "2.1.0"}],
            title="Local dependencies",
        )

        text = output.getvalue()
        assert "Local dependencies" in text
        assert "Package" in text and "Version" in text
        assert "core" in text and "2.1.0" in text

    def test_table_header_order(self, output: io.StringIO) -> None:
        print_table([{"a": 1, "b": 2}], columns=["b", "a"])

        header = next(line for line in output.getvalue().splitlines() if "a" in line)
        assert header.index("b") < header.index("a")

    def test_numeric_column_is_right_aligned(self, output: io.StringIO) -> None:
        print_table([{"n": 1, "name": "x"}, {"n": 100, "name": "y"}], numeric=("n",))

        row = next(line for line in output.getvalue().splitlines() if " x " in line)
        assert "   1 │ x" in row

    def test_empty_table_prints_nothing(self, output: io.StringIO) -> None:
        print_table([])

        assert output.getvalue() == ""

    def test_tree(self, output: io.StringIO) -> None:
        print_tree({"app": {"util": {"core": {}}}, "docs": {}})

        lines = output.getvalue().splitlines()
        assert lines[0] == "app"
        assert lines[1].endswith("util")
        assert lines[2].endswith("core")
        assert lines[3] == "docs"

    def test_batches(self, output: io.StringIO) -> None:
        print_batches([["core"], ["ui", "util"]])

        text = output.getvalue()
        assert "Build batches" in text
        assert "ui, util" in text
        assert "Batch" in text
