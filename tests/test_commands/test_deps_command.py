from __future__ import annotations

import json
from pathlib import Path

import pytest


@pytest.mark.integration
class TestDepsCommand:
    """Tests for ``tarlink deps``."""

    def test_named_package_json(self, run_cli, monorepo: Path) -> None:
        result = run_cli("-C", str(monorepo), "deps", "app", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output) == {"util": "1.0.0", "core": "1.0.0"}

    def test_current_package_is_default(self, run_cli, monorepo: Path) -> None:
        result = run_cli("-C", str(monorepo / "packages" / "util"), "deps", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output) == {"core": "1.0.0"}

    def test_production_skips_dev_links(self, run_cli, monorepo: Path, write_manifest_file) -> None:
        write_manifest_file(
            "packages/app",
            {"name": "app", "version": "1.0.0", "devDependencies": {"core": "file:../core"}},
        )

        result = run_cli("-C", str(monorepo), "deps", "app", "--production", "--json")

        assert json.loads(result.output) == {}

    def test_table_output(self, run_cli, monorepo: Path) -> None:
        result = run_cli("-C", str(monorepo), "deps", "app")

        assert result.exit_code == 0
        assert "Local dependencies of app" in result.output
        assert "packages/util" in result.output

    def test_leaf_package_warns(self, run_cli, monorepo: Path) -> None:
        result = run_cli("-C", str(monorepo), "deps", "core")

        assert result.exit_code == 0
        assert "core has no local dependencies" in result.output

    def test_unknown_package(self, run_cli, monorepo: Path) -> None:
        result = run_cli("-C", str(monorepo), "deps", "nope")

        assert result.exit_code == 2
        assert "no package named 'nope'" in result.output

    def test_outside_package_without_name(self, run_cli, monorepo: Path) -> None:
        result = run_cli("-C", str(monorepo), "deps")

        assert result.exit_code == 1
        assert "ENOTPKGDIR" in result.output

    def test_follows_tarball_links(self, run_cli, prepared_monorepo: Path) -> None:
        result = run_cli("-C", str(prepared_monorepo), "deps", "app", "--production", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output) == {"util": "1.0.0", "core": "1.0.0"}
