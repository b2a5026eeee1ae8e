from __future__ import annotations

import json
from pathlib import Path

import pytest


@pytest.mark.integration
class TestBatchCommand:
    """Tests for ``tarlink batch``."""

    def test_json_plan(self, run_cli, monorepo: Path) -> None:
        result = run_cli("-C", str(monorepo), "batch", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output) == [["core"], ["util"], ["app"]]

    def test_production_drops_dev_edges(self, run_cli, monorepo: Path, write_manifest_file) -> None:
        write_manifest_file(
            "packages/app",
            {"name": "app", "version": "1.0.0", "devDependencies": {"core": "file:../core"}},
        )

        full = run_cli("-C", str(monorepo), "batch", "--json")
        production = run_cli("-C", str(monorepo), "batch", "--production", "--json")

        assert json.loads(full.output) == [["core"], ["app", "util"]]
        assert json.loads(production.output) == [["app", "core"], ["util"]]

    def test_table_output(self, run_cli, monorepo: Path) -> None:
        result = run_cli("-C", str(monorepo), "batch")

        assert result.exit_code == 0
        assert "Build batches" in result.output
        assert "core" in result.output and "app" in result.output

    def test_empty_project_warns(self, run_cli, tmp_path: Path) -> None:
        result = run_cli("-C", str(tmp_path), "batch")

        assert result.exit_code == 0
        assert "No packages found" in result.output

    def test_reject_cycles(self, run_cli, monorepo: Path, write_manifest_file) -> None:
        write_manifest_file(
            "packages/core",
            {"name": "core", "version": "1.0.0", "dependencies": {"app": "*"}},
        )

        allowed = run_cli("-C", str(monorepo), "batch", "--json")
        rejected = run_cli("-C", str(monorepo), "batch", "--reject-cycles")

        assert allowed.exit_code == 0
        assert "Dependency cycles detected" in allowed.output
        assert rejected.exit_code == 1
        assert "ECYCLE" in rejected.output

    def test_reject_cycles_from_config(self, run_cli, monorepo: Path, write_manifest_file) -> None:
        (monorepo / "tarlink.toml").write_text(
            '[tarlink]\npackages = ["packages/*"]\nreject_cycles = true\n', encoding="utf-8"
        )
        write_manifest_file(
            "packages/core",
            {"name": "core", "version": "1.0.0", "dependencies": {"app": "*"}},
        )

        assert run_cli("-C", str(monorepo), "batch").exit_code == 1
        assert run_cli("-C", str(monorepo), "batch", "--allow-cycles").exit_code == 0

    def test_tarball_links_keep_build_order(self, run_cli, prepared_monorepo: Path) -> None:
        result = run_cli("-C", str(prepared_monorepo), "batch", "--production", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output) == [["core"], ["util"], ["app"]]
