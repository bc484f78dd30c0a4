"""
Tests for CLI commands — resolve, query, profile show, and global options.
"""

import json
from pathlib import Path

from click.testing import CliRunner

from src.main import EXIT_CONFLICT, EXIT_ERROR, EXIT_OK, cli


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Provisioning planner" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestResolveCommand:
    """Tests for the resolve command."""

    def test_install_into_empty_profile(self, catalog_yml: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["resolve", "--catalog", str(catalog_yml), "--install", "sdk"])
        assert result.exit_code == EXIT_OK
        assert "+ sdk.part@1.0.0" in result.output
        assert "+ sdk@1.0.0" in result.output
        assert result.output.index("+ sdk.part@1.0.0") < result.output.index("+ sdk@1.0.0")

    def test_partial_conflict_exit_code(self, catalog_yml: Path, sdk_profile_json: Path):
        runner = CliRunner()
        result = runner.invoke(cli, [
            "resolve", "--catalog", str(catalog_yml), "--profile", str(sdk_profile_json),
            "--install", "cdt", "--install", "emf",
        ])
        assert result.exit_code == EXIT_CONFLICT
        assert "partial_conflict" in result.output
        assert "missing_capability" in result.output
        assert "org.missing.cdt" in result.output  # warning

    def test_json_output(self, catalog_yml: Path, sdk_profile_json: Path):
        runner = CliRunner()
        result = runner.invoke(cli, [
            "--quiet", "resolve", "--catalog", str(catalog_yml), "--profile", str(sdk_profile_json),
            "--remove", "sdk.part", "--json",
        ])
        assert result.exit_code == EXIT_CONFLICT
        data = json.loads(result.stdout)
        assert data["status"] == "unsatisfiable"
        roots = data["plan"]["request_status"]["roots"]
        assert roots[0]["reason"]["kind"] == "explicit_removal"
        assert data["applied"] is False

    def test_apply_saves_profile(self, catalog_yml: Path, sdk_profile_json: Path):
        runner = CliRunner()
        result = runner.invoke(cli, [
            "resolve", "--catalog", str(catalog_yml), "--profile", str(sdk_profile_json),
            "--install", "cdt", "--apply",
        ])
        assert result.exit_code == EXIT_OK

        saved = json.loads(sdk_profile_json.read_text())
        assert "cdt@1.0.0" in saved["roots"]
        assert "sdk@1.0.0" in saved["roots"]

    def test_request_file_and_properties(self, catalog_yml: Path, tmp_path: Path):
        request = tmp_path / "request.yml"
        request.write_text("install: [gtk.native]\n")
        runner = CliRunner()

        blocked = runner.invoke(cli, [
            "resolve", "--catalog", str(catalog_yml), "--request", str(request), "--set", "ws=cocoa",
        ])
        allowed = runner.invoke(cli, [
            "resolve", "--catalog", str(catalog_yml), "--request", str(request), "--set", "ws=gtk",
        ])

        assert blocked.exit_code == EXIT_CONFLICT
        assert "filter_mismatch" in blocked.output
        assert allowed.exit_code == EXIT_OK
        assert "ws = gtk" in allowed.output

    def test_unknown_component_is_malformed(self, catalog_yml: Path):
        runner = CliRunner()
        result = runner.invoke(cli, [
            "--quiet", "resolve", "--catalog", str(catalog_yml), "--install", "ghost", "--json",
        ])
        assert result.exit_code == EXIT_ERROR
        assert json.loads(result.stdout)["status"] == "malformed_request"

    def test_missing_catalog(self, tmp_path: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["resolve", "--catalog", str(tmp_path / "nope.yml")])
        assert result.exit_code == EXIT_ERROR
        assert "not found" in result.output

    def test_bad_assignment(self, catalog_yml: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["resolve", "--catalog", str(catalog_yml), "--set", "novalue"])
        assert result.exit_code == 2
        assert "KEY=VALUE" in result.output

    def test_settings_file(self, catalog_yml: Path, tmp_path: Path):
        settings = tmp_path / "planner.yml"
        settings.write_text("objective: [parsimony]\n")
        runner = CliRunner()
        result = runner.invoke(cli, [
            "--quiet", "--config", str(settings),
            "resolve", "--catalog", str(catalog_yml), "--install", "sdk", "--json",
        ])
        # never installing anything now beats satisfying the root
        assert result.exit_code == EXIT_CONFLICT
        assert json.loads(result.stdout)["plan"]["operands"] == []


class TestQueryCommand:
    def test_lists_highest_first(self, catalog_yml: Path):
        runner = CliRunner()
        result = runner.invoke(cli, [
            "query", "--catalog", str(catalog_yml), "component.identity", "sdk.part",
        ])
        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert lines == ["sdk.part@2.0.0", "sdk.part@1.0.0"]

    def test_range_json(self, catalog_yml: Path):
        runner = CliRunner()
        result = runner.invoke(cli, [
            "query", "--catalog", str(catalog_yml), "component.identity", "sdk.part",
            "--range", "[1.0.0,2.0.0)", "--json",
        ])
        data = json.loads(result.stdout)
        assert [c["version"] for c in data["components"]] == ["1.0.0"]

    def test_invalid_range(self, catalog_yml: Path):
        runner = CliRunner()
        result = runner.invoke(cli, [
            "query", "--catalog", str(catalog_yml), "component.identity", "sdk", "--range", "[1.0",
        ])
        assert result.exit_code == 1

    def test_no_match(self, catalog_yml: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["query", "--catalog", str(catalog_yml), "java.package", "org.none"])
        assert result.exit_code == 0
        assert "No component provides" in result.output


class TestProfileCommand:
    def test_show(self, sdk_profile_json: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["profile", "show", "--profile", str(sdk_profile_json)])
        assert result.exit_code == 0
        assert "sdk@1.0.0 (root)" in result.output
        assert "sdk.part@1.0.0" in result.output

    def test_show_json(self, sdk_profile_json: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["profile", "show", "--profile", str(sdk_profile_json), "--json"])
        data = json.loads(result.stdout)
        assert data["roots"] == ["sdk@1.0.0"]
