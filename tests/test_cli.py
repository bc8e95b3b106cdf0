"""Tests for CLI commands."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from typo3_upgrade_planner.analyzer import UpgradeAnalyzer
from typo3_upgrade_planner.cli import app


runner = CliRunner()


@pytest.fixture
def project_dir(tmp_path: Path, composer_files):
    """Composer project written to disk."""
    root = tmp_path / "site"
    for name, content in composer_files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


class TestCLIVersion:
    """Test version command."""

    def test_version_command(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "TYPO3 Upgrade Planner" in result.stdout


class TestCLIHelp:
    """Test help output."""

    def test_help_command(self):
        """Test --help flag."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "analyze" in result.stdout
        assert "plan" in result.stdout

    def test_plan_help(self):
        """Test plan --help."""
        result = runner.invoke(app, ["plan", "--help"])
        assert result.exit_code == 0
        assert "--mode" in result.stdout


class TestCLIPlan:
    """Test plan command."""

    def test_plan_json(self):
        """Test a multi-hop plan as JSON."""
        result = runner.invoke(app, ["plan", "10.4", "13.4", "--offline", "-f", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["plan"]["waypoints"] == ["10.4", "11.5", "12.4", "13.4"]
        assert len(data["plan"]["hops"]) == 3

    def test_plan_terminal(self):
        result = runner.invoke(app, ["plan", "12.4", "13.4", "--offline", "--no-color"])

        assert result.exit_code == 0
        assert "12.4 → 13.4" in result.stdout

    def test_manual_mode(self):
        """Test --mode switches to source package steps."""
        result = runner.invoke(app, ["plan", "12.4", "13.4", "--offline", "--mode", "manual", "-f", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["plan"]["installation_mode"] == "manual"

    def test_downgrade_rejected(self):
        """Test downgrades fail without --allow-downgrade."""
        result = runner.invoke(app, ["plan", "12.4", "11.5", "--offline"])

        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_downgrade_allowed(self):
        result = runner.invoke(app, ["plan", "12.4", "11.5", "--offline", "--allow-downgrade", "-f", "json"])

        assert result.exit_code == 0
        hops = json.loads(result.stdout)["plan"]["hops"]
        assert len(hops) == 1
        assert hops[0]["is_downgrade"]

    def test_markdown_to_file(self, tmp_path: Path):
        """Test writing the guide with --output."""
        output = tmp_path / "guide.md"
        result = runner.invoke(app, ["plan", "11.5", "12.4", "--offline", "-f", "markdown", "-o", str(output)])

        assert result.exit_code == 0
        assert output.read_text(encoding="utf-8").startswith("# TYPO3 Upgrade Guide: 11.5 → 12.4")


class TestCLIAnalyze:
    """Test analyze command."""

    def test_analyze_directory_markdown(self, project_dir: Path):
        """Test a project directory becomes an upgrade guide."""
        result = runner.invoke(app, ["analyze", str(project_dir), "--offline", "-f", "markdown"])

        assert result.exit_code == 0
        assert result.stdout.startswith("# TYPO3 Upgrade Guide: 12.4 → 13.4")
        assert "## System" in result.stdout

    def test_analyze_zip_json(self, make_zip, composer_files):
        """Test an archive with an explicit target."""
        archive = make_zip(composer_files, root="site-main/")
        result = runner.invoke(app, ["analyze", str(archive), "--offline", "--to", "13.4", "-f", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["system"]["platform_version"] == "12.4"
        assert data["plan"]["to"] == "13.4"

    def test_analyze_export(self, tmp_path: Path, export_document):
        """Test an export document."""
        export = tmp_path / "export.json"
        export.write_text(json.dumps(export_document))

        result = runner.invoke(app, ["analyze", str(export), "--offline", "--no-plan", "-f", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["system"]["platform_version"] == "11.5.30"
        assert "plan" not in data

    def test_markdown_needs_plan(self, project_dir: Path):
        result = runner.invoke(app, ["analyze", str(project_dir), "--offline", "--no-plan", "-f", "markdown"])
        assert result.exit_code == 1

    def test_missing_input(self, tmp_path: Path):
        """Test unreadable inputs end with an error."""
        result = runner.invoke(app, ["analyze", str(tmp_path / "missing.zip"), "--offline"])

        assert result.exit_code == 1
        assert "Error" in result.stdout


class TestCLIReleases:
    """Test releases command."""

    def test_releases_json(self):
        result = runner.invoke(app, ["releases", "--offline", "--lts", "--json"])

        assert result.exit_code == 0
        versions = [r["version"] for r in json.loads(result.stdout)["releases"]]
        assert versions[-2:] == ["12.4", "13.4"]

    def test_releases_table(self):
        result = runner.invoke(app, ["releases", "--offline", "--no-color"])

        assert result.exit_code == 0
        assert "13.4" in result.stdout


class TestCLICommand:
    """Test command command."""

    def test_extension_list(self):
        """Test packages given on the command line."""
        result = runner.invoke(app, ["command", "13.4", "--offline", "-e", "georgringer/news", "-e", "backend"])

        assert result.exit_code == 0
        assert result.stdout.splitlines()[0] == (
            'composer require typo3/cms-core:"^13.4" georgringer/news typo3/cms-backend -W'
        )

    def test_from_project(self, project_dir: Path):
        """Test extensions taken from a project."""
        result = runner.invoke(app, ["command", "13.4", "--offline", "--source", str(project_dir)])

        assert result.exit_code == 0
        assert "georgringer/news" in result.stdout
        assert "b13/container" in result.stdout


class TestCatalogRefreshOnStart:
    """Test the catalog.refresh_on_start setting."""

    @patch.object(UpgradeAnalyzer, "refresh_catalog")
    def test_refresh_by_default(self, mock_refresh):
        result = runner.invoke(app, ["plan", "11.5", "12.4", "--offline", "-f", "json"])

        assert result.exit_code == 0
        mock_refresh.assert_called_once()

    @patch.object(UpgradeAnalyzer, "refresh_catalog")
    def test_refresh_disabled(self, mock_refresh, tmp_path: Path):
        """Test the bundled table is used when refresh is switched off."""
        config_file = tmp_path / "config.toml"
        config_file.write_text("[catalog]\nrefresh_on_start = false\n")

        result = runner.invoke(app, ["plan", "11.5", "12.4", "-c", str(config_file), "-f", "json"])

        assert result.exit_code == 0
        mock_refresh.assert_not_called()
        assert json.loads(result.stdout)["plan"]["to"] == "12.4"
