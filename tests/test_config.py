"""Tests for configuration loading."""

from pathlib import Path

from typo3_upgrade_planner.config import DEFAULT_CONFIG_FILENAME, Config, load_config


class TestConfig:
    """Test configuration values."""

    def test_defaults(self):
        """Test defaults without a config file."""
        config = Config()

        assert config.upstream_url == "https://get.typo3.org/json"
        assert config.catalog_ttl_seconds == 24 * 3600
        assert config.http_timeout == 10.0
        assert config.max_retries == 2
        assert config.packagist_enabled
        assert not config.include_dev
        assert config.refresh_on_start
        assert config.get("planner.upgrade_method") == "console"
        assert config.get("planner.installation_mode") is None

    def test_dot_notation_default(self):
        """Test missing keys return the default."""
        config = Config()
        assert config.get("catalog.missing", "fallback") == "fallback"
        assert config.get("catalog.upstream_url.deeper") is None

    def test_file_overrides_defaults(self, tmp_path: Path):
        """Test values from TOML are merged into the defaults."""
        config_file = tmp_path / "planner.toml"
        config_file.write_text(
            "[catalog]\n"
            "refresh_ttl_hours = 1\n"
            "\n"
            "[packagist]\n"
            "enabled = false\n"
            "\n"
            "[planner]\n"
            "installation_mode = \"manual\"\n"
        )

        config = Config(config_file)

        assert config.catalog_ttl_seconds == 3600
        assert not config.packagist_enabled
        assert config.get("planner.installation_mode") == "manual"
        # Untouched keys of the same table survive
        assert config.upstream_url == "https://get.typo3.org/json"

    def test_invalid_toml_falls_back(self, tmp_path: Path):
        """Test broken files are ignored with a warning."""
        config_file = tmp_path / "broken.toml"
        config_file.write_text("[catalog\nrefresh_ttl_hours = ")

        config = Config(config_file)

        assert config.catalog_ttl_seconds == 24 * 3600

    def test_missing_file(self, tmp_path: Path):
        """Test a non-existent file means defaults."""
        config = Config(tmp_path / "missing.toml")
        assert config.max_retries == 2


class TestLoadConfig:
    """Test config file discovery."""

    def test_project_file_is_found(self, tmp_path: Path):
        """Test .t3upgrade.toml in the project root is used."""
        (tmp_path / DEFAULT_CONFIG_FILENAME).write_text("[http]\ntimeout = 3.5\n")

        config = load_config(project_root=tmp_path)

        assert config.config_file == tmp_path / DEFAULT_CONFIG_FILENAME
        assert config.http_timeout == 3.5

    def test_explicit_file_wins(self, tmp_path: Path):
        """Test an explicit file beats discovery."""
        (tmp_path / DEFAULT_CONFIG_FILENAME).write_text("[http]\ntimeout = 3.5\n")
        explicit = tmp_path / "other.toml"
        explicit.write_text("[http]\ntimeout = 7.0\n")

        assert load_config(project_root=tmp_path, config_file=explicit).http_timeout == 7.0

    def test_no_file(self, tmp_path: Path):
        """Test defaults when nothing is found."""
        config = load_config(project_root=tmp_path)

        assert config.config_file is None
        assert config.http_timeout == 10.0
