"""Configuration management for the TYPO3 Upgrade Planner."""

import logging
from pathlib import Path
from typing import Any

import toml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".t3upgrade.toml"


class Config:
    """Application configuration."""

    def __init__(self, config_file: Path | None = None) -> None:
        """Initialize configuration.

        Args:
            config_file: Optional path to configuration file
        """
        self.config_file = config_file
        self._config: dict[str, Any] = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from file or defaults."""
        config: dict[str, Any] = self._get_defaults()

        if self.config_file and self.config_file.exists():
            try:
                file_config = toml.load(self.config_file)
                _deep_update(config, file_config)
                logger.debug(f"Loaded config from {self.config_file}")
            except toml.TomlDecodeError as e:
                logger.warning(f"Invalid TOML in config file {self.config_file}: {e}")
            except OSError as e:
                logger.warning(f"Error loading config file {self.config_file}: {e}")

        return config

    @staticmethod
    def _get_defaults() -> dict[str, Any]:
        """Get default configuration values."""
        return {
            "catalog": {
                "upstream_url": "https://get.typo3.org/json",
                "refresh_ttl_hours": 24,
                "include_dev": False,
                "refresh_on_start": True,
            },
            "http": {
                "timeout": 10.0,
                "max_retries": 2,
                "base_delay": 0.5,
            },
            "packagist": {
                "enabled": True,
                "base_url": "https://packagist.org",
                "ttl_hours": 24,
            },
            "planner": {
                "allow_downgrade": False,
                "installation_mode": None,  # detected from the project
                "upgrade_method": "console",
            },
            "output": {
                "color": True,
            },
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g., "catalog.upstream_url")
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value: Any = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    @property
    def upstream_url(self) -> str:
        """Get upstream release catalog URL."""
        return str(self.get("catalog.upstream_url", "https://get.typo3.org/json"))

    @property
    def catalog_ttl_seconds(self) -> float:
        """Get catalog refresh interval in seconds."""
        return float(self.get("catalog.refresh_ttl_hours", 24)) * 3600

    @property
    def include_dev(self) -> bool:
        """Check if development releases are kept in the catalog."""
        return bool(self.get("catalog.include_dev", False))

    @property
    def refresh_on_start(self) -> bool:
        """Check if commands refresh the release catalog before planning."""
        return bool(self.get("catalog.refresh_on_start", True))

    @property
    def http_timeout(self) -> float:
        """Get timeout for remote calls."""
        return float(self.get("http.timeout", 10.0))

    @property
    def max_retries(self) -> int:
        """Get retry budget for remote calls."""
        return int(self.get("http.max_retries", 2))

    @property
    def packagist_enabled(self) -> bool:
        """Check if remote package lookups are enabled."""
        return bool(self.get("packagist.enabled", True))

    @property
    def packagist_ttl_seconds(self) -> float:
        """Get memoization lifetime of package lookups in seconds."""
        return float(self.get("packagist.ttl_hours", 24)) * 3600


def _deep_update(base: dict[str, Any], overrides: dict[str, Any]) -> None:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_update(base[key], value)
        else:
            base[key] = value


def load_config(project_root: Path | None = None, config_file: Path | None = None) -> Config:
    """Build a configuration for one invocation.

    An explicit ``config_file`` wins; otherwise ``.t3upgrade.toml`` in
    ``project_root`` (or the working directory) is used when present.

    Args:
        project_root: Directory searched for the default config file
        config_file: Optional explicit configuration file

    Returns:
        Config instance
    """
    if config_file is None:
        candidate = (project_root or Path.cwd()) / DEFAULT_CONFIG_FILENAME
        if candidate.exists():
            config_file = candidate

    return Config(config_file)
