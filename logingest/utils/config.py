"""
Configuration management for logingest.

Loads and merges configuration from:
- Default configuration file (config/default.yaml, if present)
- A user-supplied YAML file
- Environment variables
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from logingest.errors import ConfigError

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "default.yaml"

# Environment variable -> dotted configuration key
ENV_OVERRIDES = {
    "SOURCE_TOPIC": "source.topic",
    "AUTO_OFFSET_RESET": "auto.offset.reset",
    "MAX_EVENTS_PER_CYCLE": "source.max_events_per_cycle",
    "LOG_LEVEL": "logging.level",
    "LOG_FORMAT": "logging.format",
}


class Config:
    """YAML-backed configuration with dotted-key access."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        environ: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize configuration.

        Args:
            config_file: Path to a YAML configuration file
            environ: Environment mapping (defaults to os.environ)
        """
        self._config: Dict[str, Any] = {}
        self._load_default_config()

        if config_file:
            self._load_config_file(config_file)

        self._apply_env_overrides(os.environ if environ is None else environ)

    def _load_default_config(self) -> None:
        if DEFAULT_CONFIG_PATH.exists():
            self._load_config_file(str(DEFAULT_CONFIG_PATH))

    def _load_config_file(self, config_file: str) -> None:
        """
        Load configuration from YAML file.

        Raises:
            ConfigError: If the file is unreadable or not a YAML mapping
        """
        try:
            with open(config_file, "r") as f:
                file_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot load configuration file {config_file}: {e}") from e

        if file_config is None:
            return
        if not isinstance(file_config, dict):
            raise ConfigError(f"Configuration file {config_file} must contain a mapping")

        self._merge_config(file_config)

    def _merge_config(self, new_config: Dict[str, Any]) -> None:
        self._config = self._deep_merge(self._config, new_config)

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """
        Deep merge two dictionaries.

        Args:
            base: Base dictionary
            override: Override dictionary

        Returns:
            Merged dictionary
        """
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, environ: Dict[str, str]) -> None:
        for env_name, key in ENV_OVERRIDES.items():
            if value := environ.get(env_name):
                self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., "source.topic")
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value = self._config
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value using dot notation.

        Args:
            key: Configuration key in dot notation
            value: Value to set
        """
        keys = key.split(".")
        config = self._config
        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """Get entire configuration as dictionary."""
        return self._config.copy()
