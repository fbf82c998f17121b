"""Configuration management for the installer wizard client.

This module provides YAML-based configuration loading and saving,
following the XDG Base Directory Specification.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from .models import ClientConfig

logger = structlog.get_logger(__name__)

APP_NAME = "installer-wizard"


class ConfigError(Exception):
    """Raised when the configuration file cannot be used."""


def get_config_dir() -> Path:
    """Get the configuration directory following XDG spec.

    Returns:
        Path to the configuration directory.
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"

    return base / APP_NAME


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return get_config_dir() / "config.yaml"


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping from ``path``.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ConfigError: If the file is not a valid YAML mapping.
    """
    if not path.exists():
        logger.debug("config_file_not_found", path=str(path))
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {path} must be a mapping")
    return data


class ConfigManager:
    """Loads and saves the client configuration."""

    def __init__(self, config_path: Path | None = None) -> None:
        """Initialize the configuration manager.

        Args:
            config_path: Optional path to configuration file.
                        Uses default path if not provided.
        """
        self.config_path = config_path or get_default_config_path()
        self._config: ClientConfig | None = None

    def load(self) -> ClientConfig:
        """Load configuration from file.

        Returns:
            ClientConfig with loaded values, or defaults if file doesn't exist.

        Raises:
            ConfigError: If the file exists but cannot be parsed.
        """
        try:
            data = load_yaml(self.config_path)
        except FileNotFoundError:
            logger.info("using_default_config")
            self._config = ClientConfig()
            return self._config

        try:
            self._config = ClientConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {self.config_path}: {e}") from e

        return self._config

    def save(self, config: ClientConfig | None = None) -> None:
        """Save configuration to file.

        Args:
            config: Configuration to save. Uses current config if not provided.
        """
        if config is not None:
            self._config = config

        if self._config is None:
            self._config = ClientConfig()

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        data = self._config.model_dump(mode="json", exclude_none=True)
        self.config_path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))

        logger.info("config_saved", path=str(self.config_path))

    def get_config(self) -> ClientConfig:
        """Get the current configuration, loading from file if needed."""
        if self._config is None:
            self.load()
        return self._config or ClientConfig()

    def init_config(self, force: bool = False) -> bool:
        """Initialize a new configuration file with defaults.

        Args:
            force: If True, overwrite existing configuration.

        Returns:
            True if configuration was created, False if it already exists.
        """
        if self.config_path.exists() and not force:
            logger.info("config_exists", path=str(self.config_path))
            return False

        self.save(ClientConfig())
        logger.info("config_initialized", path=str(self.config_path))
        return True
