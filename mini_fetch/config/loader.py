"""
Configuration loader for mini_fetch.

This module handles loading configuration from configuration files and
environment variables.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

from pydantic import ValidationError

try:
    import yaml

    HAS_YAML = True
except Exception:
    yaml = None
    HAS_YAML = False

from ..exceptions import ConfigurationError
from .models import ClientConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "MINI_FETCH_"
TIMEOUT_ENV_VAR = f"{ENV_PREFIX}TIMEOUT"


def _parse_bool(value: str) -> bool:
    lower = value.strip().lower()
    if lower in ("true", "yes", "1", "on"):
        return True
    if lower in ("false", "no", "0", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_timeout(value: str) -> float:
    timeout = float(value.strip())
    if timeout < 0 or timeout != timeout:
        raise ValueError(f"not a valid timeout: {value!r}")
    return timeout


def timeout_from_environment() -> Optional[float]:
    """
    Read the default request timeout from ``MINI_FETCH_TIMEOUT``.

    Returns:
        The timeout in seconds, or None when the variable is unset or invalid
    """
    value = os.getenv(TIMEOUT_ENV_VAR)
    if value is None:
        return None
    try:
        return _parse_timeout(value)
    except ValueError:
        logger.debug("Ignoring invalid %s value %r", TIMEOUT_ENV_VAR, value)
        return None


class ConfigLoader:
    """Configuration loader with support for files and the environment."""

    def __init__(self) -> None:
        """Initialize configuration loader."""
        self.config_paths = [
            Path("mini_fetch.yaml"),
            Path("mini_fetch.yml"),
            Path("mini_fetch.json"),
            Path.home() / ".mini_fetch" / "config.yaml",
            Path.home() / ".mini_fetch" / "config.yml",
            Path.home() / ".mini_fetch" / "config.json",
        ]

        # Environment variable prefix
        self.env_prefix = ENV_PREFIX

        # Environment variable -> (config path, converter)
        self.env_mappings: Dict[str, Tuple[Tuple[str, ...], Callable[[str], Any]]] = {
            f"{self.env_prefix}TIMEOUT": (("default_timeout",), _parse_timeout),
            f"{self.env_prefix}MAX_REDIRECTS": (("max_redirects",), int),
            f"{self.env_prefix}USER_AGENT": (("user_agent",), str),
            # Logging
            f"{self.env_prefix}LOG_LEVEL": (("logging", "level"), str.upper),
            f"{self.env_prefix}LOG_FILE": (("logging", "file_path"), str),
            # Security
            f"{self.env_prefix}VERIFY_SSL": (("security", "verify_ssl"), _parse_bool),
            f"{self.env_prefix}CA_BUNDLE": (("security", "ca_bundle_path"), str),
        }

    def load_config(
        self, config_file: Optional[Union[str, Path]] = None
    ) -> ClientConfig:
        """
        Load configuration from all available sources.

        Environment variables override values read from the file.

        Args:
            config_file: Specific config file to load

        Returns:
            ClientConfig instance with merged configuration
        """
        config_data: Dict[str, Any] = {}

        file_config = self._load_from_file(config_file)
        if file_config:
            config_data.update(file_config)

        env_config = self._load_from_environment()
        if env_config:
            config_data = self._deep_merge(config_data, env_config)

        # A log file given through the environment implies file logging
        if "file_path" in env_config.get("logging", {}):
            config_data["logging"].setdefault("enable_file", True)

        try:
            return ClientConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _load_from_file(
        self, config_file: Optional[Union[str, Path]] = None
    ) -> Optional[Dict[str, Any]]:
        """Load configuration from file."""
        if config_file:
            config_path = Path(config_file)
            if not config_path.exists():
                raise ConfigurationError(f"Config file not found: {config_path}")
            return self._parse_config_file(config_path)

        for config_path in self.config_paths:
            if config_path.exists():
                return self._parse_config_file(config_path)

        return None

    def _parse_config_file(self, config_path: Path) -> Dict[str, Any]:
        """Parse configuration file based on extension."""
        suffix = config_path.suffix.lower()
        if suffix in (".yaml", ".yml") and (not HAS_YAML or yaml is None):
            raise ConfigurationError(
                "PyYAML is required for YAML config files. Install with: pip install PyYAML"
            )
        if suffix not in (".yaml", ".yml", ".json"):
            raise ConfigurationError(
                f"Unsupported config file format: {config_path.suffix}"
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if suffix == ".json":
                    data = json.load(f) or {}
                else:
                    data = yaml.safe_load(f) or {}
        except Exception as e:
            raise ConfigurationError(
                f"Failed to parse config file {config_path}: {e}"
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {config_path} must contain a mapping"
            )
        return data

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        for env_var, (config_path, converter) in self.env_mappings.items():
            value = os.getenv(env_var)
            if value is None:
                continue

            try:
                converted_value = converter(value)
            except ValueError:
                logger.warning("Ignoring invalid value for %s: %r", env_var, value)
                continue

            # Set nested configuration value
            current = config
            for key in config_path[:-1]:
                current = current.setdefault(key, {})
            current[config_path[-1]] = converted_value

        return config

    def _deep_merge(
        self, base: Dict[str, Any], override: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def load_config(config_file: Optional[Union[str, Path]] = None) -> ClientConfig:
    """Load configuration using a default ConfigLoader."""
    return ConfigLoader().load_config(config_file)
