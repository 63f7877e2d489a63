"""Configuration loader for the DoH server.

This module handles loading configuration from files and environment variables,
with validation. The resulting configuration is treated as read-only by the
resolution pipeline, so there is no hot reload.
"""

import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .schema import (
    DatabaseConfig,
    DoHServerConfig,
    LoggingConfig,
    ResolverConfig,
    ServerConfig,
    UpstreamConfig,
    WebConfig,
    create_default_config,
)

ENV_PREFIX = "DOH_SERVER_"

# Keys whose environment value is a comma-separated list rather than a scalar
_LIST_KEYS = {("resolver", "system_tlds")}
# Keys whose environment value is a comma-separated list of key=value pairs
_MAP_KEYS = {("upstream", "providers")}


class ConfigLoader:
    """Configuration loader: defaults, then file, then environment."""

    def __init__(self, config_file: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_file: Path to configuration file (YAML or JSON)
        """
        self.config_file = config_file
        self._config: Optional[DoHServerConfig] = None

    def load_config(self) -> DoHServerConfig:
        """Load configuration from file and environment variables.

        Returns:
            Loaded and validated DoH server configuration

        Raises:
            FileNotFoundError: If config file is specified but not found
            ValueError: If configuration is invalid
            yaml.YAMLError: If YAML parsing fails
            json.JSONDecodeError: If JSON parsing fails
        """
        config_dict = self._get_default_config_dict()

        if self.config_file:
            file_config = self._load_from_file(self.config_file)
            config_dict = self._merge_configs(config_dict, file_config)

        config_dict = self._apply_env_overrides(config_dict)

        self._config = self._dict_to_config(config_dict)

        return self._config

    def get_config(self) -> Optional[DoHServerConfig]:
        """Get current configuration."""
        return self._config

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file.

        Args:
            file_path: Path to configuration file

        Returns:
            Configuration dictionary

        Raises:
            FileNotFoundError: If file is not found
            ValueError: If file format is not supported
            yaml.YAMLError: If YAML parsing fails
            json.JSONDecodeError: If JSON parsing fails
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, "r", encoding="utf-8") as f:
            content = f.read()

        if path.suffix.lower() in [".yaml", ".yml"]:
            result = yaml.safe_load(content)
            return result if isinstance(result, dict) else {}
        elif path.suffix.lower() == ".json":
            json_result = json.loads(content)
            return json_result if isinstance(json_result, dict) else {}
        else:
            # Try YAML first, then JSON
            try:
                result = yaml.safe_load(content)
                return result if isinstance(result, dict) else {}
            except yaml.YAMLError:
                try:
                    json_result = json.loads(content)
                    return json_result if isinstance(json_result, dict) else {}
                except json.JSONDecodeError:
                    raise ValueError(f"Unsupported file format: {file_path}")

    def _get_default_config_dict(self) -> Dict[str, Any]:
        """Get default configuration as dictionary."""
        return asdict(create_default_config())

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> DoHServerConfig:
        """Convert dictionary to configuration object.

        Raises:
            ValueError: If configuration is invalid or has unknown keys
        """
        sections = {
            "server": ServerConfig,
            "resolver": ResolverConfig,
            "upstream": UpstreamConfig,
            "database": DatabaseConfig,
            "logging": LoggingConfig,
            "web": WebConfig,
        }

        unknown = set(config_dict) - set(sections)
        if unknown:
            raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

        built = {}
        for name, section_cls in sections.items():
            values = config_dict.get(name) or {}
            if not isinstance(values, dict):
                raise ValueError(f"Configuration section '{name}' must be a mapping")
            try:
                built[name] = section_cls(**values)
            except TypeError as e:
                raise ValueError(f"Invalid keys in section '{name}': {e}") from e

        return DoHServerConfig(**built)

    def _merge_configs(
        self, base: Dict[str, Any], override: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Merge two configuration dictionaries.

        Nested sections merge key by key; the provider map is replaced
        wholesale so a file can drop a default provider.
        """
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and key != "providers"
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration.

        Environment variables use the format DOH_SERVER_<SECTION>_<KEY>
        For example: DOH_SERVER_SERVER_WEB_PORT=8443
        """
        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            key_parts = env_key[len(ENV_PREFIX) :].lower().split("_")
            if len(key_parts) < 2:
                continue

            section = key_parts[0]
            config_key = "_".join(key_parts[1:])

            if section not in config_dict or not isinstance(
                config_dict[section], dict
            ):
                continue

            if (section, config_key) in _LIST_KEYS:
                value = [s.strip() for s in env_value.split(",") if s.strip()]
            elif (section, config_key) in _MAP_KEYS:
                value = self._parse_env_map(env_value)
            else:
                value = self._convert_env_value(env_value)

            config_dict[section][config_key] = value

        return config_dict

    def _parse_env_map(self, value: str) -> Dict[str, str]:
        """Parse "key=value,key=value" into a dictionary."""
        result = {}
        for item in value.split(","):
            if "=" not in item:
                continue
            key, _, val = item.partition("=")
            result[key.strip()] = val.strip()
        return result

    def _convert_env_value(self, value: str) -> Any:
        """Convert environment variable value to appropriate Python type."""
        if value.lower() in ("true", "yes", "on"):
            return True
        elif value.lower() in ("false", "no", "off"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value


def load_config_from_file(config_file: Optional[str] = None) -> DoHServerConfig:
    """Convenience function to load configuration."""
    return ConfigLoader(config_file).load_config()
