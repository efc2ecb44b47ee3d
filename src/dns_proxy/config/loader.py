"""Configuration loader for the DNS proxy.

This module handles loading configuration from files and environment variables,
with validation.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .schema import (
    CacheConfig,
    DNSProxyConfig,
    LoggingConfig,
    ResolverConfig,
    ServerConfig,
    create_default_config,
)

ENV_PREFIX = "DNS_PROXY_"


class ConfigLoader:
    """Configuration loader for YAML/JSON files with environment overrides."""

    def __init__(self, config_file: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_file: Path to configuration file (YAML or JSON)
        """
        self.config_file = config_file

    def load_config(self) -> DNSProxyConfig:
        """Load configuration from file and environment variables.

        Returns:
            Loaded and validated proxy configuration

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

        return self._dict_to_config(config_dict)

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file.

        Args:
            file_path: Path to configuration file

        Returns:
            Configuration dictionary
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, "r", encoding="utf-8") as f:
            content = f.read()

        if path.suffix.lower() == ".json":
            result = json.loads(content)
        else:
            result = yaml.safe_load(content)

        return result if isinstance(result, dict) else {}

    def _get_default_config_dict(self) -> Dict[str, Any]:
        """Get default configuration as dictionary."""
        return self._config_to_dict(create_default_config())

    def _config_to_dict(self, config: DNSProxyConfig) -> Dict[str, Any]:
        """Convert configuration object to dictionary."""
        return {
            "server": {
                "bind_address": config.server.bind_address,
                "port": config.server.port,
                "receive_timeout": config.server.receive_timeout,
                "queue_size": config.server.queue_size,
            },
            "resolvers": [
                {"server": r.server, "domain": r.domain} for r in config.resolvers
            ],
            "cache": {"ttl": config.cache.ttl},
            "logging": {
                "level": config.logging.level,
                "format": config.logging.format,
                "file": config.logging.file,
                "max_bytes": config.logging.max_bytes,
            },
        }

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> DNSProxyConfig:
        """Convert dictionary to configuration object.

        Raises:
            ValueError: If configuration is invalid
        """
        return DNSProxyConfig(
            server=ServerConfig(**config_dict.get("server", {})),
            resolvers=self._parse_resolvers(config_dict.get("resolvers", [])),
            cache=CacheConfig(**config_dict.get("cache", {})),
            logging=LoggingConfig(**config_dict.get("logging", {})),
        )

    def _parse_resolvers(self, entries: Any) -> List[ResolverConfig]:
        """Build resolver entries, keeping their configured order."""
        if not isinstance(entries, list):
            raise ValueError(f"Resolvers must be a list: {entries!r}")

        resolvers = []
        for entry in entries:
            if isinstance(entry, str):
                resolvers.append(ResolverConfig(server=entry))
            elif isinstance(entry, dict):
                resolvers.append(ResolverConfig(**entry))
            else:
                raise ValueError(f"Invalid resolver entry: {entry!r}")
        return resolvers

    def _merge_configs(
        self, base: Dict[str, Any], override: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Merge two configuration dictionaries.

        Lists (the resolver chain) are replaced, never merged.
        """
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration.

        Environment variables use the format DNS_PROXY_<SECTION>_<KEY>, for
        example DNS_PROXY_SERVER_PORT=5353. DNS_PROXY_RESOLVERS replaces the
        resolver chain with a comma-separated list of ``address[/domain]``.
        """
        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            name = env_key[len(ENV_PREFIX) :].lower()

            if name == "resolvers":
                config_dict["resolvers"] = self._parse_resolver_list(env_value)
                continue

            section, _, config_key = name.partition("_")
            if not config_key:
                continue

            if isinstance(config_dict.get(section), dict):
                config_dict[section][config_key] = self._convert_env_value(env_value)

        return config_dict

    def _parse_resolver_list(self, value: str) -> List[Dict[str, Any]]:
        entries = []
        for item in value.split(","):
            item = item.strip()
            if not item:
                continue
            server, _, domain = item.partition("/")
            entries.append({"server": server.strip(), "domain": domain.strip() or None})
        return entries

    def _convert_env_value(self, value: str) -> Any:
        """Convert environment variable value to appropriate Python type."""
        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value
