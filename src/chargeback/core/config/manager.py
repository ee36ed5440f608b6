"""
Configuration Manager

Handles hierarchical configuration loading, validation, and management
with support for CLI args → environment variables → config files → defaults.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from chargeback.core.config.models import AppConfig
from chargeback.core.exceptions import ConfigurationError, ErrorCode


class ConfigManager:
    """
    Manages application configuration with hierarchical loading and validation.

    Configuration sources in order of precedence:
    1. CLI arguments (highest priority)
    2. Environment variables
    3. Configuration files
    4. Default values (lowest priority)
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Optional path to configuration file
        """
        self.config_file = Path(config_file) if config_file else None
        self._config: Optional[AppConfig] = None
        self._config_paths = self._get_default_config_paths()

    def _get_default_config_paths(self) -> List[Path]:
        """Get default configuration file search paths."""
        search_paths = [
            Path.cwd() / "chargeback.yaml",
            Path.cwd() / "chargeback.yml",
            Path.cwd() / "chargeback.json",
            Path.home() / ".config" / "chargeback" / "config.yaml",
        ]

        xdg_config = os.environ.get('XDG_CONFIG_HOME')
        if xdg_config:
            search_paths.append(Path(xdg_config) / "chargeback" / "config.yaml")

        return search_paths

    def load_config(
        self,
        cli_args: Optional[Dict[str, Any]] = None,
        env_prefix: str = "CHARGEBACK_"
    ) -> AppConfig:
        """
        Load and validate configuration from all sources.

        Args:
            cli_args: Dictionary of CLI arguments
            env_prefix: Prefix for environment variables

        Returns:
            Validated AppConfig instance

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config_data: Dict[str, Any] = {}

        file_config = self._load_config_file()
        if file_config:
            config_data.update(file_config)

        env_config = self._load_env_config(env_prefix)
        if env_config:
            config_data = self._deep_merge(config_data, env_config)

        if cli_args:
            cli_config = self._normalize_cli_args(cli_args)
            config_data = self._deep_merge(config_data, cli_config)

        try:
            self._config = AppConfig(**config_data)
            return self._config
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed: {e}",
                error_code=ErrorCode.CONFIG_INVALID_VALUE,
                cause=e
            )

    def _load_config_file(self) -> Optional[Dict[str, Any]]:
        """Load configuration from file."""
        config_file = self.config_file

        if config_file is not None and not config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_file}",
                error_code=ErrorCode.CONFIG_FILE_NOT_FOUND
            )

        if not config_file:
            for path in self._config_paths:
                if path.exists() and path.is_file():
                    config_file = path
                    break

        if not config_file:
            return None

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                if config_file.suffix.lower() == '.json':
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f) or {}
        except (IOError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load config file {config_file}: {e}", cause=e)

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {config_file} must contain a mapping")
        return data

    def _load_env_config(self, prefix: str) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config: Dict[str, Any] = {}

        env_mappings = {
            f"{prefix}WORKFLOW_NAME": (None, "workflow_name", str),
            f"{prefix}LOG_LEVEL": (None, "log_level", str),

            # Query configuration
            f"{prefix}QUERY_SOURCE": ("query", "source", str),
            f"{prefix}QUERY_PROJECT_ID": ("query", "project_id", str),
            f"{prefix}WORKSPACE_ID": ("query", "workspace_id", str),
            f"{prefix}REQUESTS_TABLE": ("query", "requests_table", str),
            f"{prefix}USAGE_TABLE": ("query", "usage_table", str),
            f"{prefix}LOOKBACK_HOURS": ("query", "lookback_hours", int),
            f"{prefix}QUERY_TIMEOUT": ("query", "timeout_seconds", float),

            # Publish configuration
            f"{prefix}STORE": ("publish", "store", str),
            f"{prefix}STORAGE_PROJECT_ID": ("publish", "project_id", str),
            f"{prefix}CONTAINER": ("publish", "container", str),
            f"{prefix}BLOB_PATH": ("publish", "blob_path", str),
            f"{prefix}LOCAL_ROOT": ("publish", "local_root", str),
            f"{prefix}PUBLISH_TIMEOUT": ("publish", "timeout_seconds", float),

            # Failure reporting
            f"{prefix}FAILURE_SINK": ("failure_reporting", "sink", str),
            f"{prefix}INGESTION_ENDPOINT": ("failure_reporting", "endpoint", str),
            f"{prefix}INGESTION_API_KEY": ("failure_reporting", "api_key", str),
            f"{prefix}INGESTION_LOG_TYPE": ("failure_reporting", "log_type", str),
        }

        for env_var, (section, key, parser) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is None:
                continue
            try:
                parsed_value = parser(value)
            except (ValueError, TypeError) as e:
                raise ConfigurationError(
                    f"Invalid value for {env_var}: {value} ({e})",
                    error_code=ErrorCode.CONFIG_INVALID_VALUE,
                    config_key=env_var
                )
            if section is None:
                env_config[key] = parsed_value
            else:
                env_config.setdefault(section, {})[key] = parsed_value

        return env_config

    def _normalize_cli_args(self, cli_args: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize CLI arguments to configuration structure."""
        normalized: Dict[str, Any] = {}

        cli_mappings = {
            'workflow_name': 'workflow_name',
            'log_level': 'log_level',
            'lookback_hours': ('query', 'lookback_hours'),
            'workspace_id': ('query', 'workspace_id'),
            'query_text': ('query', 'query_text'),
            'container': ('publish', 'container'),
            'blob_path': ('publish', 'blob_path'),
        }

        for cli_key, value in cli_args.items():
            if value is None:
                continue

            mapping = cli_mappings.get(cli_key)
            if mapping is None:
                continue
            if isinstance(mapping, tuple):
                section, key = mapping
                normalized.setdefault(section, {})[key] = value
            else:
                normalized[mapping] = value

        return normalized

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def validate_config(self, config: Optional[AppConfig] = None) -> List[str]:
        """
        Validate configuration and return list of warnings.

        Args:
            config: Configuration to validate (uses loaded config if None)

        Returns:
            List of validation warnings
        """
        if config is None:
            config = self._config

        if config is None:
            return ["No configuration loaded"]

        warnings = []

        if config.failure_reporting.sink == "log":
            warnings.append("Failure events are only written to the application log")

        if config.query.source == "memory":
            warnings.append("Query source 'memory' has no records unless injected")

        if config.publish.store == "memory":
            warnings.append("Publish store 'memory' does not persist the report")

        if config.publish.timeout_seconds < 5:
            warnings.append("Publish timeout below 5 seconds may fail large reports")

        return warnings

    def dump_config(self, config: Optional[AppConfig] = None, redact: bool = True) -> Dict[str, Any]:
        """Return the configuration as a plain dictionary, secrets redacted."""
        config = config or self._config
        if config is None:
            return {}

        data = config.model_dump(mode='json')
        if redact and data['failure_reporting'].get('api_key'):
            data['failure_reporting']['api_key'] = '***'
        return data

    @property
    def config(self) -> Optional[AppConfig]:
        """Get the loaded configuration."""
        return self._config
