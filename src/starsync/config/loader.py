"""Configuration loader for JSON/YAML files and environment variables."""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError

from .schema import SyncConfig
from .settings import AppSettings, get_settings
from ..utils.logging import get_logger


class ConfigurationError(Exception):
    """Raised when configuration loading fails."""
    pass


# STARSYNC_<KEY> -> SyncConfig field
_INT_OVERRIDES = {
    'STARSYNC_PAGE_SIZE': 'page_size',
    'STARSYNC_TOPICS_LIMIT': 'topics_limit',
    'STARSYNC_FULLSYNC_LIMIT': 'fullsync_limit',
    'STARSYNC_RECENT_COUNT': 'recent_count',
    'STARSYNC_BATCH_SIZE': 'batch_size',
}


class ConfigLoader:
    """Loads and validates sync configuration from various sources."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger(self.__class__.__name__)

    def load_from_file(self, file_path: Union[str, Path]) -> SyncConfig:
        """Load configuration from a JSON or YAML file.

        Values missing from the file fall back to the environment settings.

        Args:
            file_path: Path to configuration file

        Returns:
            Validated SyncConfig object

        Raises:
            ConfigurationError: If file cannot be loaded or validated
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}")

        self.logger.info("Loading configuration from file", file_path=str(file_path))

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                if file_path.suffix.lower() in ['.yaml', '.yml']:
                    data = yaml.safe_load(f)
                elif file_path.suffix.lower() == '.json':
                    data = json.load(f)
                else:
                    raise ConfigurationError(f"Unsupported file format: {file_path.suffix}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML format: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON format: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {file_path}")

        return self.load_from_dict(data)

    def load_from_dict(self, data: Dict[str, Any]) -> SyncConfig:
        """Load configuration from a dictionary layered over the settings defaults."""
        merged = {**self._settings_defaults(), **data}
        merged = self._apply_env_overrides(merged)

        try:
            config = SyncConfig(**merged)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid sync configuration: {e}") from e

        self.logger.info(
            "Sync configuration loaded",
            page_size=config.page_size,
            fullsync_limit=config.fullsync_limit,
            recent_count=config.recent_count,
            batch_size=config.batch_size
        )

        return config

    def _settings_defaults(self) -> Dict[str, Any]:
        github = self.settings.github
        return {
            'page_size': github.page_size,
            'topics_limit': github.topics_limit,
            'fullsync_limit': github.fullsync_limit,
            'recent_count': github.partialsync_limit,
            'batch_size': self.settings.notion.batch_size,
            'cache_namespace': self.settings.cache.namespace,
        }

    def _apply_env_overrides(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply STARSYNC_* environment variable overrides to configuration data."""
        env_overrides = {}

        for env_name, field_name in _INT_OVERRIDES.items():
            raw = os.getenv(env_name)
            if not raw:
                continue
            try:
                env_overrides[field_name] = int(raw)
            except ValueError:
                self.logger.warning("Invalid integer override, ignoring", variable=env_name, value=raw)

        if os.getenv('STARSYNC_CACHE_NAMESPACE'):
            env_overrides['cache_namespace'] = os.getenv('STARSYNC_CACHE_NAMESPACE')

        if env_overrides:
            self.logger.info("Applied environment variable overrides", overrides=list(env_overrides.keys()))
            data = {**data, **env_overrides}

        return data


def load_config_from_env(settings: Optional[AppSettings] = None) -> SyncConfig:
    """Load configuration from the STARSYNC_CONFIG_FILE file or the environment alone."""
    loader = ConfigLoader(settings)
    logger = get_logger("load_config_from_env")

    config_file = os.getenv('STARSYNC_CONFIG_FILE')
    if config_file:
        if os.path.exists(config_file):
            return loader.load_from_file(config_file)
        logger.warning("Specified config file not found", file=config_file)

    return loader.load_from_dict({})
