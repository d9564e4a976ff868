"""Simple YAML configuration loader for voice2task."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "speech": {
        "language": "en-US",
        "timeout_ms": 10000,
        "partial_results": True,
    },
    "parsing": {
        "min_task_length": 3,
        "max_tasks": 10,
        "preserve_original_on_failure": True,
        "language": "en",
    },
    "google_cloud": {
        "api_key": None,
        "project_id": None,
        "endpoint": "https://speech.googleapis.com/v1/speech:recognize",
        "model": "latest_long",
        "request_timeout_seconds": 30,
    },
    "audio": {
        "sample_rate": 16000,
        "channels": 1,
        "chunk_size": 1024,
        "max_duration_seconds": 60,
        "recordings_directory": None,
    },
    "simulation": {
        "seed": None,
        "min_interval_ms": 300,
        "max_interval_ms": 900,
    },
    "platform": {
        "browser_like": False,
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/voice2task.log",
        "console_output": True,
    },
}

# Environment variable -> config key
ENVIRONMENT_OVERRIDES = {
    "GOOGLE_CLOUD_API_KEY": "google_cloud.api_key",
    "GOOGLE_CLOUD_PROJECT_ID": "google_cloud.project_id",
    "SPEECH_API_ENDPOINT": "google_cloud.endpoint",
}


class Voice2TaskConfig:
    """voice2task configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults
                        are used (still subject to environment overrides).
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
        else:
            if not self.config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")
            logger.info(f"Loading configuration from: {self.config_file}")
            self.config = self._merge(copy.deepcopy(DEFAULT_CONFIG), self._load_config())

        self._apply_environment_overrides()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}")

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping")

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (("audio", "recordings_directory"), ("logging", "file_path")):
            value = (config.get(section) or {}).get(key)
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)

    def _merge(self, base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                self._merge(base[key], value)
            else:
                base[key] = value
        return base

    def _apply_environment_overrides(self) -> None:
        for variable, key_path in ENVIRONMENT_OVERRIDES.items():
            value = os.environ.get(variable)
            if value:
                self.set(key_path, value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'speech.language').

        Args:
            key_path: Dot-separated key path (e.g., 'google_cloud.api_key')
            default: Default value if key not found or set to null

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return default if value is None else value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'parsing.max_tasks')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if not isinstance(config_dict.get(key), dict):
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        if "api_key" in key_path:
            logger.debug(f"Configuration key '{key_path}' set")
        else:
            logger.debug(f"Configuration key '{key_path}' set to: {value}")
