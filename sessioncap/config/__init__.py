"""YAML configuration loader for Sessioncap with environment overrides."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "collector": {
        "base_url": "http://localhost:3000",
        "timeout_seconds": 60,
    },
    "capture": {
        "interval_ms": 10000,
        "max_dimension": 800,
        "jpeg_quality": 80,
    },
    "audio": {
        "sample_rate": 44100,
        "channels": 1,
        "chunk_size": 1024,
    },
    "storage": {
        "root_directory": ".",
    },
    "logging": {
        "level": "INFO",
        "file_path": "logs/sessioncap.log",
        "console_output": True,
    },
}


class SessionCapConfig:
    """Sessioncap configuration loader."""

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults
                        are used and only environment overrides apply.
            environ: Environment mapping to read overrides from (defaults to os.environ)
        """
        self.config_file = Path(config_path) if config_path else None
        self.environ = os.environ if environ is None else environ

        if self.config_file is not None and not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Merge the YAML file over the defaults, then apply environment overrides."""
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_file is not None:
            logger.info(f"Loading configuration from: {self.config_file}")
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    loaded = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in configuration file: {e}")

            if loaded is not None and not isinstance(loaded, dict):
                raise ValueError("Configuration file must contain a mapping")

            self._merge(config, loaded or {})
            self._resolve_paths(config)

        self._apply_environment(config)
        logger.info("Configuration loaded successfully")
        return config

    def _merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> None:
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                self._merge(base[key], value)
            else:
                base[key] = value

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        root_dir = config['storage'].get('root_directory')
        if root_dir and not os.path.isabs(root_dir):
            config['storage']['root_directory'] = str(config_dir / root_dir)

        log_path = config['logging'].get('file_path')
        if log_path and not os.path.isabs(log_path):
            config['logging']['file_path'] = str(config_dir / log_path)

    def _apply_environment(self, config: Dict[str, Any]) -> None:
        """Apply SERVER_URL and SCREENSHOT_INTERVAL overrides."""
        server_url = self.environ.get('SERVER_URL')
        if server_url:
            config['collector']['base_url'] = server_url
            logger.debug(f"Collector URL overridden from environment: {server_url}")

        interval = self.environ.get('SCREENSHOT_INTERVAL')
        if interval:
            try:
                interval_ms = int(interval)
            except ValueError:
                interval_ms = 0
            if interval_ms > 0:
                config['capture']['interval_ms'] = interval_ms
            else:
                logger.warning(f"Ignoring invalid SCREENSHOT_INTERVAL: {interval!r}")

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'collector.base_url').

        Args:
            key_path: Dot-separated key path (e.g., 'capture.interval_ms')
            default: Default value if key not found

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

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'capture.interval_ms')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_collector_url(self) -> str:
        """Get collector base URL without a trailing slash."""
        return str(self.get('collector.base_url')).rstrip('/')

    def get_snapshot_interval_ms(self) -> int:
        """Get snapshot interval in milliseconds."""
        return int(self.get('capture.interval_ms'))

    def get_storage_root(self) -> str:
        """Get the directory session folders are created in."""
        root_dir = self.get('storage.root_directory', '.')
        return str(Path(root_dir).absolute())
