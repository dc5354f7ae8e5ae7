"""Simple YAML configuration loader for Mirror Play."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "audio": {
        "chunk_ms": 100,
        "channels": 1,
        "fft_size": 256,
        "input_device_index": None,
    },
    "voice": {
        "auto_start": True,
        "auto_start_delay_ms": 1500,
        "silence_threshold_ms": 3000,
        "max_recording_ms": 90000,
        "noise_floor": 0.05,
        "retry_delay_ms": 500,
        "frame_interval_ms": 16,
        "placeholder": "Your response will appear here...",
        "submit_label": "Submit",
    },
    "transcription": {
        "base_url": "http://localhost:5000",
        "endpoint": "/api/transcribe",
        "timeout_seconds": 30.0,
        "auth_token": None,
    },
    "logging": {
        "level": "INFO",
        "file_path": "logs/mirrorplay.log",
        "console_output": True,
    },
}


class MirrorPlayConfig:
    """Mirror Play configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, the built-in
                        defaults are used and relative paths resolve against
                        the current directory.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is not None and not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load YAML configuration file and merge it onto the defaults."""
        config = copy.deepcopy(DEFAULT_CONFIG)
        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self._resolve_paths(config, Path.cwd())
            return config

        logger.info(f"Loading configuration from: {self.config_file}")
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if loaded is None:
            raise ValueError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        _deep_merge(config, loaded)
        self._resolve_paths(config, self.config_file.parent)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any], base_dir: Path) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        if 'logging' in config and config['logging'].get('file_path'):
            log_path = config['logging']['file_path']
            if not os.path.isabs(log_path):
                config['logging']['file_path'] = str(base_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'voice.silence_threshold_ms').

        Args:
            key_path: Dot-separated key path
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
            key_path: Dot-separated path to config value (e.g., 'voice.auto_start')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_transcription_url(self) -> str:
        """Full URL of the transcription endpoint - CRASHES if no base URL is configured."""
        base_url = self.get('transcription.base_url')
        if not base_url:
            raise ValueError("transcription.base_url is not configured")
        endpoint = self.get('transcription.endpoint', '/api/transcribe')
        return base_url.rstrip('/') + '/' + endpoint.lstrip('/')


def _deep_merge(target: Dict[str, Any], overrides: Dict[str, Any]) -> None:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value
