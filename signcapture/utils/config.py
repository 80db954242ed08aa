"""
Centralized configuration manager.
Loads the YAML config over built-in defaults and provides typed access.
"""

import os
import copy
import yaml
import logging

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

API_URL_ENV = "SIGNCAPTURE_API_URL"

DEFAULTS = {
    "camera": {
        "device_id": 0,
        "width": 800,
        "height": 600,
        "fps": 30,
        "flip_horizontal": False,
        "warmup_frames": 5,
    },
    "mediapipe": {
        "max_num_hands": 2,
        "model_complexity": 1,
        "min_detection_confidence": 0.5,
        "min_tracking_confidence": 0.5,
    },
    "encoder": {
        "width": 800,
        "height": 600,
        "quality": 0.9,
    },
    "upload": {
        "settle_delay_ms": 200,
    },
    "recording": {
        "interval_ms": 1000,
    },
    "api": {
        "base_url": "https://wa-b6c3.onrender.com",
        "timeout_sec": 30,
        "poll_interval_sec": 5,
        "model_name": "modelo_senas_v1",
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "max_size_mb": 10,
        "backup_count": 3,
    },
}

# Schema: required sections and their expected types
_CONFIG_SCHEMA = {
    "camera": {
        "device_id": int,
        "width": int,
        "height": int,
        "fps": int,
    },
    "mediapipe": {
        "max_num_hands": int,
        "min_detection_confidence": float,
        "min_tracking_confidence": float,
    },
    "encoder": {
        "quality": float,
    },
    "upload": {
        "settle_delay_ms": int,
    },
    "recording": {
        "interval_ms": int,
    },
    "api": {
        "base_url": str,
        "timeout_sec": float,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = copy.deepcopy(DEFAULTS)
        return cls._instance

    def load(self, config_path=None):
        """Load configuration from a YAML file on top of the defaults."""
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")

        file_data = {}
        try:
            with open(config_path, "r") as f:
                file_data = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)

        self._data = _deep_merge(copy.deepcopy(DEFAULTS), file_data)

        env_url = os.environ.get(API_URL_ENV)
        if env_url:
            self._data["api"]["base_url"] = env_url

        self._validate()
        return self

    def _validate(self):
        """Validate critical config fields against schema."""
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if section is None:
                warnings.append(f"Missing config section: '{section_name}'")
                continue
            if not isinstance(section, dict):
                warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
                continue
            for field_name, expected_type in fields.items():
                if field_name in section:
                    value = section[field_name]
                    # Allow int where float is expected
                    if expected_type is float and isinstance(value, (int, float)):
                        continue
                    if not isinstance(value, expected_type):
                        warnings.append(
                            f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                            f"got {type(value).__name__} ({value!r})"
                        )

        if warnings:
            for w in warnings:
                logger.warning("Config validation: %s", w)
        else:
            logger.debug("Config validation passed")
        return warnings

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'camera.width'."""
        keys = key_path.split(".")
        value = self._data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path: str, value):
        """Override a nested value, e.g. from command-line flags."""
        keys = key_path.split(".")
        section = self._data
        for key in keys[:-1]:
            section = section.setdefault(key, {})
        section[keys[-1]] = value

    def get_section(self, section: str) -> dict:
        """Get an entire config section."""
        return self._data.get(section, {})

    @property
    def camera(self) -> dict:
        return self._data.get("camera", {})

    @property
    def mediapipe(self) -> dict:
        return self._data.get("mediapipe", {})

    @property
    def encoder(self) -> dict:
        return self._data.get("encoder", {})

    @property
    def upload(self) -> dict:
        return self._data.get("upload", {})

    @property
    def recording(self) -> dict:
        return self._data.get("recording", {})

    @property
    def api(self) -> dict:
        return self._data.get("api", {})

    @property
    def base_dir(self) -> str:
        return _BASE_DIR

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
