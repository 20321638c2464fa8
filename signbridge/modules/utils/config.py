"""
Centralized configuration manager.

One YAML file (``config/config.yaml`` by default) holds every section the
recognition pipeline reads. Consumers pull their section with
``get_section`` and read keys with ``.get(key, default)``, so a missing file
or key falls back to built-in defaults. Validation only warns.
"""

import os
import yaml
import logging

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")
_DEFAULT_CONFIG = os.path.join(_CONFIG_DIR, "config.yaml")

# section -> key -> (type, min, max); None bounds are open
_CONFIG_SCHEMA = {
    "features": {
        "pose_landmarks": (int, 0, None),
        "hand_landmarks": (int, 0, None),
        "include_pose_visibility": (bool, None, None),
    },
    "motion": {
        "movement_threshold": (float, 0.0, None),
    },
    "pause": {
        "pause_ms": (int, 0, None),
    },
    "classifier": {
        "model_path": (str, None, None),
        "labels_path": (str, None, None),
        "default_sequence_length": (int, 1, None),
        "min_real_frames": (int, 0, None),
        "output_activation": (str, None, None),
    },
    "recognition": {
        "confidence_threshold": (float, 0.0, 1.0),
        "suppress_repeats": (bool, None, None),
    },
}

# Keys holding file paths, resolved against the repo root when relative
_PATH_KEYS = ("classifier.model_path", "classifier.labels_path")


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _type_ok(value, expected) -> bool:
    if isinstance(value, bool):
        return expected is bool
    if expected is float:
        return isinstance(value, (int, float))
    return isinstance(value, expected)


def _check_section(name: str, section, fields: dict) -> list:
    if not isinstance(section, dict):
        return [f"Section '{name}' should be a mapping, got {type(section).__name__}"]

    problems = []
    for key, (expected, low, high) in fields.items():
        value = section.get(key)
        if value is None:
            continue
        if not _type_ok(value, expected):
            problems.append(f"{name}.{key}: expected {expected.__name__}, got {value!r}")
        elif low is not None and value < low:
            problems.append(f"{name}.{key}: {value!r} is below {low}")
        elif high is not None and value > high:
            problems.append(f"{name}.{key}: {value!r} is above {high}")
    return problems


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load(self, config_path=None):
        """Load configuration from a YAML file."""
        config_path = config_path or _DEFAULT_CONFIG
        if os.path.isfile(config_path):
            with open(config_path, "r") as f:
                self._data = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        else:
            logger.warning("Config file not found: %s, using defaults", config_path)
            self._data = {}

        self._validate()
        return self

    def load_dict(self, data: dict):
        """Use an in-memory dict as the configuration."""
        self._data = dict(data or {})
        self._validate()
        return self

    def update(self, overrides: dict):
        """Deep-merge overrides (e.g. from CLI flags) into the loaded config."""
        self._data = _deep_merge(self._data, overrides or {})
        self._validate()
        return self

    def _validate(self) -> list:
        problems = []
        for name, fields in _CONFIG_SCHEMA.items():
            if self._data.get(name) is not None:
                problems.extend(_check_section(name, self._data[name], fields))

        for problem in problems:
            logger.warning("Config validation: %s", problem)
        return problems

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'pause.pause_ms'."""
        value = self._data
        for key in key_path.split("."):
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value

    def get_section(self, section: str) -> dict:
        """Get an entire config section ({} when absent or null)."""
        return self._data.get(section) or {}

    def resolve_path(self, key_path: str):
        """File path setting, made absolute against the repo root if relative."""
        path = self.get(key_path)
        if not path or os.path.isabs(path) or os.path.exists(path):
            return path
        return os.path.join(_BASE_DIR, path)

    def resource_section(self, section: str) -> dict:
        """Section copy with its path keys resolved."""
        resolved = dict(self.get_section(section))
        for key_path in _PATH_KEYS:
            name, _, key = key_path.partition(".")
            if name == section and resolved.get(key):
                resolved[key] = self.resolve_path(key_path)
        return resolved

    @property
    def camera(self) -> dict:
        return self.get_section("camera")

    @property
    def holistic(self) -> dict:
        return self.get_section("holistic")

    @property
    def features(self) -> dict:
        return self.get_section("features")

    @property
    def pause(self) -> dict:
        return self.get_section("pause")

    @property
    def classifier(self) -> dict:
        return self.resource_section("classifier")

    @property
    def sentence(self) -> dict:
        return self.get_section("sentence")

    @property
    def visualization(self) -> dict:
        return self.get_section("visualization")

    @property
    def base_dir(self) -> str:
        return _BASE_DIR

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
