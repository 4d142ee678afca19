"""
Core configuration management for the tester.

This module handles loading run settings from a TOML or YAML settings file,
overriding them from environment variables and validating the result.
"""

import logging
import os
import sys
import tomllib
from typing import Any, Dict, List, Optional

import yaml

from .models import Settings


class TesterError(Exception):
    """Base class for errors that abort a run before it starts."""


class SettingsError(TesterError):
    """Settings file missing, unparsable or invalid."""


class InputError(TesterError):
    """Configuration or domain list unreadable or empty."""


SETTINGS_KEYS = (
    "group_size",
    "start_port",
    "group_delay_ms",
    "request_timeout_sec",
    "log_dir",
    "results_file",
    "ciadpi_start_delay_ms",
    "executable",
    "top_n",
    "probe_workers",
)


class TesterConfig:
    """Central configuration manager for a tester run."""

    def __init__(self, settings_file: Optional[str] = None):
        self.settings_file = settings_file or os.getenv("BDPI_SETTINGS_FILE", "settings.toml")
        self.logger = logging.getLogger(__name__)
        self._config: Dict[str, Any] = {}
        self._load_default_config()
        self._load_settings_file()
        self._load_from_environment()

    def _load_default_config(self):
        """Load default configuration values."""
        self._config = {
            "group_size": 10,
            "start_port": 10000,
            "group_delay_ms": 1000,
            "request_timeout_sec": 5,
            "log_dir": "logs",
            "results_file": "results.txt",
            "ciadpi_start_delay_ms": 1000,
            "executable": "",
            "top_n": 10,
            "probe_workers": 64,
        }

    def _load_settings_file(self):
        """Merge values from the settings file (TOML, or YAML by extension)."""
        if not os.path.exists(self.settings_file):
            raise SettingsError(f"Failed to read {self.settings_file}: file not found")

        try:
            if self.settings_file.endswith((".yaml", ".yml")):
                with open(self.settings_file, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
            else:
                with open(self.settings_file, "rb") as f:
                    data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError, yaml.YAMLError) as e:
            raise SettingsError(f"Failed to parse {self.settings_file}: {e}") from e

        if not isinstance(data, dict):
            raise SettingsError(f"{self.settings_file} must contain a table of settings")

        for key, value in data.items():
            if key not in SETTINGS_KEYS:
                self.logger.warning(f"Unknown setting '{key}' in {self.settings_file} ignored")
                continue
            self._config[key] = value

    def _load_from_environment(self):
        """Override configuration with environment variables."""
        env_mappings = {
            "BDPI_GROUP_SIZE": ("group_size", int),
            "BDPI_START_PORT": ("start_port", int),
            "BDPI_GROUP_DELAY_MS": ("group_delay_ms", int),
            "BDPI_REQUEST_TIMEOUT_SEC": ("request_timeout_sec", int),
            "BDPI_LOG_DIR": ("log_dir", str),
            "BDPI_RESULTS_FILE": ("results_file", str),
            "BDPI_START_DELAY_MS": ("ciadpi_start_delay_ms", int),
            "BDPI_EXECUTABLE": ("executable", str),
            "BDPI_TOP_N": ("top_n", int),
            "BDPI_PROBE_WORKERS": ("probe_workers", int),
        }

        for env_key, (config_key, converter) in env_mappings.items():
            if env_key in os.environ:
                try:
                    self._config[config_key] = converter(os.environ[env_key])
                except (ValueError, TypeError):
                    self.logger.warning(
                        f"Invalid value for {env_key}: {os.environ[env_key]}"
                    )

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any):
        """Set configuration value."""
        self._config[key] = value

    def update(self, config_dict: Dict[str, Any]):
        """Update multiple configuration values."""
        self._config.update(config_dict)

    def to_dict(self) -> Dict[str, Any]:
        """Get configuration as dictionary."""
        return self._config.copy()

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        numeric_fields = [
            ("group_size", 1, 1000),
            ("start_port", 1, 65535),
            ("group_delay_ms", 0, 3_600_000),
            ("request_timeout_sec", 1, 600),
            ("ciadpi_start_delay_ms", 0, 600_000),
            ("top_n", 1, 1000),
            ("probe_workers", 1, 4096),
        ]

        for name, min_val, max_val in numeric_fields:
            value = self.get(name)
            if isinstance(value, bool) or not isinstance(value, int) or value < min_val or value > max_val:
                errors.append(f"{name} must be between {min_val} and {max_val}")

        if not errors and self.get("start_port") + self.get("group_size") - 1 > 65535:
            errors.append("start_port + group_size - 1 must not exceed 65535")

        for name in ("log_dir", "results_file"):
            value = self.get(name)
            if not isinstance(value, str) or not value.strip():
                errors.append(f"{name} must be a non-empty path")

        if not isinstance(self.get("executable"), str):
            errors.append("executable must be a string")

        return errors

    def is_windows(self) -> bool:
        """Check if running on Windows."""
        return sys.platform == "win32"

    def to_settings(self) -> Settings:
        """Validate and freeze into a typed settings object."""
        errors = self.validate()
        if errors:
            raise SettingsError("; ".join(errors))
        return Settings(**{key: self._config[key] for key in SETTINGS_KEYS})
