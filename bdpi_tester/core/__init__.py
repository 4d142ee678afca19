"""
Core module initialization.

This module provides access to core functionality including
configuration, models, and utilities.
"""

from .config import TesterConfig, TesterError, SettingsError, InputError
from .models import (
    Settings, ProbeOutcome, TestResult, GroupStats, RunnerStatus, RunnerOutcome, ProxyState,
    config_identity,
)
from .utils import (
    now_ts, format_percent, read_lines, sanitize_log_name, default_executable,
    resolve_executable_path, memory_percent, setup_logging
)

__all__ = [
    "TesterConfig",
    "TesterError",
    "SettingsError",
    "InputError",
    "Settings",
    "ProbeOutcome",
    "TestResult",
    "GroupStats",
    "RunnerStatus",
    "RunnerOutcome",
    "ProxyState",
    "config_identity",
    "now_ts",
    "format_percent",
    "read_lines",
    "sanitize_log_name",
    "default_executable",
    "resolve_executable_path",
    "memory_percent",
    "setup_logging"
]
