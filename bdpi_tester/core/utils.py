"""
Core utilities and helper functions.

This module contains common utility functions used throughout
the tester.
"""

import logging
import os
import re
import shutil
import sys
import time
from pathlib import Path
from typing import List, Optional

import psutil
from colorama import Fore, Style, init

from .config import InputError

LOG_NAME_PREFIX_LEN = 20


def now_ts() -> int:
    """Get current timestamp as integer."""
    return int(time.time())


def format_percent(rate: float) -> str:
    """Render a 0..1 rate as a percentage with one decimal place."""
    return f"{rate * 100:.1f}%"


def read_lines(path: str) -> List[str]:
    """Read non-empty lines from file, stripping whitespace."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return [line.strip() for line in f if line.strip()]
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Failed to read {path}: {e}") from e


def sanitize_log_name(config: str, port: int, timestamp: Optional[int] = None) -> str:
    """Build a filesystem-safe, per-runner log name for a configuration."""
    parts = config.split()
    prefix = parts[0] if parts else "cfg"
    prefix = re.sub(r"[^\w-]", "_", prefix[:LOG_NAME_PREFIX_LEN])
    ts = now_ts() if timestamp is None else timestamp
    return f"{prefix}_p{port}_t{ts}"


def default_executable() -> str:
    """Platform-dependent name of the proxy binary."""
    if sys.platform == "win32":
        return "ciadpi.exe"
    return "./ciadpi"


def resolve_executable_path(primary: Optional[str], fallbacks: List[str]) -> Optional[str]:
    """Resolve executable path with fallbacks."""
    candidates: List[str] = []
    if primary:
        candidates.append(primary)
    candidates.extend(fallbacks)

    seen = set()
    for path in candidates:
        if not path:
            continue

        normalized = os.path.expandvars(os.path.expanduser(path))
        if normalized in seen:
            continue
        seen.add(normalized)

        if os.path.exists(normalized):
            return normalized
        if not os.path.isabs(normalized):
            resolved = shutil.which(normalized)
            if resolved:
                return resolved

    return None


def memory_percent() -> float:
    """System memory usage in percent."""
    return psutil.virtual_memory().percent


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the whole line by level."""

    FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
    DATEFMT = "%Y-%m-%d %H:%M:%S"
    FORMATS = {
        logging.DEBUG: Fore.CYAN + FORMAT + Style.RESET_ALL,
        logging.INFO: Fore.GREEN + FORMAT + Style.RESET_ALL,
        logging.WARNING: Fore.YELLOW + FORMAT + Style.RESET_ALL,
        logging.ERROR: Fore.RED + FORMAT + Style.RESET_ALL,
        logging.CRITICAL: Fore.RED + Style.BRIGHT + FORMAT + Style.RESET_ALL,
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.FORMAT)
        formatter = logging.Formatter(log_fmt, datefmt=self.DATEFMT)
        return formatter.format(record)


def setup_logging(log_file: Optional[Path] = None, level: int = logging.INFO):
    """Setup colored console logging and an optional session log file."""
    init(autoreset=True)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter())

    handlers: List[logging.Handler] = [console_handler]
    if log_file is not None:
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8", mode="a")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)

    # Reduce noise from external libraries
    logging.getLogger("urllib3").setLevel(logging.ERROR)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.ERROR)
