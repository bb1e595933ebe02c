"""Centralized path constants for the device profiler."""

from __future__ import annotations

import os
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
PROJECT_ROOT = PACKAGE_ROOT.parent

# Shipped defaults
CONFIG_PATH = PACKAGE_ROOT / "config.txt"

# User-specific state (allows running from read-only installs)
_USER_STATE_ENV = os.environ.get("DEVICE_PROFILER_STATE_DIR")
USER_STATE_DIR = Path(_USER_STATE_ENV).expanduser() if _USER_STATE_ENV else (Path.home() / ".device_profiler")
USER_CONFIG_OVERRIDES_DIR = USER_STATE_DIR / "config_overrides"
LOGS_DIR = USER_STATE_DIR / "logs"
PROFILER_LOG_FILE = LOGS_DIR / "profiler.log"
REPORTS_DIR = USER_STATE_DIR / "reports"


def ensure_directories() -> None:
    """Create the per-user directories if they don't exist."""

    USER_STATE_DIR.mkdir(parents=True, exist_ok=True)
    USER_CONFIG_OVERRIDES_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    REPORTS_DIR.mkdir(parents=True, exist_ok=True)


__all__ = [
    'PACKAGE_ROOT',
    'PROJECT_ROOT',
    'CONFIG_PATH',
    'USER_STATE_DIR',
    'USER_CONFIG_OVERRIDES_DIR',
    'LOGS_DIR',
    'PROFILER_LOG_FILE',
    'REPORTS_DIR',
    'ensure_directories',
]
