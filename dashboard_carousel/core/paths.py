"""Centralized path constants for the carousel server."""

from __future__ import annotations

import os
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parents[1]

# Deployments that install the package read-only point this at a writable
# working directory instead.
_HOME_ENV = os.environ.get("DASHBOARD_CAROUSEL_HOME")
PROJECT_ROOT = Path(_HOME_ENV).expanduser().resolve() if _HOME_ENV else PACKAGE_ROOT.parent

# Configuration
CONFIG_PATH = PROJECT_ROOT / "config.txt"

# Logging
LOGS_DIR = PROJECT_ROOT / "logs"
DEFAULT_LOG_FILE = LOGS_DIR / "carousel.log"
CRASH_DIR = LOGS_DIR

# Served content
PUBLIC_DIR = PROJECT_ROOT / "public"
SHOTS_DIR = PUBLIC_DIR / "shots"

# Rotation checkpoint
STATE_FILE = PROJECT_ROOT / ".capture_state.json"


def resolve_path(value: str | os.PathLike[str], base: Path = PROJECT_ROOT) -> Path:
    """Resolve ``value`` against ``base`` unless it is already absolute."""
    path = Path(value).expanduser()
    return path if path.is_absolute() else base / path


def ensure_directories(*extra: Path) -> None:
    """Create necessary directories if they don't exist."""
    for directory in (LOGS_DIR, *extra):
        directory.mkdir(parents=True, exist_ok=True)


__all__ = [
    "PACKAGE_ROOT",
    "PROJECT_ROOT",
    "CONFIG_PATH",
    "LOGS_DIR",
    "DEFAULT_LOG_FILE",
    "CRASH_DIR",
    "PUBLIC_DIR",
    "SHOTS_DIR",
    "STATE_FILE",
    "resolve_path",
    "ensure_directories",
]
