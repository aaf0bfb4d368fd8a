"""
Logging setup for the carousel process.

    CarouselSettings.log_level / log_file  ->  LoggingPlan  ->  root handlers

Carousel components log under the ``dashboard_carousel`` namespace at the
configured level. Everything else (aiohttp access lines, asyncio, Pillow,
Playwright) is held at WARNING unless the carousel itself runs at DEBUG, so
a capture pass reads as one line per dashboard. Crash records go next to
the log file.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from . import paths
from .logging_utils import LOGGER_NAMESPACE, get_module_logger

if TYPE_CHECKING:
    from .settings import CarouselSettings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Screenshots are logged once per capture; 5 MB keeps a few days of rotation.
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

_OWNED = "_dashboard_carousel_handler"


def parse_level(name: str) -> Optional[int]:
    """Numeric level for ``name`` ("info", "DEBUG", ...), or None if unknown."""
    return _LEVELS.get((name or "").strip().lower())


@dataclass(frozen=True)
class LoggingPlan:
    level: int = logging.INFO
    log_file: Optional[Path] = paths.DEFAULT_LOG_FILE
    console: bool = True
    requested_level: str = "info"

    @classmethod
    def from_settings(cls, settings: "CarouselSettings", *, console: bool = True) -> "LoggingPlan":
        level = parse_level(settings.log_level)
        return cls(
            level=logging.INFO if level is None else level,
            log_file=settings.log_file,
            console=console,
            requested_level=settings.log_level,
        )

    @property
    def crash_dir(self) -> Path:
        return self.log_file.parent if self.log_file else paths.CRASH_DIR

    @property
    def library_level(self) -> int:
        return logging.DEBUG if self.level <= logging.DEBUG else logging.WARNING


def _build_handlers(plan: LoggingPlan) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if plan.console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if plan.log_file:
        plan.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            plan.log_file,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        ))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _OWNED, True)
    return handlers


def shutdown_logging() -> None:
    """Flush and detach the handlers ``setup_logging`` installed."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _OWNED, False):
            root.removeHandler(handler)
            handler.close()


def setup_logging(plan: LoggingPlan) -> LoggingPlan:
    """Install ``plan``'s handlers, replacing any earlier carousel handlers.

    Handlers added by someone else (pytest's capture handler, for one) are
    left alone.
    """
    shutdown_logging()

    root = logging.getLogger()
    for handler in _build_handlers(plan):
        root.addHandler(handler)
    root.setLevel(plan.library_level)
    logging.getLogger(LOGGER_NAMESPACE).setLevel(plan.level)

    if parse_level(plan.requested_level) is None:
        get_module_logger("Logging").warning(
            "Unknown log level '%s' - using %s", plan.requested_level, logging.getLevelName(plan.level),
        )
    return plan


__all__ = [
    "LOG_FORMAT",
    "LOG_DATEFMT",
    "LoggingPlan",
    "parse_level",
    "setup_logging",
    "shutdown_logging",
]
