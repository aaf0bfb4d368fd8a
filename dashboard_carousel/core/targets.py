"""Target registry: turns the configured URL string into capture targets."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Sequence

from .logging_utils import get_module_logger

TARGET_DELIMITER = ";;;"
TARGET_ID_PREFIX = "dashboard"

logger = get_module_logger("TargetRegistry")


@dataclass(frozen=True)
class Target:
    """One configured dashboard URL plus its position-derived id."""
    id: str
    url: str

    @property
    def image_name(self) -> str:
        return f"{self.id}.png"


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def parse_targets(raw: str | None, delimiter: str = TARGET_DELIMITER) -> list[Target]:
    """Parse a delimiter-separated URL list.

    Ids are assigned as ``dashboard<position>`` after empty entries are
    dropped, so ``"a;;;;;;b"`` yields ``dashboard1`` and ``dashboard2``.
    Empty input yields an empty list.
    """
    if not raw:
        return []

    cleaned = _strip_quotes(raw.strip())
    urls = [part.strip() for part in cleaned.split(delimiter)]
    return [
        Target(id=f"{TARGET_ID_PREFIX}{position}", url=url)
        for position, url in enumerate((u for u in urls if u), start=1)
    ]


def targets_digest(targets: Sequence[Target]) -> str:
    """Short fingerprint of the ordered URL list."""
    joined = "\n".join(target.url for target in targets)
    return hashlib.sha1(joined.encode("utf-8")).hexdigest()[:12]


def log_targets(targets: Sequence[Target]) -> None:
    if not targets:
        logger.warning("No dashboards configured - serving an empty carousel")
        return
    logger.info("Configured %d dashboards", len(targets))
    for target in targets:
        logger.debug("%s -> %s", target.id, target.url)


__all__ = [
    "TARGET_DELIMITER",
    "Target",
    "parse_targets",
    "targets_digest",
    "log_targets",
]
