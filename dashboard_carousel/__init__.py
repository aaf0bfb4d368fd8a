"""Dashboard carousel: periodic dashboard screenshots served to a rotating front-end."""

from __future__ import annotations

import asyncio
import sys
from importlib import metadata
from typing import Optional, Sequence

from .app.master import main

try:
    __version__ = metadata.version("dashboard-carousel")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Run the async entry point and return its exit code."""
    try:
        return asyncio.run(main(list(argv) if argv is not None else None))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130
    except Exception as exc:  # pragma: no cover - fatal guard
        print(f"Fatal error: {exc}", file=sys.stderr)
        return 1


__all__ = ["__version__", "main", "run"]
