"""Application entrypoints for the carousel."""

from .master import main, parse_args

__all__ = ["main", "parse_args"]
