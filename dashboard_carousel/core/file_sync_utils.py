"""
Durable file writes for screenshots and the rotation checkpoint.

Readers (the HTTP static handler, the next process after a restart) must
never observe a half-written file, so every write goes to a temporary file
in the destination directory, is flushed to disk, and is then renamed over
the destination with ``os.replace``.
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Union

from .logging_utils import get_module_logger

logger = get_module_logger("FileSyncUtils")

_msvcrt = None
if sys.platform == "win32":
    try:
        import msvcrt as _msvcrt
    except ImportError:
        logger.debug("msvcrt not available - fsync will be no-op on Windows")


def safe_fsync(fd: int) -> bool:
    """Sync a file descriptor to disk; failures are logged at debug level."""
    try:
        if sys.platform == "win32":
            if _msvcrt is None:
                return False
            _msvcrt._commit(fd)
        else:
            os.fsync(fd)
        return True
    except OSError as e:
        logger.debug("fsync failed for fd %d: %s", fd, e)
        return False


def fsync_file(file_obj) -> bool:
    """Flush and sync an open file object to disk."""
    try:
        file_obj.flush()
        return safe_fsync(file_obj.fileno())
    except (OSError, AttributeError, ValueError) as e:
        logger.debug("fsync_file failed: %s", e)
        return False


def atomic_write_bytes(path: Union[str, Path], data: bytes) -> Path:
    """Replace ``path`` with ``data`` atomically.

    The modification time of the new file is forced strictly past the
    replaced file's so cache-busting URLs always change. Raises ``OSError``
    on failure; the previous file is left untouched in that case.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    previous_mtime_ns = None
    try:
        previous_mtime_ns = target.stat().st_mtime_ns
    except FileNotFoundError:
        pass

    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
            fsync_file(tmp)
        os.replace(tmp_path, target)
    finally:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass

    if previous_mtime_ns is not None:
        current_mtime_ns = target.stat().st_mtime_ns
        if current_mtime_ns <= previous_mtime_ns:
            bumped = previous_mtime_ns + 1_000_000
            os.utime(target, ns=(bumped, bumped))

    return target


def atomic_write_text(path: Union[str, Path], text: str, encoding: str = "utf-8") -> Path:
    return atomic_write_bytes(path, text.encode(encoding))


__all__ = ["safe_fsync", "fsync_file", "atomic_write_bytes", "atomic_write_text"]
