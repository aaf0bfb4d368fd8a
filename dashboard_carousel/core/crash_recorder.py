"""
Crash records for errors nothing else handled.

Uncaught exceptions (``sys.excepthook``) and unhandled asyncio errors (the
loop's exception handler) are logged and written to
``crash-<epoch ms>.json`` in the logs directory. The process keeps running
and keeps serving the last images it has.
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
import time
import traceback
from pathlib import Path
from typing import Any, Dict, Optional

import psutil

from .file_sync_utils import atomic_write_text
from .logging_utils import get_module_logger

logger = get_module_logger("CrashRecorder")


class CrashRecorder:
    def __init__(self, crash_dir: Path):
        self.crash_dir = Path(crash_dir)
        self.records_written = 0

    def _process_info(self) -> Dict[str, Any]:
        try:
            process = psutil.Process(os.getpid())
            mem_info = process.memory_info()
            return {
                "pid": process.pid,
                "uptime": round(time.time() - process.create_time(), 3),
                "memory": {"rss": mem_info.rss, "vms": mem_info.vms},
            }
        except psutil.Error:
            return {"pid": os.getpid()}

    def record(self, exc: Optional[BaseException], message: str, kind: str) -> Optional[Path]:
        """Write one crash record. Returns its path, or None if it could not be written."""
        now_ms = int(time.time() * 1000)
        error: Dict[str, Any] = {"message": message}
        if exc is not None:
            error = {
                "name": type(exc).__name__,
                "message": str(exc) or message,
                "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            }
        payload = {
            "timestamp": now_ms,
            "kind": kind,
            "error": error,
            "process": self._process_info(),
        }
        path = self.crash_dir / f"crash-{now_ms}.json"
        try:
            atomic_write_text(path, json.dumps(payload, indent=2, default=str))
        except OSError as e:
            logger.error("Could not write crash record %s: %s", path, e)
            return None
        self.records_written += 1
        return path

    # ------------------------------------------------------------------
    # Hooks

    def handle_exception(self, exc_type, exc_value, exc_traceback) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))
        self.record(exc_value, "Uncaught exception", "uncaught")

    def handle_asyncio_exception(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        exception = context.get("exception")
        message = context.get("message", "Unhandled asyncio exception")
        if exception:
            logger.error("Asyncio exception: %s", message, exc_info=exception)
        else:
            logger.error("Asyncio error: %s, context: %s", message, context)
        self.record(exception, message, "asyncio")

    def install(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        sys.excepthook = self.handle_exception
        if loop is not None:
            loop.set_exception_handler(self.handle_asyncio_exception)


__all__ = ["CrashRecorder"]
