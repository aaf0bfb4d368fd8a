"""
Rotation checkpoint persistence.

A single JSON record remembers the last index the scheduler attempted so a
restarted process continues the rotation instead of starting over:

    {"lastIndex": 3, "timestamp": 1718000000000, "pid": 4242, "targetsDigest": "9f2c..."}

Rules:
1. Read once at startup. Missing or unreadable files mean "no checkpoint".
2. Written after every capture attempt, success or failure.
3. Writes are atomic (temp file + fsync + rename) and serialized.
4. Only the Rotation Scheduler writes it.
"""

from __future__ import annotations

import asyncio
import json
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

from .errors import StateIOError
from .file_sync_utils import atomic_write_text
from .logging_utils import get_module_logger


@dataclass(frozen=True)
class CaptureState:
    """Persisted rotation checkpoint."""
    last_index: int = -1
    timestamp: int = 0
    pid: int = 0
    targets_digest: Optional[str] = None

    @property
    def has_checkpoint(self) -> bool:
        return self.last_index >= 0

    def age_seconds(self, now_ms: Optional[int] = None) -> Optional[int]:
        if not self.timestamp:
            return None
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        return max(0, round((now_ms - self.timestamp) / 1000))

    def resume_index(self, count: int, digest: Optional[str] = None) -> Optional[int]:
        """Index to capture next after a restart, or None for a full pass.

        A checkpoint written for a different URL list (stored digest differs
        from ``digest``) or pointing past the current list is not resumable.
        """
        if count <= 0 or not self.has_checkpoint or self.last_index >= count:
            return None
        if digest and self.targets_digest and digest != self.targets_digest:
            return None
        return (self.last_index + 1) % count

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "lastIndex": self.last_index,
            "timestamp": self.timestamp,
            "pid": self.pid,
        }
        if self.targets_digest:
            data["targetsDigest"] = self.targets_digest
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaptureState":
        try:
            last_index = int(data.get("lastIndex", -1))
            timestamp = int(data.get("timestamp", 0) or 0)
            pid = int(data.get("pid", 0) or 0)
        except (TypeError, ValueError) as exc:
            raise StateIOError(f"malformed capture state: {exc}") from exc
        digest = data.get("targetsDigest")
        return cls(
            last_index=last_index,
            timestamp=timestamp,
            pid=pid,
            targets_digest=str(digest) if digest else None,
        )


class CaptureStateStore:
    """Reads and writes the rotation checkpoint file."""

    def __init__(self, path: Path, targets_digest: Optional[str] = None):
        self.logger = get_module_logger("CaptureStateStore")
        self.path = Path(path)
        self.targets_digest = targets_digest
        self._write_lock = asyncio.Lock()
        self._current = CaptureState()

    @property
    def current(self) -> CaptureState:
        """Last record read from or successfully written to disk."""
        return self._current

    async def load(self) -> CaptureState:
        """Read the checkpoint; falls back to the default record on any error."""
        try:
            state = await self._read()
        except StateIOError as exc:
            self.logger.error("Could not read capture state, starting from index 0: %s", exc)
            state = CaptureState()

        self._current = state
        if state.has_checkpoint:
            self.logger.info(
                "Checkpoint found: lastIndex=%d written by pid %d (%s s ago)",
                state.last_index, state.pid, state.age_seconds(),
            )
        else:
            self.logger.info("No checkpoint found - fresh start")
        return state

    async def _read(self) -> CaptureState:
        if not await asyncio.to_thread(self.path.exists):
            return CaptureState()
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as fh:
                raw = await fh.read()
            data = json.loads(raw)
        except (OSError, ValueError) as exc:
            raise StateIOError(f"{self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StateIOError(f"{self.path}: expected a JSON object")
        return CaptureState.from_dict(data)

    async def save(self, index: int) -> bool:
        """Persist ``index`` as the last attempted one.

        Returns False (after logging) when the write fails; callers keep
        capturing either way.
        """
        state = CaptureState(
            last_index=index,
            timestamp=int(time.time() * 1000),
            pid=os.getpid(),
            targets_digest=self.targets_digest,
        )
        payload = json.dumps(state.to_dict(), indent=2)

        async with self._write_lock:
            try:
                await asyncio.to_thread(atomic_write_text, self.path, payload)
            except OSError as exc:
                self.logger.error("Failed to save capture state (index %d): %s", index, exc)
                return False
            self._current = state

        self.logger.debug("Checkpoint saved: lastIndex=%d", index)
        return True


__all__ = ["CaptureState", "CaptureStateStore"]
