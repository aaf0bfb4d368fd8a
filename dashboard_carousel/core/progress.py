"""
Progress tracking for the capture pipeline.

The tracker is the single mutation point for the process-wide counters.
Captures running in the same batch finish in overlapping windows, so every
mutation goes through an ``asyncio.Lock``. The HTTP layer only ever sees
immutable ``ProgressSnapshot`` copies.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time copy of the capture counters."""
    in_progress: bool = False
    completed: int = 0
    successful: int = 0
    failed: int = 0
    total: int = 0

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.completed / self.total * 100)

    def to_dict(self) -> dict:
        return {
            "inProgress": self.in_progress,
            "completed": self.completed,
            "successful": self.successful,
            "failed": self.failed,
            "total": self.total,
            "percentage": self.percentage,
        }


class ProgressTracker:
    """Serialized owner of the capture counters."""

    def __init__(self, total: int = 0):
        self._state = ProgressSnapshot(total=total)
        self._lock = asyncio.Lock()

    def snapshot(self) -> ProgressSnapshot:
        return self._state

    async def begin_pass(self, total: int) -> None:
        """Reset counters at the start of a full rotation pass."""
        async with self._lock:
            self._state = ProgressSnapshot(in_progress=self._state.in_progress, total=total)

    async def set_in_progress(self, value: bool) -> None:
        async with self._lock:
            self._state = replace(self._state, in_progress=value)

    async def record_completed(self, count: int = 1) -> None:
        async with self._lock:
            self._state = replace(self._state, completed=self._state.completed + count)

    async def record_success(self) -> None:
        async with self._lock:
            self._state = replace(self._state, successful=self._state.successful + 1)

    async def record_failure(self) -> None:
        async with self._lock:
            self._state = replace(self._state, failed=self._state.failed + 1)


__all__ = ["ProgressSnapshot", "ProgressTracker"]
