"""
Rotation Scheduler - decides which dashboard is captured next and when.

Two cadences are supported:

    rotate  one step (one index, or one concurrent batch) every
            ``interval / N * step_size`` seconds, so each dashboard is
            refreshed roughly once per interval
    sweep   a full pass over all N dashboards with a short pause between
            steps, then wait out the rest of the interval

Without a resumable checkpoint, ``rotate`` starts with a warm-up sweep so
the carousel fills up quickly after a fresh deploy.

The checkpoint is written after every step for every attempted index
(success or failure) in visit order, so a restart continues right
after the last dashboard that was tried.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Union

from .asyncio_utils import Sleeper, cancel_and_wait, create_logged_task
from .browser.session_manager import BrowserSessionManager
from .capture.executor import CaptureExecutor, CaptureResult
from .capture_state import CaptureStateStore
from .errors import LaunchError
from .logging_utils import get_module_logger
from .progress import ProgressSnapshot, ProgressTracker
from .targets import Target


class ScheduleMode(Enum):
    ROTATE = "rotate"
    SWEEP = "sweep"

    @classmethod
    def parse(cls, value: str) -> "ScheduleMode":
        normalized = (value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown schedule mode '{value}'")


@dataclass(frozen=True)
class SchedulerParams:
    mode: ScheduleMode = ScheduleMode.ROTATE
    interval_s: float = 30 * 60.0
    batch_size: int = 1
    inter_step_pause_s: float = 5.0


def per_target_interval(total_interval_s: float, count: int) -> float:
    """Spacing between single-target steps so each target refreshes once per interval."""
    if count <= 0:
        return 0.0
    return total_interval_s / count


class RotationCursor:
    """Index arithmetic for the rotation.

    Visit ``k`` (0-based, counted from construction) targets index
    ``(start + k) mod count``. A pass is ``count`` consecutive visits, and
    batches never straddle two passes.
    """

    def __init__(self, count: int, start: int = 0):
        if count <= 0:
            raise ValueError("RotationCursor needs at least one target")
        self.count = count
        self.start = start % count
        self._visits = 0

    def visit(self, k: int) -> int:
        return (self.start + k) % self.count

    @property
    def position(self) -> int:
        """Index the next visit will capture."""
        return self.visit(self._visits)

    @property
    def pass_offset(self) -> int:
        return self._visits % self.count

    @property
    def at_pass_start(self) -> bool:
        return self.pass_offset == 0

    @property
    def passes_completed(self) -> int:
        return self._visits // self.count

    def next_batch(self, size: int) -> List[int]:
        """Take up to ``size`` indices, stopping at the end of the current pass."""
        take = min(max(1, int(size)), self.count - self.pass_offset)
        batch = [self.visit(self._visits + i) for i in range(take)]
        self._visits += take
        return batch

    def finish_pass(self) -> int:
        """Skip the remaining visits of the current pass; returns how many were skipped."""
        if self.at_pass_start:
            return 0
        skipped = self.count - self.pass_offset
        self._visits += skipped
        return skipped


StepOutcome = Union[CaptureResult, LaunchError]


class RotationScheduler:
    """Drives captures forever in a background task."""

    def __init__(
        self,
        targets: Sequence[Target],
        executor: CaptureExecutor,
        sessions: BrowserSessionManager,
        state_store: CaptureStateStore,
        progress: ProgressTracker,
        params: SchedulerParams = SchedulerParams(),
        *,
        sleep: Sleeper = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.logger = get_module_logger("RotationScheduler")
        self.targets = list(targets)
        self.executor = executor
        self.sessions = sessions
        self.state_store = state_store
        self.progress = progress
        self.params = params
        self._sleep = sleep
        self._clock = clock

        self._task: Optional[asyncio.Task] = None
        self._last_attempted: Optional[int] = None

    @property
    def count(self) -> int:
        return len(self.targets)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_attempted(self) -> Optional[int]:
        return self._last_attempted

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> Optional[asyncio.Task]:
        """Start the rotation loop in the background. No-op without targets."""
        if not self.targets:
            self.logger.warning("No targets configured - capture loop not started")
            return None
        if self.running:
            return self._task
        self._task = create_logged_task(
            self._run(), logger=self.logger, context="RotationScheduler.loop",
        )
        return self._task

    async def stop(self, timeout: Optional[float] = None) -> None:
        task, self._task = self._task, None
        await cancel_and_wait(task, timeout=timeout)
        if task is not None:
            self.logger.info("Capture loop stopped")

    async def persist_checkpoint(self) -> bool:
        """Re-save the last attempted index. Used on shutdown."""
        if self._last_attempted is None:
            return False
        return await self.state_store.save(self._last_attempted)

    async def run_once(self) -> ProgressSnapshot:
        """Capture one full pass starting at the resume point, then return."""
        if not self.targets:
            self.logger.warning("No targets configured - nothing to capture")
            return self.progress.snapshot()
        cursor, _ = await self._initial_cursor()
        await self._run_pass(cursor)
        return self.progress.snapshot()

    # =========================================================================
    # Loop
    # =========================================================================

    async def _initial_cursor(self) -> tuple[RotationCursor, bool]:
        state = await self.state_store.load()
        resume = state.resume_index(self.count, self.state_store.targets_digest)
        if resume is None:
            if state.has_checkpoint:
                self.logger.info(
                    "Checkpoint lastIndex=%d does not match the current %d targets - starting at index 0",
                    state.last_index, self.count,
                )
            return RotationCursor(self.count, 0), False

        self.logger.info(
            "Resuming rotation at %s (%d/%d)",
            self.targets[resume].id, resume + 1, self.count,
        )
        return RotationCursor(self.count, resume), True

    async def _run(self) -> None:
        cursor, resumed = await self._initial_cursor()
        interval = per_target_interval(self.params.interval_s, self.count)
        self.logger.info(
            "%s mode, %d targets, batch size %d, one target every %.0fs",
            self.params.mode.value, self.count, self.params.batch_size, interval,
        )

        if self.params.mode is ScheduleMode.SWEEP:
            await self._sweep_forever(cursor)
            return

        if not resumed:
            self.logger.info("No resumable checkpoint - warm-up pass over all targets")
            await self._run_pass(cursor)
            await self._sleep(interval)
        await self._rotate_forever(cursor, interval)

    async def _rotate_forever(self, cursor: RotationCursor, interval: float) -> None:
        while True:
            started = self._clock()
            size = 0
            try:
                if cursor.at_pass_start:
                    await self.progress.begin_pass(self.count)
                indices = cursor.next_batch(self.params.batch_size)
                size = len(indices)
                await self._run_step(indices)
                await self.sessions.checkpoint(end_of_pass=cursor.at_pass_start)
            except asyncio.CancelledError:
                raise
            except Exception:
                self.logger.exception("Rotation step failed - continuing with the next target")

            delay = interval * max(1, size) - (self._clock() - started)
            await self._sleep(max(0.0, delay))

    async def _sweep_forever(self, cursor: RotationCursor) -> None:
        while True:
            started = self._clock()
            try:
                await self._run_pass(cursor)
            except asyncio.CancelledError:
                raise
            except Exception:
                self.logger.exception("Capture pass failed")
                cursor.finish_pass()

            delay = self.params.interval_s - (self._clock() - started)
            if delay > 0:
                self.logger.info("Next pass in %.0fs", delay)
            await self._sleep(max(0.0, delay))

    async def _run_pass(self, cursor: RotationCursor) -> None:
        """Visit every target once, starting at the cursor's position."""
        started = self._clock()
        await self.progress.begin_pass(self.count)
        await self.progress.set_in_progress(True)
        try:
            while True:
                indices = cursor.next_batch(self.params.batch_size)
                launched = await self._run_step(indices, mark_progress=False)
                end_of_pass = cursor.at_pass_start
                await self.sessions.checkpoint(end_of_pass=end_of_pass)

                if not launched:
                    skipped = cursor.finish_pass()
                    if skipped:
                        self.logger.error("Browser unavailable - abandoning the remaining %d targets of this pass", skipped)
                    break
                if end_of_pass:
                    break
                await self._sleep(self.params.inter_step_pause_s)
        finally:
            await self.progress.set_in_progress(False)

        snapshot = self.progress.snapshot()
        self.logger.info(
            "Pass finished in %.0fs: %d successful, %d failed, %d total",
            self._clock() - started, snapshot.successful, snapshot.failed, snapshot.total,
        )

    # =========================================================================
    # Steps
    # =========================================================================

    async def _run_step(self, indices: List[int], *, mark_progress: bool = True) -> bool:
        """Capture ``indices`` and persist them. Returns False on LaunchError."""
        if mark_progress:
            await self.progress.set_in_progress(True)
        try:
            if len(indices) == 1:
                outcomes: List[StepOutcome] = [await self._capture_index(indices[0])]
            else:
                outcomes = list(await asyncio.gather(*(self._capture_index(i) for i in indices)))
        finally:
            if mark_progress:
                await self.progress.set_in_progress(False)

        for index in indices:
            await self.state_store.save(index)
            self._last_attempted = index
        await self.progress.record_completed(len(indices))

        return not any(isinstance(outcome, LaunchError) for outcome in outcomes)

    async def _capture_index(self, index: int) -> StepOutcome:
        target = self.targets[index]
        self.logger.info("Capturing %s (%d/%d)", target.id, index + 1, self.count)
        try:
            async with self.sessions.lease() as session:
                return await self.executor.capture(session, target)
        except LaunchError as exc:
            self.logger.error("Browser launch failed for %s: %s", target.id, exc)
            await self.progress.record_failure()
            return exc


__all__ = [
    "ScheduleMode",
    "SchedulerParams",
    "RotationCursor",
    "RotationScheduler",
    "per_target_interval",
]
