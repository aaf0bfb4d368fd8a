"""
Shutdown Coordinator - Single point of control for graceful shutdown.

Shutdown sequence:
1. A signal (or --once finishing) calls initiate_shutdown()
2. State transitions to REQUESTED, then IN_PROGRESS
3. Cleanup callbacks run in registration order; failures are logged
4. State transitions to COMPLETE and waiters are released
"""

import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable, Optional

from .logging_utils import get_module_logger


class ShutdownState(Enum):
    RUNNING = "running"
    REQUESTED = "requested"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class ShutdownCoordinator:
    """Runs cleanup callbacks exactly once, whoever asks first."""

    def __init__(self):
        self.logger = get_module_logger("ShutdownCoordinator")
        self._state = ShutdownState.RUNNING
        self._requested_event = asyncio.Event()
        self._shutdown_event = asyncio.Event()
        self._cleanup_callbacks: list[Callable[[], Awaitable[None]]] = []
        self._lock = asyncio.Lock()
        self.source: Optional[str] = None

    @property
    def state(self) -> ShutdownState:
        return self._state

    @property
    def is_shutting_down(self) -> bool:
        return self._state in (ShutdownState.REQUESTED, ShutdownState.IN_PROGRESS)

    @property
    def is_complete(self) -> bool:
        return self._state == ShutdownState.COMPLETE

    def register_cleanup(self, callback: Callable[[], Awaitable[None]]) -> None:
        """Callbacks are executed in the order they are registered."""
        self._cleanup_callbacks.append(callback)
        self.logger.debug("Registered cleanup callback: %s", callback.__name__)

    def request_shutdown(self, source: str = "unknown") -> None:
        """Signal-handler safe: only records the request."""
        if self.source is None:
            self.source = source
        self._requested_event.set()

    async def wait_for_request(self) -> str:
        await self._requested_event.wait()
        return self.source or "unknown"

    async def initiate_shutdown(self, source: str = "unknown") -> None:
        """Run every cleanup callback. Repeated calls are no-ops."""
        shutdown_start = time.monotonic()

        async with self._lock:
            if self._state != ShutdownState.RUNNING:
                self.logger.debug(
                    "Shutdown already initiated (state=%s), ignoring request from %s",
                    self._state.value, source,
                )
                return
            self.logger.info("Shutdown initiated by: %s", source)
            self._state = ShutdownState.REQUESTED
            self.request_shutdown(source)

        await self._execute_cleanup()

        async with self._lock:
            self._state = ShutdownState.COMPLETE
            self._shutdown_event.set()

        self.logger.info("Shutdown complete in %.3fs", time.monotonic() - shutdown_start)

    async def _execute_cleanup(self) -> None:
        async with self._lock:
            self._state = ShutdownState.IN_PROGRESS

        total = len(self._cleanup_callbacks)
        for i, callback in enumerate(self._cleanup_callbacks, 1):
            try:
                callback_start = time.monotonic()
                self.logger.debug("Starting cleanup %d/%d: %s", i, total, callback.__name__)
                await callback()
                self.logger.info(
                    "Completed %s in %.3fs", callback.__name__, time.monotonic() - callback_start,
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.error("Error in cleanup callback %s: %s", callback.__name__, e, exc_info=True)

    async def wait_for_shutdown(self) -> None:
        await self._shutdown_event.wait()


_coordinator: Optional[ShutdownCoordinator] = None


def get_shutdown_coordinator() -> ShutdownCoordinator:
    """Get the global shutdown coordinator instance."""
    global _coordinator
    if _coordinator is None:
        _coordinator = ShutdownCoordinator()
    return _coordinator


def reset_shutdown_coordinator() -> None:
    """Reset the global coordinator (mainly for testing)."""
    global _coordinator
    _coordinator = None


__all__ = [
    "ShutdownState",
    "ShutdownCoordinator",
    "get_shutdown_coordinator",
    "reset_shutdown_coordinator",
]
