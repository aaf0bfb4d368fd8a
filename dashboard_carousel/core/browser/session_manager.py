"""
Browser Session Manager - owns every browser process the scheduler uses.

Recycling policy trades memory growth against launch latency:

    capture  fresh browser per capture, closed right after (lowest peak memory)
    batch    one shared browser, recycled once ``recycle_every`` captures ran
    pass     one shared browser for a whole rotation pass

Launch and close are serialized; pages on a shared session are independent
and may be created concurrently.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator, Optional, Set

from ..logging_utils import get_module_logger
from .interface import BrowserDriver, BrowserSession
from .profiles import ResourceProfile, launch_options


class SessionPolicy(Enum):
    """When a browser process is closed and replaced."""
    PER_PASS = "pass"
    PER_BATCH = "batch"
    PER_CAPTURE = "capture"

    @classmethod
    def parse(cls, value: str) -> "SessionPolicy":
        normalized = (value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown session policy '{value}'")


class BrowserSessionManager:
    """Launches, shares and recycles browser sessions."""

    def __init__(
        self,
        driver: BrowserDriver,
        profile: ResourceProfile = ResourceProfile.CONSTRAINED,
        policy: SessionPolicy = SessionPolicy.PER_CAPTURE,
        recycle_every: int = 4,
        headless: bool = True,
    ):
        self.logger = get_module_logger("SessionManager")
        self.driver = driver
        self.profile = profile
        self.policy = policy
        self.recycle_every = max(1, int(recycle_every))
        self.headless = headless

        self._lock = asyncio.Lock()
        self._shared: Optional[BrowserSession] = None
        self._transient: Set[BrowserSession] = set()
        self._captures_since_launch = 0
        self.launch_count = 0

    @property
    def has_shared_session(self) -> bool:
        return self._shared is not None

    @property
    def captures_since_launch(self) -> int:
        return self._captures_since_launch

    # =========================================================================
    # Acquire / release
    # =========================================================================

    async def _launch(self) -> BrowserSession:
        options = launch_options(self.profile, headless=self.headless)
        self.logger.info("Launching browser (%s profile, %s policy)", self.profile.value, self.policy.value)
        session = await self.driver.launch(options)
        self.launch_count += 1
        return session

    async def acquire(self) -> BrowserSession:
        """Return the shared session, launching it if needed. Raises LaunchError."""
        async with self._lock:
            if self._shared is not None and not self._shared.is_connected():
                self.logger.warning("Shared browser disconnected - relaunching")
                stale, self._shared = self._shared, None
                await self._close_quietly(stale)

            if self._shared is None:
                self._shared = await self._launch()
                self._captures_since_launch = 0
            return self._shared

    async def release(self, session: BrowserSession) -> None:
        """Close ``session``; close failures are logged, never raised."""
        async with self._lock:
            if session is self._shared:
                self._shared = None
            self._transient.discard(session)
            await self._close_quietly(session)

    async def _close_quietly(self, session: BrowserSession) -> None:
        try:
            await session.close()
        except Exception as exc:
            self.logger.warning("Error closing browser: %s", exc)

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[BrowserSession]:
        """Session for one capture, following the recycling policy."""
        if self.policy is SessionPolicy.PER_CAPTURE:
            async with self._lock:
                session = await self._launch()
                self._transient.add(session)
            try:
                yield session
            finally:
                await self.release(session)
            return

        session = await self.acquire()
        try:
            yield session
        finally:
            self._captures_since_launch += 1

    # =========================================================================
    # Recycling
    # =========================================================================

    async def checkpoint(self, *, end_of_pass: bool = False) -> None:
        """Called by the scheduler between steps, when no capture is running."""
        if self.policy is SessionPolicy.PER_BATCH and self._captures_since_launch >= self.recycle_every:
            await self.recycle(f"{self._captures_since_launch} captures since launch")
        elif self.policy is SessionPolicy.PER_PASS and end_of_pass:
            await self.recycle("end of rotation pass")

    async def recycle(self, reason: str) -> None:
        async with self._lock:
            session, self._shared = self._shared, None
            self._captures_since_launch = 0
            if session is not None:
                self.logger.info("Closing shared browser (%s)", reason)
                await self._close_quietly(session)

    async def close(self, timeout: Optional[float] = None) -> bool:
        """Close every open session and stop the driver within ``timeout``.

        Returns False when closing took longer than ``timeout``.
        """
        async def _close_all() -> None:
            async with self._lock:
                sessions = list(self._transient)
                if self._shared is not None:
                    sessions.append(self._shared)
                self._shared = None
                self._transient.clear()
                for session in sessions:
                    await self._close_quietly(session)
            await self.driver.stop()

        try:
            await asyncio.wait_for(_close_all(), timeout=timeout)
        except asyncio.TimeoutError:
            self.logger.warning("Browser close exceeded %.1fs", timeout or 0.0)
            return False
        self.logger.info("Browser sessions closed")
        return True


__all__ = ["SessionPolicy", "BrowserSessionManager"]
