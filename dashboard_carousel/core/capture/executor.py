"""
Capture Executor - one screenshot of one dashboard, with bounded retries.

Each attempt walks the same stages:

    IDLE -> PAGE_OPENED -> NAVIGATED -> SETTLED -> SCREENSHOTTED -> CLOSED
                  \\___________\\___________\\______________\\-> FAILED

The page is closed on every exit path. The executor counts exactly one
success or one failure per ``capture()`` call and never touches the
rotation checkpoint.
"""

from __future__ import annotations

import asyncio
import gc
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Tuple

from ..asyncio_utils import Sleeper
from ..browser.interface import BrowserPage, BrowserSession, PageSettings
from ..browser.profiles import WaitUntil
from ..errors import ScreenshotError
from ..file_sync_utils import atomic_write_bytes
from ..logging_utils import get_module_logger
from ..progress import ProgressTracker
from ..targets import Target
from .retry import with_retry

DEFAULT_LOADING_SELECTOR = '[class*="loading"], [class*="Loading"], .dt-loading'


class AttemptStage(Enum):
    IDLE = "idle"
    PAGE_OPENED = "page_opened"
    NAVIGATED = "navigated"
    SETTLED = "settled"
    SCREENSHOTTED = "screenshotted"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass(frozen=True)
class AuthConfig:
    """Static headers/cookies sent with every capture."""
    headers: Mapping[str, str] = field(default_factory=dict)
    cookies: Tuple[Mapping[str, Any], ...] = ()

    @property
    def enabled(self) -> bool:
        return bool(self.headers) or bool(self.cookies)


@dataclass(frozen=True)
class CaptureOptions:
    page: PageSettings = field(default_factory=PageSettings)
    wait_until: WaitUntil = WaitUntil.NETWORK_IDLE
    page_timeout_ms: int = 90_000
    settle_s: float = 90.0
    loading_selector: str = DEFAULT_LOADING_SELECTOR
    loading_extension_s: float = 30.0
    screenshot_timeout_ms: int = 45_000
    max_retries: int = 2
    retry_backoff_s: float = 5.0
    crop_fraction: float = 2 / 3
    auth: AuthConfig = field(default_factory=AuthConfig)
    collect_garbage: bool = True


@dataclass(frozen=True)
class CaptureResult:
    target_id: str
    success: bool
    attempts: int
    duration_s: float
    image_path: Optional[Path] = None
    error: Optional[str] = None
    stages: Tuple[AttemptStage, ...] = ()


class AttemptTrace:
    """Stages visited by a single attempt."""

    def __init__(self) -> None:
        self.stages: List[AttemptStage] = [AttemptStage.IDLE]

    @property
    def stage(self) -> AttemptStage:
        return self.stages[-1]

    def advance(self, stage: AttemptStage) -> None:
        self.stages.append(stage)


class CaptureExecutor:
    """Performs captures against whatever session the scheduler leases."""

    def __init__(
        self,
        shots_dir: Path,
        options: CaptureOptions,
        progress: ProgressTracker,
        *,
        sleep: Sleeper = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.logger = get_module_logger("CaptureExecutor")
        self.shots_dir = Path(shots_dir)
        self.options = options
        self.progress = progress
        self._sleep = sleep
        self._clock = clock
        self.clip = options.page.viewport.crop(options.crop_fraction)

    def image_path(self, target: Target) -> Path:
        return self.shots_dir / target.image_name

    async def capture(self, session: BrowserSession, target: Target) -> CaptureResult:
        """Capture ``target`` with up to ``max_retries`` attempts."""
        started = self._clock()
        traces: List[AttemptTrace] = []

        async def _attempt(attempt: int) -> Path:
            trace = AttemptTrace()
            traces.append(trace)
            self.logger.info(
                "Navigating to %s (attempt %d/%d): %s",
                target.id, attempt, self.options.max_retries, target.url,
            )
            return await self._attempt(session, target, trace)

        outcome = await with_retry(
            _attempt,
            max_attempts=self.options.max_retries,
            backoff_s=self.options.retry_backoff_s,
            label=f"Capture {target.id}",
            logger=self.logger,
            sleep=self._sleep,
        )
        duration = self._clock() - started
        stages = tuple(traces[-1].stages) if traces else ()

        if outcome.succeeded:
            await self.progress.record_success()
            self.logger.info("[OK] %s captured in %.1fs", target.id, duration)
            if self.options.collect_garbage:
                gc.collect()
            return CaptureResult(
                target_id=target.id,
                success=True,
                attempts=outcome.attempts,
                duration_s=duration,
                image_path=outcome.value,
                stages=stages,
            )

        await self.progress.record_failure()
        self.logger.error(
            "[FAIL] %s after %d attempts: %s", target.id, outcome.attempts, outcome.error,
        )
        return CaptureResult(
            target_id=target.id,
            success=False,
            attempts=outcome.attempts,
            duration_s=duration,
            error=str(outcome.error) if outcome.error else None,
            stages=stages,
        )

    async def _attempt(self, session: BrowserSession, target: Target, trace: AttemptTrace) -> Path:
        page: Optional[BrowserPage] = None
        try:
            page = await session.new_page(self.options.page)
            trace.advance(AttemptStage.PAGE_OPENED)

            await self._apply_auth(page)
            await page.goto(target.url, self.options.wait_until, self.options.page_timeout_ms)
            trace.advance(AttemptStage.NAVIGATED)

            self.logger.debug("Waiting %.0fs for %s to render", self.options.settle_s, target.id)
            await self._sleep(self.options.settle_s)
            await self._wait_for_loading_indicators(page, target)
            trace.advance(AttemptStage.SETTLED)

            png = await page.screenshot(self.clip, self.options.screenshot_timeout_ms)
            path = await self._write_image(target, png)
            trace.advance(AttemptStage.SCREENSHOTTED)
            return path
        except Exception:
            trace.advance(AttemptStage.FAILED)
            raise
        finally:
            if page is not None:
                await self._close_page(page, target)
                if trace.stage is not AttemptStage.FAILED:
                    trace.advance(AttemptStage.CLOSED)

    async def _apply_auth(self, page: BrowserPage) -> None:
        auth = self.options.auth
        if auth.headers:
            await page.set_extra_headers(auth.headers)
        if auth.cookies:
            await page.add_cookies(auth.cookies)

    async def _wait_for_loading_indicators(self, page: BrowserPage, target: Target) -> None:
        """Wait one extension period if loading indicators are still visible."""
        selector = self.options.loading_selector
        if not selector or self.options.loading_extension_s <= 0:
            return
        try:
            count = await page.evaluate_count(selector)
        except Exception as exc:
            self.logger.debug("Loading probe failed for %s: %s", target.id, exc)
            return
        if count > 0:
            self.logger.info(
                "%s still loading (%d indicators), waiting %.0fs more",
                target.id, count, self.options.loading_extension_s,
            )
            await self._sleep(self.options.loading_extension_s)

    async def _write_image(self, target: Target, png: bytes) -> Path:
        if not png:
            raise ScreenshotError(f"{target.id}: empty screenshot")
        try:
            return await asyncio.to_thread(atomic_write_bytes, self.image_path(target), png)
        except OSError as exc:
            raise ScreenshotError(f"{target.id}: could not write image: {exc}") from exc

    async def _close_page(self, page: BrowserPage, target: Target) -> None:
        try:
            await page.close()
        except Exception as exc:
            self.logger.warning("Error closing page for %s: %s", target.id, exc)


__all__ = [
    "DEFAULT_LOADING_SELECTOR",
    "AttemptStage",
    "AuthConfig",
    "CaptureOptions",
    "CaptureResult",
    "CaptureExecutor",
]
