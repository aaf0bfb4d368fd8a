"""
Playwright-backed implementation of the browser protocols.

Each page gets its own browser context: viewport, scale factor, extra
headers and cookies are context scoped in Playwright, and closing the
context releases everything the page allocated. Playwright exceptions are
translated to the pipeline's error types here so nothing above this module
imports Playwright.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional, Sequence

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..errors import LaunchError, NavigationError, NavigationTimeout, ScreenshotError
from ..logging_utils import get_module_logger
from .interface import ClipRegion, PageSettings
from .profiles import LaunchOptions, WaitUntil


logger = get_module_logger("PlaywrightDriver")


class PlaywrightPage:
    """A single tab plus the context that owns it."""

    def __init__(self, context: BrowserContext, page: Page):
        self._context = context
        self._page = page

    async def set_extra_headers(self, headers: Mapping[str, str]) -> None:
        await self._context.set_extra_http_headers(dict(headers))

    async def add_cookies(self, cookies: Sequence[Mapping[str, Any]]) -> None:
        await self._context.add_cookies([dict(cookie) for cookie in cookies])

    async def goto(self, url: str, wait_until: WaitUntil, timeout_ms: int) -> None:
        try:
            await self._page.goto(url, wait_until=wait_until.value, timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeout(url, timeout_ms) from exc
        except PlaywrightError as exc:
            raise NavigationError(url, exc.message) from exc

    async def evaluate_count(self, selector: str) -> int:
        return await self._page.locator(selector).count()

    async def screenshot(self, clip: ClipRegion, timeout_ms: int) -> bytes:
        try:
            return await self._page.screenshot(clip=clip.to_dict(), timeout=timeout_ms, type="png")
        except PlaywrightError as exc:
            raise ScreenshotError(exc.message) from exc

    async def close(self) -> None:
        # Closing the context also closes the page.
        await self._context.close()


class PlaywrightSession:
    """One Chromium process."""

    def __init__(self, browser: Browser):
        self._browser = browser

    async def new_page(self, settings: PageSettings) -> PlaywrightPage:
        viewport = settings.viewport
        context = await self._browser.new_context(
            viewport={"width": viewport.width, "height": viewport.height},
            device_scale_factor=viewport.device_scale_factor,
        )
        context.set_default_navigation_timeout(settings.navigation_timeout_ms)
        context.set_default_timeout(settings.action_timeout_ms)
        try:
            page = await context.new_page()
        except PlaywrightError:
            await context.close()
            raise
        return PlaywrightPage(context, page)

    def is_connected(self) -> bool:
        return self._browser.is_connected()

    async def close(self) -> None:
        await self._browser.close()


class PlaywrightDriver:
    """Starts the Playwright runtime lazily and launches Chromium sessions."""

    def __init__(self, executable_path: Optional[str] = None):
        self.executable_path = executable_path or None
        self._playwright: Optional[Playwright] = None
        self._lock = asyncio.Lock()

    async def _runtime(self) -> Playwright:
        async with self._lock:
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            return self._playwright

    async def launch(self, options: LaunchOptions) -> PlaywrightSession:
        try:
            playwright = await self._runtime()
            browser = await playwright.chromium.launch(
                headless=options.headless,
                args=list(options.args),
                timeout=options.launch_timeout_ms,
                executable_path=self.executable_path,
            )
        except PlaywrightError as exc:
            raise LaunchError(f"Chromium failed to start: {exc.message}") from exc
        except OSError as exc:
            raise LaunchError(f"Chromium failed to start: {exc}") from exc

        logger.debug("Chromium %s launched (%s profile)", browser.version, options.profile.value)
        return PlaywrightSession(browser)

    async def stop(self) -> None:
        async with self._lock:
            if self._playwright is None:
                return
            playwright, self._playwright = self._playwright, None
        try:
            await playwright.stop()
        except PlaywrightError as exc:
            logger.warning("Error stopping Playwright: %s", exc.message)


__all__ = ["PlaywrightDriver", "PlaywrightSession", "PlaywrightPage"]
