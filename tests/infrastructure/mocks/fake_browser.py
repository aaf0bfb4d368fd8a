"""Fake browser implementing the BrowserDriver/BrowserSession/BrowserPage protocols.

Behaviour is driven by a shared ``BrowserBehavior`` so a test can make one
URL time out, fail only the first N navigations, report loading
indicators, or refuse to launch, and then inspect every call afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from dashboard_carousel.core.browser.interface import ClipRegion, PageSettings
from dashboard_carousel.core.browser.profiles import LaunchOptions, WaitUntil
from dashboard_carousel.core.errors import LaunchError, NavigationTimeout

# Smallest byte string the executor accepts as "an image".
FAKE_PNG = b"\x89PNG\r\n\x1a\nfake-image-data"


@dataclass
class BrowserBehavior:
    """Knobs shared by every fake object created from one driver."""
    failing_urls: Dict[str, Exception] = field(default_factory=dict)
    fail_first: Dict[str, int] = field(default_factory=dict)
    loading_count: int = 0
    probe_error: Optional[Exception] = None
    screenshot_error: Optional[Exception] = None
    close_error: Optional[Exception] = None
    launch_errors: int = 0
    png: bytes = FAKE_PNG

    # Recorded calls
    navigations: List[str] = field(default_factory=list)
    screenshots: List[ClipRegion] = field(default_factory=list)
    probes: List[str] = field(default_factory=list)
    headers: List[Dict[str, str]] = field(default_factory=list)
    cookies: List[List[Dict[str, Any]]] = field(default_factory=list)
    pages_opened: int = 0
    pages_closed: int = 0


class FakePage:
    def __init__(self, behavior: BrowserBehavior, settings: PageSettings):
        self.behavior = behavior
        self.settings = settings
        self.closed = False
        self.wait_until: Optional[WaitUntil] = None

    async def set_extra_headers(self, headers: Mapping[str, str]) -> None:
        self.behavior.headers.append(dict(headers))

    async def add_cookies(self, cookies: Sequence[Mapping[str, Any]]) -> None:
        self.behavior.cookies.append([dict(c) for c in cookies])

    async def goto(self, url: str, wait_until: WaitUntil, timeout_ms: int) -> None:
        self.behavior.navigations.append(url)
        self.wait_until = wait_until
        if url in self.behavior.failing_urls:
            raise self.behavior.failing_urls[url]
        remaining = self.behavior.fail_first.get(url, 0)
        if remaining > 0:
            self.behavior.fail_first[url] = remaining - 1
            raise NavigationTimeout(url, timeout_ms)

    async def evaluate_count(self, selector: str) -> int:
        self.behavior.probes.append(selector)
        if self.behavior.probe_error is not None:
            raise self.behavior.probe_error
        return self.behavior.loading_count

    async def screenshot(self, clip: ClipRegion, timeout_ms: int) -> bytes:
        if self.behavior.screenshot_error is not None:
            raise self.behavior.screenshot_error
        self.behavior.screenshots.append(clip)
        return self.behavior.png

    async def close(self) -> None:
        self.closed = True
        self.behavior.pages_closed += 1
        if self.behavior.close_error is not None:
            raise self.behavior.close_error


class FakeSession:
    def __init__(self, behavior: BrowserBehavior, options: LaunchOptions):
        self.behavior = behavior
        self.options = options
        self.pages: List[FakePage] = []
        self.connected = True
        self.closed = False

    async def new_page(self, settings: PageSettings) -> FakePage:
        page = FakePage(self.behavior, settings)
        self.pages.append(page)
        self.behavior.pages_opened += 1
        return page

    def is_connected(self) -> bool:
        return self.connected and not self.closed

    async def close(self) -> None:
        self.closed = True


class FakeDriver:
    def __init__(self, behavior: Optional[BrowserBehavior] = None):
        self.behavior = behavior or BrowserBehavior()
        self.sessions: List[FakeSession] = []
        self.stopped = False

    @property
    def launch_count(self) -> int:
        return len(self.sessions)

    @property
    def open_sessions(self) -> List[FakeSession]:
        return [s for s in self.sessions if not s.closed]

    async def launch(self, options: LaunchOptions) -> FakeSession:
        if self.behavior.launch_errors > 0:
            self.behavior.launch_errors -= 1
            raise LaunchError("fake chromium refused to start")
        session = FakeSession(self.behavior, options)
        self.sessions.append(session)
        return session

    async def stop(self) -> None:
        self.stopped = True


__all__ = ["FAKE_PNG", "BrowserBehavior", "FakePage", "FakeSession", "FakeDriver"]
