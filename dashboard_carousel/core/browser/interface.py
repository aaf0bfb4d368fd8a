"""
Browser capability protocols.

The capture pipeline only talks to these protocols, never to the browser
automation library directly, so retries, page scoping and scheduling can be
exercised against an in-memory fake.

Implementations must raise the pipeline's error types:
- ``launch``      -> LaunchError
- ``goto``        -> NavigationTimeout / NavigationError
- ``screenshot``  -> ScreenshotError
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from .profiles import LaunchOptions, WaitUntil


@dataclass(frozen=True)
class Viewport:
    """Browser viewport used for every capture."""
    width: int = 3200
    height: int = 1800
    device_scale_factor: float = 1.0

    def crop(self, fraction: float = 2 / 3) -> "ClipRegion":
        """Clip anchored at the origin covering ``fraction`` of each dimension."""
        return ClipRegion(
            x=0,
            y=0,
            width=int(self.width * fraction),
            height=int(self.height * fraction),
        )


@dataclass(frozen=True)
class ClipRegion:
    """Screenshot rectangle in CSS pixels."""
    x: int
    y: int
    width: int
    height: int

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class PageSettings:
    """Per-page configuration applied right after the page is opened."""
    viewport: Viewport = field(default_factory=Viewport)
    navigation_timeout_ms: int = 120_000
    action_timeout_ms: int = 60_000


@runtime_checkable
class BrowserPage(Protocol):
    """One tab. Always closed by the code that opened it."""

    async def set_extra_headers(self, headers: Mapping[str, str]) -> None:
        ...

    async def add_cookies(self, cookies: Sequence[Mapping[str, Any]]) -> None:
        ...

    async def goto(self, url: str, wait_until: WaitUntil, timeout_ms: int) -> None:
        ...

    async def evaluate_count(self, selector: str) -> int:
        """Number of elements matching ``selector``."""
        ...

    async def screenshot(self, clip: ClipRegion, timeout_ms: int) -> bytes:
        """PNG bytes of ``clip``."""
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class BrowserSession(Protocol):
    """A live browser process able to host several pages at once."""

    async def new_page(self, settings: PageSettings) -> BrowserPage:
        ...

    def is_connected(self) -> bool:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class BrowserDriver(Protocol):
    """Factory for browser sessions."""

    async def launch(self, options: LaunchOptions) -> BrowserSession:
        ...

    async def stop(self) -> None:
        """Release driver-level resources after all sessions are closed."""
        ...


__all__ = [
    "Viewport",
    "ClipRegion",
    "PageSettings",
    "BrowserPage",
    "BrowserSession",
    "BrowserDriver",
]
