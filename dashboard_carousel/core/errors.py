"""Error taxonomy for the capture pipeline.

Per-target errors never leave the executor/scheduler boundary; they end up
in counters and logs. Only configuration problems surface at startup, and
even those degrade the server instead of stopping it.
"""

from typing import Optional


class CarouselError(Exception):
    """Base class for every error raised by dashboard_carousel."""


class LaunchError(CarouselError):
    """The browser process could not be started."""


class NavigationError(CarouselError):
    """A target page failed to load."""

    def __init__(self, url: str, message: str, *, timeout_ms: Optional[int] = None):
        super().__init__(f"{url}: {message}")
        self.url = url
        self.timeout_ms = timeout_ms


class NavigationTimeout(NavigationError):
    """A target page did not become ready within its budget."""

    def __init__(self, url: str, timeout_ms: int):
        super().__init__(url, f"navigation timed out after {timeout_ms} ms", timeout_ms=timeout_ms)


class ScreenshotError(CarouselError):
    """The page loaded but the screenshot could not be taken or written."""


class StateIOError(CarouselError):
    """The rotation checkpoint could not be read or written."""


class ConfigError(CarouselError):
    """Configuration is empty or malformed."""


__all__ = [
    "CarouselError",
    "LaunchError",
    "NavigationError",
    "NavigationTimeout",
    "ScreenshotError",
    "StateIOError",
    "ConfigError",
]
