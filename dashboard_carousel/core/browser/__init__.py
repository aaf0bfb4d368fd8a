"""Browser automation boundary: protocols, launch profiles and session lifecycle."""

from .interface import BrowserDriver, BrowserPage, BrowserSession, ClipRegion, PageSettings, Viewport
from .profiles import LaunchOptions, ResourceProfile, WaitUntil, launch_options
from .session_manager import BrowserSessionManager, SessionPolicy

__all__ = [
    "BrowserDriver",
    "BrowserPage",
    "BrowserSession",
    "BrowserSessionManager",
    "ClipRegion",
    "LaunchOptions",
    "PageSettings",
    "ResourceProfile",
    "SessionPolicy",
    "Viewport",
    "WaitUntil",
    "launch_options",
]
