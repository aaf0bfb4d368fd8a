"""In-memory stand-ins for external collaborators."""

from .fake_browser import FAKE_PNG, BrowserBehavior, FakeDriver, FakePage, FakeSession

__all__ = ["FAKE_PNG", "BrowserBehavior", "FakeDriver", "FakePage", "FakeSession"]
