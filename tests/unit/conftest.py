"""Unit test fixtures: fake browser, instant sleeps and temp directories.

Nothing here launches a browser or waits in real time; every component
that sleeps accepts a ``sleep`` callable and the tests pass a recorder.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List

import pytest

from dashboard_carousel.core.browser.interface import PageSettings, Viewport
from dashboard_carousel.core.capture.executor import CaptureExecutor, CaptureOptions
from dashboard_carousel.core.capture_state import CaptureStateStore
from dashboard_carousel.core.progress import ProgressTracker
from dashboard_carousel.core.targets import parse_targets, targets_digest
from tests.infrastructure.mocks import BrowserBehavior, FakeDriver


class RecordingSleeper:
    """Drop-in for ``asyncio.sleep`` that records delays and only yields."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)

    @property
    def total(self) -> float:
        return sum(self.delays)


URLS = (
    "https://a.example/dash",
    "https://b.example/dash",
    "https://c.example/dash",
    "https://d.example/dash",
)


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture
def targets():
    return parse_targets(";;;".join(URLS))


@pytest.fixture
def behavior() -> BrowserBehavior:
    return BrowserBehavior()


@pytest.fixture
def fake_driver(behavior: BrowserBehavior) -> FakeDriver:
    return FakeDriver(behavior)


@pytest.fixture
def shots_dir(tmp_path: Path) -> Path:
    path = tmp_path / "public" / "shots"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def capture_options() -> CaptureOptions:
    """Reference timings; sleeps are recorded, not awaited."""
    return CaptureOptions(
        page=PageSettings(viewport=Viewport(3200, 1800, 1.0)),
        settle_s=90.0,
        loading_extension_s=30.0,
        max_retries=2,
        retry_backoff_s=5.0,
        collect_garbage=False,
    )


@pytest.fixture
def progress(targets) -> ProgressTracker:
    return ProgressTracker(total=len(targets))


@pytest.fixture
def state_store(tmp_path: Path, targets) -> CaptureStateStore:
    return CaptureStateStore(tmp_path / ".capture_state.json", targets_digest(targets))


@pytest.fixture
def executor(shots_dir, capture_options, progress, sleeper) -> CaptureExecutor:
    return CaptureExecutor(shots_dir, capture_options, progress, sleep=sleeper)
