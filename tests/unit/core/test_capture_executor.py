"""Unit tests for CaptureExecutor against the fake browser."""

import asyncio
import time
from dataclasses import replace

import pytest

from dashboard_carousel.core.browser.interface import ClipRegion
from dashboard_carousel.core.browser.profiles import LaunchOptions, ResourceProfile, WaitUntil
from dashboard_carousel.core.capture.executor import AttemptStage, AuthConfig, CaptureExecutor
from dashboard_carousel.core.errors import NavigationError, ScreenshotError
from dashboard_carousel.core.progress import ProgressTracker
from tests.infrastructure.mocks import FAKE_PNG, FakeSession


@pytest.fixture
def session(behavior):
    return FakeSession(behavior, LaunchOptions(ResourceProfile.CONSTRAINED, (), 1000))


class TestSuccessfulCapture:
    @pytest.mark.asyncio
    async def test_writes_image_and_counts_success(self, executor, session, targets, shots_dir, progress):
        result = await executor.capture(session, targets[0])

        assert result.success
        assert result.attempts == 1
        assert result.image_path == shots_dir / "dashboard1.png"
        assert (shots_dir / "dashboard1.png").read_bytes() == FAKE_PNG

        snapshot = progress.snapshot()
        assert snapshot.successful == 1
        assert snapshot.failed == 0
        # Completed is the scheduler's counter
        assert snapshot.completed == 0

    @pytest.mark.asyncio
    async def test_walks_every_stage(self, executor, session, targets):
        result = await executor.capture(session, targets[0])

        assert result.stages == (
            AttemptStage.IDLE,
            AttemptStage.PAGE_OPENED,
            AttemptStage.NAVIGATED,
            AttemptStage.SETTLED,
            AttemptStage.SCREENSHOTTED,
            AttemptStage.CLOSED,
        )

    @pytest.mark.asyncio
    async def test_clip_is_two_thirds_of_viewport(self, executor, session, targets, behavior):
        await executor.capture(session, targets[0])

        assert behavior.screenshots == [ClipRegion(x=0, y=0, width=2133, height=1200)]

    @pytest.mark.asyncio
    async def test_navigates_with_network_idle_by_default(self, executor, session, targets):
        await executor.capture(session, targets[0])

        assert session.pages[0].wait_until is WaitUntil.NETWORK_IDLE

    @pytest.mark.asyncio
    async def test_settle_delay_without_loading_indicators(self, executor, session, targets, sleeper, behavior):
        await executor.capture(session, targets[0])

        assert sleeper.delays == [90.0]
        assert behavior.probes == ['[class*="loading"], [class*="Loading"], .dt-loading']

    @pytest.mark.asyncio
    async def test_loading_indicators_extend_wait_once(self, executor, session, targets, sleeper, behavior):
        behavior.loading_count = 3

        result = await executor.capture(session, targets[0])

        assert result.success
        assert sleeper.delays == [90.0, 30.0]
        assert len(behavior.probes) == 1

    @pytest.mark.asyncio
    async def test_probe_failure_is_ignored(self, executor, session, targets, sleeper, behavior):
        behavior.probe_error = RuntimeError("execution context was destroyed")

        result = await executor.capture(session, targets[0])

        assert result.success
        assert sleeper.delays == [90.0]

    @pytest.mark.asyncio
    async def test_empty_selector_skips_probe(self, shots_dir, capture_options, progress, sleeper, session, targets, behavior):
        executor = CaptureExecutor(shots_dir, replace(capture_options, loading_selector=""), progress, sleep=sleeper)

        await executor.capture(session, targets[0])

        assert behavior.probes == []

    @pytest.mark.asyncio
    async def test_page_close_failure_is_swallowed(self, executor, session, targets, behavior):
        behavior.close_error = RuntimeError("target closed")

        result = await executor.capture(session, targets[0])

        assert result.success
        assert behavior.pages_closed == 1


class TestAuth:
    @pytest.mark.asyncio
    async def test_no_auth_configured(self, executor, session, targets, behavior):
        await executor.capture(session, targets[0])

        assert behavior.headers == []
        assert behavior.cookies == []

    @pytest.mark.asyncio
    async def test_headers_and_cookies_applied(self, shots_dir, capture_options, progress, sleeper, session, targets, behavior):
        auth = AuthConfig(
            headers={"Authorization": "Api-Token abc"},
            cookies=({"name": "DTCookie", "value": "xyz", "domain": "dt.example", "path": "/"},),
        )
        executor = CaptureExecutor(shots_dir, replace(capture_options, auth=auth), progress, sleep=sleeper)

        await executor.capture(session, targets[0])

        assert behavior.headers == [{"Authorization": "Api-Token abc"}]
        assert behavior.cookies == [[{"name": "DTCookie", "value": "xyz", "domain": "dt.example", "path": "/"}]]


class TestFailures:
    @pytest.mark.asyncio
    async def test_unreachable_url_counts_one_failure(self, executor, session, targets, sleeper, behavior, progress):
        behavior.failing_urls[targets[0].url] = NavigationError(targets[0].url, "net::ERR_NAME_NOT_RESOLVED")

        result = await executor.capture(session, targets[0])

        assert not result.success
        assert result.attempts == 2
        assert "ERR_NAME_NOT_RESOLVED" in result.error
        assert behavior.navigations == [targets[0].url, targets[0].url]
        assert progress.snapshot().successful == 0
        assert progress.snapshot().failed == 1
        # No settle after a failed navigation; one backoff between the two attempts
        assert sleeper.delays == [5.0]

    @pytest.mark.asyncio
    async def test_unreachable_url_waits_at_least_one_backoff(self, shots_dir, capture_options, session, targets, behavior):
        progress = ProgressTracker(total=1)
        options = replace(capture_options, settle_s=0.0, loading_extension_s=0.0, retry_backoff_s=0.05)
        executor = CaptureExecutor(shots_dir, options, progress, sleep=asyncio.sleep)
        behavior.failing_urls[targets[0].url] = NavigationError(targets[0].url, "unreachable")

        started = time.monotonic()
        result = await executor.capture(session, targets[0])
        elapsed = time.monotonic() - started

        assert result.attempts == 2
        assert elapsed >= 0.05
        assert result.duration_s >= 0.05
        assert progress.snapshot().failed == 1

    @pytest.mark.asyncio
    async def test_timeout_then_recovery(self, executor, session, targets, behavior, progress):
        behavior.fail_first[targets[1].url] = 1

        result = await executor.capture(session, targets[1])

        assert result.success
        assert result.attempts == 2
        assert progress.snapshot().successful == 1
        assert progress.snapshot().failed == 0

    @pytest.mark.asyncio
    async def test_page_closed_on_every_attempt(self, executor, session, targets, behavior):
        behavior.screenshot_error = ScreenshotError("screenshot timed out")

        result = await executor.capture(session, targets[0])

        assert not result.success
        assert behavior.pages_opened == 2
        assert behavior.pages_closed == 2
        assert all(page.closed for page in session.pages)
        assert result.stages[-1] is AttemptStage.FAILED
        assert AttemptStage.SETTLED in result.stages

    @pytest.mark.asyncio
    async def test_failed_capture_keeps_previous_image(self, executor, session, targets, behavior, shots_dir):
        previous = shots_dir / "dashboard1.png"
        previous.write_bytes(b"old image")
        behavior.failing_urls[targets[0].url] = NavigationError(targets[0].url, "boom")

        await executor.capture(session, targets[0])

        assert previous.read_bytes() == b"old image"

    @pytest.mark.asyncio
    async def test_unwritable_shots_dir_is_a_failure(self, tmp_path, capture_options, progress, sleeper, session, targets):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        executor = CaptureExecutor(blocker / "shots", capture_options, progress, sleep=sleeper)

        result = await executor.capture(session, targets[0])

        assert not result.success
        assert "could not write image" in result.error
        assert progress.snapshot().failed == 1

    @pytest.mark.asyncio
    async def test_empty_screenshot_is_a_failure(self, executor, session, targets, behavior):
        behavior.png = b""

        result = await executor.capture(session, targets[0])

        assert not result.success
        assert "empty screenshot" in result.error


class TestOverwrite:
    @pytest.mark.asyncio
    async def test_two_captures_leave_one_file_with_newer_mtime(self, executor, session, targets, shots_dir):
        await executor.capture(session, targets[0])
        first = (shots_dir / "dashboard1.png").stat().st_mtime_ns

        await executor.capture(session, targets[0])
        second = (shots_dir / "dashboard1.png").stat().st_mtime_ns

        assert second > first
        assert sorted(p.name for p in shots_dir.iterdir()) == ["dashboard1.png"]
