"""Unit tests for startup and shutdown helpers: placeholders, crash records, shutdown."""

import asyncio
import json

import pytest
from PIL import Image

from dashboard_carousel.core.browser.interface import Viewport
from dashboard_carousel.core.capture.placeholder import ensure_placeholders, render_placeholder
from dashboard_carousel.core.crash_recorder import CrashRecorder
from dashboard_carousel.core.shutdown_coordinator import (
    ShutdownCoordinator,
    ShutdownState,
    get_shutdown_coordinator,
    reset_shutdown_coordinator,
)


# =============================================================================
# Placeholders
# =============================================================================


class TestPlaceholders:
    def test_render_is_a_png_of_the_clip_size(self, targets, tmp_path):
        data = render_placeholder(targets[0], 320, 180)
        path = tmp_path / "p.png"
        path.write_bytes(data)

        with Image.open(path) as image:
            assert image.format == "PNG"
            assert image.size == (320, 180)

    @pytest.mark.asyncio
    async def test_only_missing_images_are_written(self, targets, shots_dir):
        existing = shots_dir / "dashboard2.png"
        existing.write_bytes(b"real capture")

        written = await ensure_placeholders(targets, shots_dir, Viewport(300, 150).crop())

        assert sorted(p.name for p in written) == ["dashboard1.png", "dashboard3.png", "dashboard4.png"]
        assert existing.read_bytes() == b"real capture"
        with Image.open(shots_dir / "dashboard1.png") as image:
            assert image.size == (200, 100)

    @pytest.mark.asyncio
    async def test_second_run_writes_nothing(self, targets, shots_dir):
        clip = Viewport(300, 150).crop()
        await ensure_placeholders(targets, shots_dir, clip)

        assert await ensure_placeholders(targets, shots_dir, clip) == []


# =============================================================================
# Crash records
# =============================================================================


class TestCrashRecorder:
    def test_record_writes_json(self, tmp_path):
        recorder = CrashRecorder(tmp_path)
        try:
            raise RuntimeError("boom")
        except RuntimeError as exc:
            path = recorder.record(exc, "Uncaught exception", "uncaught")

        assert path is not None
        assert path.name.startswith("crash-") and path.suffix == ".json"
        payload = json.loads(path.read_text())
        assert payload["kind"] == "uncaught"
        assert payload["error"]["name"] == "RuntimeError"
        assert payload["error"]["message"] == "boom"
        assert "Traceback" in payload["error"]["stack"]
        assert "pid" in payload["process"]
        assert recorder.records_written == 1

    def test_asyncio_context_without_exception(self, tmp_path):
        recorder = CrashRecorder(tmp_path)

        recorder.handle_asyncio_exception(None, {"message": "Task was destroyed but it is pending!"})

        [path] = list(tmp_path.glob("crash-*.json"))
        payload = json.loads(path.read_text())
        assert payload["kind"] == "asyncio"
        assert payload["error"] == {"message": "Task was destroyed but it is pending!"}

    def test_unwritable_directory_is_logged_not_raised(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        recorder = CrashRecorder(blocker)

        assert recorder.record(ValueError("x"), "x", "uncaught") is None
        assert recorder.records_written == 0

    def test_keyboard_interrupt_is_not_recorded(self, tmp_path, monkeypatch):
        recorder = CrashRecorder(tmp_path)
        passed = []
        monkeypatch.setattr("sys.__excepthook__", lambda *args: passed.append(args[0]))

        recorder.handle_exception(KeyboardInterrupt, KeyboardInterrupt(), None)

        assert passed == [KeyboardInterrupt]
        assert recorder.records_written == 0


# =============================================================================
# Shutdown
# =============================================================================


class TestShutdownCoordinator:
    @pytest.mark.asyncio
    async def test_callbacks_run_once_in_order(self):
        coordinator = ShutdownCoordinator()
        calls = []

        async def first():
            calls.append("first")

        async def second():
            calls.append("second")

        coordinator.register_cleanup(first)
        coordinator.register_cleanup(second)

        await asyncio.gather(coordinator.initiate_shutdown("SIGTERM"), coordinator.initiate_shutdown("SIGINT"))

        assert calls == ["first", "second"]
        assert coordinator.state is ShutdownState.COMPLETE
        assert coordinator.source == "SIGTERM"

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_the_rest(self):
        coordinator = ShutdownCoordinator()
        calls = []

        async def broken():
            raise RuntimeError("browser already gone")

        async def after():
            calls.append("after")

        coordinator.register_cleanup(broken)
        coordinator.register_cleanup(after)

        await coordinator.initiate_shutdown("test")

        assert calls == ["after"]
        assert coordinator.is_complete
        assert not coordinator.is_shutting_down
        await asyncio.wait_for(coordinator.wait_for_shutdown(), timeout=1)

    @pytest.mark.asyncio
    async def test_request_releases_waiter(self):
        coordinator = ShutdownCoordinator()
        waiter = asyncio.create_task(coordinator.wait_for_request())
        await asyncio.sleep(0)

        coordinator.request_shutdown("SIGINT")

        assert await asyncio.wait_for(waiter, timeout=1) == "SIGINT"
        assert coordinator.state is ShutdownState.RUNNING

    def test_global_instance_can_be_reset(self):
        reset_shutdown_coordinator()
        first = get_shutdown_coordinator()
        assert get_shutdown_coordinator() is first

        reset_shutdown_coordinator()
        assert get_shutdown_coordinator() is not first
        reset_shutdown_coordinator()
