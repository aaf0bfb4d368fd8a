"""Unit tests for the persisted rotation checkpoint."""

import json
import os

import pytest

from dashboard_carousel.core.capture_state import CaptureState, CaptureStateStore
from dashboard_carousel.core.errors import StateIOError


class TestCaptureState:
    def test_default_has_no_checkpoint(self):
        state = CaptureState()

        assert state.last_index == -1
        assert state.timestamp == 0
        assert not state.has_checkpoint
        assert state.age_seconds() is None

    @pytest.mark.parametrize("count", [1, 2, 5, 12])
    def test_resume_is_next_index_for_every_position(self, count):
        for i in range(count):
            state = CaptureState(last_index=i, timestamp=1)
            assert state.resume_index(count) == (i + 1) % count

    def test_no_resume_without_checkpoint(self):
        assert CaptureState().resume_index(4) is None

    def test_no_resume_past_end_of_list(self):
        assert CaptureState(last_index=7).resume_index(4) is None

    def test_no_resume_with_zero_targets(self):
        assert CaptureState(last_index=0).resume_index(0) is None

    def test_digest_mismatch_is_not_resumable(self):
        state = CaptureState(last_index=1, targets_digest="aaaaaaaaaaaa")

        assert state.resume_index(4, "bbbbbbbbbbbb") is None
        assert state.resume_index(4, "aaaaaaaaaaaa") == 2

    def test_legacy_record_without_digest_resumes(self):
        state = CaptureState.from_dict({"lastIndex": 2, "timestamp": 1718000000000})

        assert state.targets_digest is None
        assert state.resume_index(4, "anything") == 3

    def test_age_seconds(self):
        state = CaptureState(last_index=0, timestamp=1_000_000)

        assert state.age_seconds(now_ms=1_061_000) == 61

    def test_round_trip_keys(self):
        data = CaptureState(last_index=3, timestamp=5, pid=42, targets_digest="abc").to_dict()

        assert data == {"lastIndex": 3, "timestamp": 5, "pid": 42, "targetsDigest": "abc"}

    def test_malformed_values(self):
        with pytest.raises(StateIOError):
            CaptureState.from_dict({"lastIndex": "three"})


class TestCaptureStateStore:
    @pytest.mark.asyncio
    async def test_missing_file_is_default(self, tmp_path):
        store = CaptureStateStore(tmp_path / "state.json")

        state = await store.load()

        assert state == CaptureState()

    @pytest.mark.asyncio
    async def test_corrupt_file_is_default(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        store = CaptureStateStore(path)

        assert await store.load() == CaptureState()

    @pytest.mark.asyncio
    async def test_non_object_json_is_default(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2, 3]")

        assert await CaptureStateStore(path).load() == CaptureState()

    @pytest.mark.asyncio
    async def test_save_writes_pretty_json_record(self, tmp_path):
        path = tmp_path / "state.json"
        store = CaptureStateStore(path, targets_digest="0123456789ab")

        assert await store.save(2)

        raw = path.read_text()
        data = json.loads(raw)
        assert data["lastIndex"] == 2
        assert data["pid"] == os.getpid()
        assert data["timestamp"] > 0
        assert data["targetsDigest"] == "0123456789ab"
        assert "\n" in raw
        assert store.current.last_index == 2

    @pytest.mark.asyncio
    async def test_save_then_load_in_new_store(self, tmp_path):
        path = tmp_path / "state.json"
        await CaptureStateStore(path, "d").save(5)

        state = await CaptureStateStore(path, "d").load()

        assert state.last_index == 5
        assert state.targets_digest == "d"

    @pytest.mark.asyncio
    async def test_no_temp_files_left_behind(self, tmp_path):
        store = CaptureStateStore(tmp_path / "state.json")
        for i in range(3):
            await store.save(i)

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    @pytest.mark.asyncio
    async def test_write_failure_returns_false(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        store = CaptureStateStore(blocker / "state.json")

        assert await store.save(1) is False
        assert store.current == CaptureState()
