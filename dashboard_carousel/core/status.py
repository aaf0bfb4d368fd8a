"""
Read models for the HTTP layer.

Everything here only reads: progress snapshots, the last checkpoint and the
shots directory. Image availability is computed from the filesystem on
every call and never cached.
"""

from __future__ import annotations

import os
import platform
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import psutil

from .capture_state import CaptureState, CaptureStateStore
from .logging_utils import get_module_logger
from .progress import ProgressSnapshot, ProgressTracker
from .targets import Target

# Environment variables worth echoing in diagnostics.
DIAGNOSTIC_ENV_KEYS = ("PORT", "DASHBOARD_CAROUSEL_HOME", "SCHEDULE_MODE", "SESSION_POLICY", "RESOURCE_PROFILE")


def iso_from_ms(epoch_ms: float) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class TargetImage:
    id: str
    image_path: Path
    available: bool
    last_modified: int = 0  # epoch ms, 0 when unknown
    size_bytes: int = 0

    @property
    def image_url(self) -> str:
        return f"/shots/{self.image_path.name}?t={self.last_modified}"


@dataclass(frozen=True)
class StatusReport:
    progress: ProgressSnapshot
    last_state: CaptureState
    state_age_s: Optional[int]


class StatusService:
    """Answers listing, status and diagnostics queries."""

    def __init__(
        self,
        targets: Sequence[Target],
        shots_dir: Path,
        progress: ProgressTracker,
        state_store: CaptureStateStore,
        *,
        clock: Callable[[], float] = time.time,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.logger = get_module_logger("StatusService")
        self.targets = list(targets)
        self.shots_dir = Path(shots_dir)
        self.progress = progress
        self.state_store = state_store
        self._clock = clock
        self._environ = os.environ if environ is None else environ
        self._process = psutil.Process(os.getpid())

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ------------------------------------------------------------------
    # Listing

    def image_path(self, target: Target) -> Path:
        return self.shots_dir / target.image_name

    def describe_image(self, target: Target) -> TargetImage:
        path = self.image_path(target)
        try:
            stat = path.stat()
        except FileNotFoundError:
            return TargetImage(id=target.id, image_path=path, available=False)
        except OSError as exc:
            self.logger.warning("Could not stat %s: %s", path, exc)
            return TargetImage(id=target.id, image_path=path, available=False)
        return TargetImage(
            id=target.id,
            image_path=path,
            available=True,
            last_modified=stat.st_mtime_ns // 1_000_000,
            size_bytes=stat.st_size,
        )

    def list_targets(self) -> List[TargetImage]:
        return [self.describe_image(target) for target in self.targets]

    # ------------------------------------------------------------------
    # Status

    def get_status(self) -> StatusReport:
        state = self.state_store.current
        return StatusReport(
            progress=self.progress.snapshot(),
            last_state=state,
            state_age_s=state.age_seconds(self.now_ms()),
        )

    def process_info(self) -> Dict[str, Any]:
        try:
            mem_info = self._process.memory_info()
            memory = {
                "rss": mem_info.rss,
                "vms": mem_info.vms,
                "percent": round(self._process.memory_percent(), 2),
            }
        except psutil.Error as exc:
            self.logger.debug("Memory info unavailable: %s", exc)
            memory = {}
        try:
            uptime = max(0.0, self._clock() - self._process.create_time())
        except psutil.Error:
            uptime = 0.0
        return {
            "pid": self._process.pid,
            "uptime": round(uptime, 3),
            "memory": memory,
        }

    # ------------------------------------------------------------------
    # Diagnostics

    def file_report(self) -> List[Dict[str, Any]]:
        now_ms = self.now_ms()
        files = []
        for image in self.list_targets():
            files.append({
                "id": image.id,
                "path": str(image.image_path),
                "exists": image.available,
                "size": image.size_bytes,
                "modified": iso_from_ms(image.last_modified) if image.available else None,
                "age": round((now_ms - image.last_modified) / 1000, 3) if image.available else None,
            })
        return files

    def diagnostics(self) -> Dict[str, Any]:
        now_ms = self.now_ms()
        report = self.get_status()
        process = self.process_info()
        process["versions"] = {
            "python": platform.python_version(),
            "implementation": platform.python_implementation(),
            "platform": platform.platform(),
            "psutil": psutil.__version__,
        }
        process["env"] = {key: self._environ.get(key) for key in DIAGNOSTIC_ENV_KEYS}
        process["executable"] = sys.executable

        capture = report.progress.to_dict()
        capture["lastState"] = report.last_state.to_dict()

        return {
            "timestamp": now_ms,
            "datetime": iso_from_ms(now_ms),
            "process": process,
            "capture": capture,
            "files": self.file_report(),
        }


__all__ = ["TargetImage", "StatusReport", "StatusService", "iso_from_ms"]
