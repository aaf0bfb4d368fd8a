"""
API Controller - Thin wrapper around StatusService for the REST API.

Builds the JSON payloads the carousel front-end expects. Handlers only
read state; nothing here can start or influence a capture.
"""

import asyncio
from typing import Any, Dict, Optional

from ..capture_state import CaptureState
from ..logging_utils import get_module_logger
from ..status import StatusService, TargetImage, iso_from_ms


class APIController:
    """Async facade used by the route handlers."""

    def __init__(self, status: StatusService):
        self.logger = get_module_logger("APIController")
        self.status = status

    @property
    def target_count(self) -> int:
        return len(self.status.targets)

    # =========================================================================
    # System
    # =========================================================================

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "timestamp": self.status.now_ms(),
            "targets": self.target_count,
        }

    async def get_status(self) -> Dict[str, Any]:
        report = self.status.get_status()
        progress = report.progress
        now_ms = self.status.now_ms()

        last_state = report.last_state.to_dict()
        last_state["age"] = report.state_age_s

        return {
            "timestamp": now_ms,
            "datetime": iso_from_ms(now_ms),
            "loading": progress.in_progress,
            "progress": progress.completed,
            "total": progress.total,
            "successful": progress.successful,
            "failed": progress.failed,
            "percentage": progress.percentage,
            "server": self.status.process_info(),
            "lastCaptureState": last_state,
        }

    # =========================================================================
    # Carousel
    # =========================================================================

    @staticmethod
    def _item(image: TargetImage) -> Dict[str, Any]:
        return {
            "id": image.id,
            "img": image.image_url,
            "title": image.id,
            "available": image.available,
            "lastModified": iso_from_ms(image.last_modified),
            "size": image.size_bytes,
        }

    @staticmethod
    def _last_state(state: CaptureState, age: Optional[int]) -> Dict[str, Any]:
        data = state.to_dict()
        data["age"] = age
        data["ageMinutes"] = round(age / 60) if age is not None else None
        return data

    async def list_images(self) -> Dict[str, Any]:
        images = await asyncio.to_thread(self.status.list_targets)
        report = self.status.get_status()
        progress = report.progress

        items = [self._item(image) for image in images]
        available = sum(1 for image in images if image.available)
        self.logger.debug("List: %d/%d dashboards available", available, len(images))

        server = self.status.process_info()
        server["lastState"] = self._last_state(report.last_state, report.state_age_s)

        return {
            "items": items,
            "generatedAt": iso_from_ms(self.status.now_ms()),
            "loading": progress.in_progress,
            "progress": progress.completed,
            "total": progress.total,
            "available": available,
            "server": server,
        }

    # =========================================================================
    # Debug
    # =========================================================================

    async def get_diagnostics(self) -> Dict[str, Any]:
        return await asyncio.to_thread(self.status.diagnostics)
