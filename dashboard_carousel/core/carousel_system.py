"""
CarouselSystem - wires the capture pipeline and the HTTP API together.

    targets -> scheduler -> session manager -> executor -> shots_dir
                   |                              |
             capture state                     progress
                   \\______________ status ______/
                                     |
                                  API server
"""

import asyncio
from typing import Optional

from .api import APIController, APIServer
from .asyncio_utils import Sleeper
from .browser.interface import BrowserDriver
from .browser.session_manager import BrowserSessionManager
from .capture.executor import CaptureExecutor
from .capture.placeholder import ensure_placeholders
from .capture_state import CaptureStateStore
from .logging_utils import get_module_logger
from .progress import ProgressSnapshot, ProgressTracker
from .scheduler import RotationScheduler
from .settings import CarouselSettings
from .shutdown_coordinator import ShutdownCoordinator
from .status import StatusService
from .targets import log_targets, parse_targets, targets_digest


def _default_driver(settings: CarouselSettings) -> BrowserDriver:
    from .browser.playwright_driver import PlaywrightDriver

    return PlaywrightDriver(settings.browser_executable or None)


class CarouselSystem:
    """Owns every long-lived component of one carousel process."""

    def __init__(
        self,
        settings: CarouselSettings,
        driver: Optional[BrowserDriver] = None,
        *,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.logger = get_module_logger("CarouselSystem")
        self.settings = settings

        self.targets = parse_targets(settings.dashboard_urls)
        log_targets(self.targets)

        self.progress = ProgressTracker(total=len(self.targets))
        self.state_store = CaptureStateStore(settings.state_file, targets_digest(self.targets))
        self.sessions = BrowserSessionManager(
            driver or _default_driver(settings),
            profile=settings.resource_profile,
            policy=settings.session_policy,
            recycle_every=settings.recycle_every,
            headless=settings.headless,
        )
        self.executor = CaptureExecutor(settings.shots_dir, settings.capture_options(), self.progress, sleep=sleep)
        self.scheduler = RotationScheduler(
            self.targets,
            self.executor,
            self.sessions,
            self.state_store,
            self.progress,
            settings.scheduler_params(),
            sleep=sleep,
        )
        self.status = StatusService(self.targets, settings.shots_dir, self.progress, self.state_store)
        self.controller = APIController(self.status)
        self.server = APIServer(
            self.controller,
            shots_dir=settings.shots_dir,
            public_dir=settings.public_dir,
            host=settings.host,
            port=settings.port,
            debug=settings.log_level.lower() == "debug",
        )

    async def prepare(self) -> None:
        """Placeholders and the last checkpoint, before anything is served."""
        if self.settings.placeholders and self.targets:
            await ensure_placeholders(self.targets, self.settings.shots_dir, self.executor.clip)
        await self.state_store.load()

    async def start(self) -> None:
        await self.prepare()
        await self.server.start()
        self.scheduler.start()

    async def run_once(self) -> ProgressSnapshot:
        await self.prepare()
        try:
            return await self.scheduler.run_once()
        finally:
            await self.sessions.close(timeout=self.settings.shutdown_timeout_s)

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def stop_capturing(self) -> None:
        await self.scheduler.stop()

    async def save_checkpoint(self) -> None:
        if await self.scheduler.persist_checkpoint():
            self.logger.info("Checkpoint saved at index %s", self.scheduler.last_attempted)

    async def close_browser(self) -> None:
        await self.sessions.close(timeout=self.settings.shutdown_timeout_s)

    async def stop_server(self) -> None:
        await self.server.stop()

    def register_cleanup(self, coordinator: ShutdownCoordinator) -> None:
        coordinator.register_cleanup(self.stop_capturing)
        coordinator.register_cleanup(self.save_checkpoint)
        coordinator.register_cleanup(self.close_browser)
        coordinator.register_cleanup(self.stop_server)
