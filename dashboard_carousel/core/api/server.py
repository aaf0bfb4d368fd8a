"""
API Server - aiohttp REST server for the dashboard carousel.

Serves the JSON API, the captured images under ``/shots`` and, when the
directory exists, the static front-end under ``/``.
"""

from pathlib import Path
from typing import Optional

from aiohttp import web

from ..logging_utils import get_module_logger
from .controller import APIController
from .middleware import (
    error_handling_middleware,
    request_logging_middleware,
    set_debug_mode,
)
from .routes import setup_all_routes


logger = get_module_logger("APIServer")

KEEPALIVE_TIMEOUT_S = 120.0


class APIServer:
    """
    REST API server for the carousel.

    Runs on the same event loop as the capture scheduler; handlers only read
    state so a slow capture never blocks a request for longer than a file
    stat.
    """

    def __init__(
        self,
        controller: APIController,
        shots_dir: Path,
        public_dir: Optional[Path] = None,
        host: str = "0.0.0.0",
        port: int = 3000,
        debug: bool = False,
    ):
        """
        Initialize the API server.

        Args:
            controller: APIController wrapping the status read models
            shots_dir: Directory served under /shots
            public_dir: Optional front-end directory served under /
            host: Host to bind to
            port: Port to bind to
            debug: If True, include tracebacks in error responses
        """
        self.controller = controller
        self.shots_dir = Path(shots_dir)
        self.public_dir = Path(public_dir) if public_dir else None
        self.host = host
        self.port = port
        self.debug = debug

        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._running = False

        set_debug_mode(debug)

    def create_app(self) -> web.Application:
        """Create and configure the aiohttp application."""
        app = web.Application(middlewares=[request_logging_middleware, error_handling_middleware])
        app["controller"] = self.controller

        setup_all_routes(app, self.controller)

        self.shots_dir.mkdir(parents=True, exist_ok=True)
        app.router.add_static("/shots", self.shots_dir)

        if self.public_dir is not None and self.public_dir.is_dir():
            index = self.public_dir / "index.html"
            if index.is_file():
                async def index_handler(request: web.Request) -> web.FileResponse:
                    return web.FileResponse(index)

                app.router.add_get("/", index_handler)
            app.router.add_static("/", self.public_dir)
            logger.debug("Serving front-end from %s", self.public_dir)

        return app

    async def start(self) -> None:
        """Start the API server (non-blocking)."""
        if self._running:
            logger.warning("API server already running")
            return

        self._app = self.create_app()
        self._runner = web.AppRunner(self._app, keepalive_timeout=KEEPALIVE_TIMEOUT_S)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()

        self._running = True
        logger.info("Carousel ready on http://%s:%d", self.host, self.port)
        logger.info("Diagnostics available at http://%s:%d/api/diagnostics", self.host, self.port)

    async def stop(self) -> None:
        """Stop the API server gracefully."""
        if not self._running:
            return

        logger.info("Stopping API server...")

        if self._site:
            await self._site.stop()
            self._site = None

        if self._runner:
            await self._runner.cleanup()
            self._runner = None

        self._app = None
        self._running = False

        logger.info("API server stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"
