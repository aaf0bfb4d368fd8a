"""
Debug Routes - Diagnostics for troubleshooting a running carousel.
"""

from aiohttp import web

from ..controller import APIController


def setup_debug_routes(app: web.Application, controller: APIController) -> None:
    """Register debug routes."""
    app.router.add_get("/api/diagnostics", diagnostics_handler)


async def diagnostics_handler(request: web.Request) -> web.Response:
    """GET /api/diagnostics - Per-image files, process metadata and counters."""
    controller: APIController = request.app["controller"]
    result = await controller.get_diagnostics()
    return web.json_response(result)
