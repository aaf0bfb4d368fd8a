"""
System Routes - Health and capture status endpoints.
"""

from aiohttp import web

from ..controller import APIController


def setup_system_routes(app: web.Application, controller: APIController) -> None:
    """Register system routes."""
    app.router.add_get("/api/health", health_handler)
    app.router.add_get("/api/status", status_handler)


async def health_handler(request: web.Request) -> web.Response:
    """GET /api/health - Health check."""
    controller: APIController = request.app["controller"]
    result = await controller.health_check()
    return web.json_response(result)


async def status_handler(request: web.Request) -> web.Response:
    """GET /api/status - Capture progress and last checkpoint."""
    controller: APIController = request.app["controller"]
    result = await controller.get_status()
    return web.json_response(result)
