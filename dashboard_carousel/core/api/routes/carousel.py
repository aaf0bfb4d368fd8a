"""
Carousel Routes - Image listing consumed by the rotating front-end.
"""

from aiohttp import web

from ..controller import APIController


def setup_carousel_routes(app: web.Application, controller: APIController) -> None:
    """Register carousel routes."""
    app.router.add_get("/api/list", list_handler)


async def list_handler(request: web.Request) -> web.Response:
    """GET /api/list - Every dashboard with its image URL and freshness."""
    controller: APIController = request.app["controller"]
    result = await controller.list_images()
    return web.json_response(result)
