"""System Routes - liveness endpoint."""

from aiohttp import web

from ..controller import ProfilerAPIController


def setup_system_routes(app: web.Application, controller: ProfilerAPIController) -> None:
    app.router.add_get("/api/v1/health", health_handler)


async def health_handler(request: web.Request) -> web.Response:
    """GET /api/v1/health - Liveness and version."""
    controller: ProfilerAPIController = request.app["controller"]
    return web.json_response(await controller.health_check())
