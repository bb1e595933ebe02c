"""Profiler Routes - recording control and read-only report endpoints."""

from aiohttp import web

from ..controller import ProfilerAPIController
from ..middleware import result_to_response


def setup_profiler_routes(app: web.Application, controller: ProfilerAPIController) -> None:
    """Register profiler routes."""
    app.router.add_get("/api/v1/profiler/status", status_handler)
    app.router.add_post("/api/v1/profiler/recording/start", start_recording_handler)
    app.router.add_post("/api/v1/profiler/recording/stop", stop_recording_handler)
    app.router.add_get("/api/v1/profiler/frames", list_frames_handler)
    app.router.add_get("/api/v1/profiler/frames/{index}", get_frame_handler)
    app.router.add_get("/api/v1/profiler/frames/{index}/trace", get_trace_handler)
    app.router.add_get("/api/v1/profiler/async", async_calls_handler)
    app.router.add_get("/api/v1/profiler/stats", stats_handler)
    app.router.add_get("/api/v1/profiler/report", report_handler)


def _frame_index(request: web.Request) -> int:
    raw = request.match_info["index"]
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Frame index must be an integer, got '{raw}'") from None


async def status_handler(request: web.Request) -> web.Response:
    """GET /api/v1/profiler/status - Recording state and counters."""
    controller: ProfilerAPIController = request.app["controller"]
    return web.json_response(await controller.get_status())


async def start_recording_handler(request: web.Request) -> web.Response:
    """POST /api/v1/profiler/recording/start - Clear history and arm recording."""
    controller: ProfilerAPIController = request.app["controller"]
    return result_to_response(await controller.start_recording())


async def stop_recording_handler(request: web.Request) -> web.Response:
    """POST /api/v1/profiler/recording/stop - Stop recording."""
    controller: ProfilerAPIController = request.app["controller"]
    return result_to_response(await controller.stop_recording())


async def list_frames_handler(request: web.Request) -> web.Response:
    """GET /api/v1/profiler/frames - Per-frame summaries."""
    controller: ProfilerAPIController = request.app["controller"]
    return web.json_response(await controller.list_frames())


async def get_frame_handler(request: web.Request) -> web.Response:
    """GET /api/v1/profiler/frames/{index} - One frame, index clamped."""
    controller: ProfilerAPIController = request.app["controller"]
    result = await controller.get_frame(_frame_index(request))
    return result_to_response(result, "NO_FRAMES", "No frames have been recorded")


async def get_trace_handler(request: web.Request) -> web.Response:
    """GET /api/v1/profiler/frames/{index}/trace - Rendered call trace."""
    controller: ProfilerAPIController = request.app["controller"]
    result = await controller.get_trace(_frame_index(request))
    return result_to_response(result, "NO_FRAMES", "No frames have been recorded")


async def async_calls_handler(request: web.Request) -> web.Response:
    """GET /api/v1/profiler/async - Pending and resolved async calls."""
    controller: ProfilerAPIController = request.app["controller"]
    return web.json_response(await controller.get_async_calls())


async def stats_handler(request: web.Request) -> web.Response:
    """GET /api/v1/profiler/stats - Frame duration statistics."""
    controller: ProfilerAPIController = request.app["controller"]
    return web.json_response(await controller.get_stats())


async def report_handler(request: web.Request) -> web.Response:
    """GET /api/v1/profiler/report - Full JSON report."""
    controller: ProfilerAPIController = request.app["controller"]
    return web.json_response(await controller.get_report())
