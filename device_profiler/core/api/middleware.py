"""
API Middleware - access control and error envelopes for the REST API.

Every error leaves the server as::

    {"error": {"code": "ERROR_CODE", "message": "..."}, "status": 400}
"""

import time
import traceback
from typing import Callable, Optional

from aiohttp import web

from ..logging_utils import get_module_logger


logger = get_module_logger("APIMiddleware")

_debug_mode: bool = False

LOCALHOST_IPS = frozenset({"127.0.0.1", "::1", "::ffff:127.0.0.1"})


def set_debug_mode(enabled: bool) -> None:
    """Enable or disable tracebacks in error responses."""
    global _debug_mode
    _debug_mode = enabled


def is_debug_mode() -> bool:
    return _debug_mode


@web.middleware
async def localhost_only_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """Reject requests that do not come from the local machine."""
    peername = request.transport.get_extra_info("peername") if request.transport else None
    if peername:
        remote_ip = peername[0]
        if remote_ip not in LOCALHOST_IPS:
            logger.warning("Rejected request from non-localhost IP: %s", remote_ip)
            return create_error_response(
                "ACCESS_DENIED", "API access is restricted to localhost only", status=403
            )

    return await handler(request)


@web.middleware
async def request_logging_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    start_time = time.perf_counter()
    response = await handler(request)
    logger.debug(
        "%s %s -> %d (%.1f ms)",
        request.method,
        request.path,
        response.status,
        (time.perf_counter() - start_time) * 1000.0,
    )
    return response


@web.middleware
async def error_handling_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException as e:
        return create_error_response(
            e.reason.upper().replace(" ", "_") if e.reason else "HTTP_ERROR",
            e.text or str(e),
            status=e.status,
        )
    except ValueError as e:
        logger.warning("Validation error: %s", e)
        return create_error_response("VALIDATION_ERROR", str(e), status=400)
    except Exception as e:
        tb = traceback.format_exc()
        logger.error("Unexpected error: %s\n%s", e, tb)

        details = {"type": type(e).__name__, "message": str(e)}
        if _debug_mode:
            details["traceback"] = tb.split("\n")
            details["request"] = {"method": request.method, "path": request.path}
        return create_error_response("INTERNAL_ERROR", "An unexpected error occurred", status=500, details=details)


def create_error_response(code: str, message: str, status: int = 400, details: Optional[dict] = None) -> web.Response:
    error = {"error": {"code": code, "message": message}, "status": status}
    if details:
        error["error"]["details"] = details
    return web.json_response(error, status=status)


def result_to_response(result, not_found_code: str = "NOT_FOUND", not_found_msg: str = "Resource not found"):
    """Convert a controller result to a response, None meaning not found."""
    if result is None:
        return create_error_response(not_found_code, not_found_msg, status=404)
    if isinstance(result, dict) and "success" in result:
        return web.json_response(result, status=200 if result["success"] else 400)
    return web.json_response(result)


__all__ = [
    "create_error_response",
    "error_handling_middleware",
    "is_debug_mode",
    "localhost_only_middleware",
    "request_logging_middleware",
    "result_to_response",
    "set_debug_mode",
]
