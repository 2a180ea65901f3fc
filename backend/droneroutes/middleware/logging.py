"""
Drone Routes Backend — Request Logging Middleware
===================================================

One access log line per request: method, path, status, duration, request ID
and client IP. Level follows the status class (5xx ERROR, 4xx WARNING, else
INFO). /health is skipped. Bodies are never logged; they carry CSVs and
multi-megabyte photos.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from droneroutes.middleware.request_id import request_id_var

logger = logging.getLogger("droneroutes.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each HTTP request after the response is produced.

    Typical durations:
        - GET /api/routes/{id}: tens of ms plus one stat per photographed point
        - POST /api/routes: dominated by the photo upload fan-out
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        rid = request_id_var.get("")
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
