"""
Drone Routes Backend — Request ID Middleware
==============================================

What:  Gives every request a correlation ID and echoes it back in the
       X-Request-ID response header.
How:   Reuses the client's X-Request-ID when present, otherwise generates a
       short one. The value lives in a ContextVar so the error handlers and
       loggers can read it without access to the request object.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns X-Request-ID (client-provided or 8-char UUID prefix)."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers["X-Request-ID"] = rid
        return response
