"""
DevConnector Backend: Request Logging Middleware
=================================================

What:  One access-log line per request: method, path, status, duration,
       request id, client IP and, on protected routes, the user id the Auth
       Gate resolved.
How:   5xx → ERROR, 4xx → WARNING, everything else → INFO. GET /health is
       skipped.

Never logged: request bodies (passwords), the Authorization and
x-auth-token headers.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from devconnector.middleware.request_id import request_id_var

logger = logging.getLogger("devconnector.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log with request-id correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        # Set by the Auth Gate once the token verified
        user_id = getattr(request.state, "user_id", None) or "-"

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            user_id,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "user_id": user_id,
                "client_ip": client_ip,
            },
        )
        return response
