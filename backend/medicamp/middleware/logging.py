"""
MediCamp Backend - Request Logging Middleware
===============================================

What:  One access log line per request on the `medicamp.access` logger.
How:   Measures wall time around the downstream handler and logs method,
       path, status, duration, request id and client address. 5xx responses
       log at ERROR, 4xx at WARNING, everything else at INFO.

Never logged: request bodies, cookies, or the Authorization header.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from medicamp.middleware.request_id import request_id_var

logger = logging.getLogger("medicamp.access")

QUIET_PATHS = {"/health"}


def client_address(request: Request) -> str:
    """Socket peer, already rewritten by ProxyHeadersMiddleware for trusted proxies."""
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        rid = request_id_var.get("")
        ip = client_address(request)
        logger.log(
            level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            request.url.path,
            status,
            duration_ms,
            rid,
            ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": ip,
            },
        )
        return response
