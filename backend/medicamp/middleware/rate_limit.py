"""
MediCamp Backend - Rate Limiting Middleware
=============================================

What:  Sliding-window request limit per client.
How:   A client is the email of a valid session cookie (so users behind one
       NAT do not share a budget), otherwise its socket address. Forged or
       expired cookies count against the address. Timestamps older than the
       window are dropped on every request; a client at the limit gets 429
       with Retry-After.

X-Forwarded-For is never read here. Behind a proxy, set TRUSTED_PROXIES so
ProxyHeadersMiddleware rewrites the client address first.

State is in-process; with several workers each enforces its own window.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from medicamp.config import settings
from medicamp.exceptions import RateLimitExceededError, UnauthenticatedError
from medicamp.middleware.logging import client_address
from medicamp.middleware.request_id import request_id_var
from medicamp.security.tokens import decode_token

logger = logging.getLogger(__name__)

CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._seen = 0

    @staticmethod
    def client_key(request: Request) -> str:
        token = request.cookies.get(settings.access_token_cookie)
        if token:
            try:
                return "user:" + decode_token(token)
            except UnauthenticatedError:
                logger.debug("Rate limiting an invalid session cookie by address")
        return "ip:" + client_address(request)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        key = self.client_key(request)
        now = time.time()
        window_start = now - settings.rate_limit_window

        hits = self._requests[key]
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= settings.rate_limit_requests:
            retry_after = int(hits[0] + settings.rate_limit_window - now) + 1
            exc = RateLimitExceededError(retry_after=retry_after)
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                key, len(hits), settings.rate_limit_window,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        hits.append(now)

        self._seen += 1
        if self._seen % CLEANUP_EVERY == 0:
            self._cleanup_inactive(window_start)

        return await call_next(request)

    def _cleanup_inactive(self, window_start: float) -> None:
        inactive = [key for key, hits in self._requests.items() if not hits or hits[-1] <= window_start]
        for key in inactive:
            del self._requests[key]
        if inactive:
            logger.debug("Dropped %d inactive rate-limit entries", len(inactive))
