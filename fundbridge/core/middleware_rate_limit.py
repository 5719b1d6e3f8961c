from __future__ import annotations

from typing import Iterable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from fundbridge.core.rate_limit import InMemoryRateLimiter


class SubmissionRateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies ONLY to POST contribution submit/reverify endpoints.
    Each of those requests fans out to several RPC reads.
    """

    def __init__(self, app, limiter: InMemoryRateLimiter, paths: Iterable[str]):
        super().__init__(app)
        self.limiter = limiter
        self.paths = set(paths)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        method = request.method.upper()

        if method == "POST" and path in self.paths:
            client_key = request.client.host if request.client else "unknown"
            route_key = f"{method}:{path}"
            if not self.limiter.allow(client_key, route_key):
                return JSONResponse(
                    status_code=429,
                    content={"detail": "RATE_LIMITED"},
                    headers={"Retry-After": "60"},
                )
        return await call_next(request)
