"""
Bazaar Backend — Webhook Rate Limiting Middleware
==================================================

What:  Per-address sliding window rate limiter for inbound courier webhooks.
How:   Keeps a list of request timestamps per client address in memory.

Algorithm: Sliding Window Log
    1. Each address gets a list of request timestamps
    2. On each request, drop timestamps older than the window
    3. If the remaining count >= limit, reject with 429
    4. Otherwise record the current timestamp and let the request through

Scope:
    Only paths under `path_prefix` are limited; everything else passes
    straight through. State is per process, so each worker enforces its own
    window.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Args:
        max_requests: Requests allowed per address per window.
        window:       Window length in seconds.
        path_prefix:  Only requests whose path starts with this are limited.

    Response on rate limit:
        HTTP 429, Retry-After header, body
        {"success": false, "message": "...", "details": {"retry_after": n}}
    """

    CLEANUP_EVERY = 1000

    def __init__(
        self,
        app: ASGIApp,
        max_requests: int,
        window: int,
        path_prefix: str = "/",
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window = window
        self.path_prefix = path_prefix
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not request.url.path.startswith(self.path_prefix) or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - self.window

        self._requests[client_ip] = [
            ts for ts in self._requests[client_ip] if ts > window_start
        ]

        if len(self._requests[client_ip]) >= self.max_requests:
            oldest = self._requests[client_ip][0]
            retry_after = int(oldest + self.window - now) + 1

            logger.warning(
                "Webhook rate limit exceeded for %s: %d requests in %ds window",
                client_ip,
                len(self._requests[client_ip]),
                self.window,
            )

            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "message": f"Too many requests. Please wait {retry_after} seconds before retrying.",
                    "details": {"retry_after": retry_after},
                },
                headers={"Retry-After": str(retry_after)},
            )

        self._requests[client_ip].append(now)

        self._seen += 1
        if self._seen % self.CLEANUP_EVERY == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        """Drop addresses with no requests inside the current window."""
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or max(timestamps) < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive webhook client entries", len(inactive_ips))
