"""
Bazaar Backend — Request Logging Middleware
============================================

What:  Logs every request when it starts and when it finishes, with status
       and duration.
How:   Timestamps with time.perf_counter() on entry, logs again after the
       downstream response is produced.

Log lines:
    → POST /api/payment/init [a1b2c3d4] from 10.0.0.7
    ← POST /api/payment/init 200 412.3ms [a1b2c3d4]

Level follows the status class: 5xx ERROR, 4xx WARNING, otherwise INFO.
Request bodies are never logged (they carry addresses and phone numbers).
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from bazaar.middleware.request_id import request_id_var

logger = logging.getLogger("bazaar.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Start/finish access log with duration, skipping the health probe."""

    SKIPPED_PATHS = {"/health"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.SKIPPED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        rid = request_id_var.get("")

        logger.info("→ %s %s [%s] from %s", method, path, rid, client_ip)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "← %s %s %d %.1fms [%s]",
            method,
            path,
            status,
            duration_ms,
            rid,
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
