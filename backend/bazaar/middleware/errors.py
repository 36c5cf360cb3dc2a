"""
Bazaar Backend — Error Classifier
==================================

What:  The single place that turns exceptions into JSON error envelopes.
How:   classify() maps an error variant to (status, envelope) using the first
       matching rule below; ErrorClassifierMiddleware catches everything that
       escapes the application, logs it and sends exactly one response.

Rules (first match wins):
    1. Response already started       → re-raise unchanged (no second response)
    2. VALIDATION                     → 400, errors list (or message)
    3. UNAUTHORIZED / "unauthorized"  → 401
    4. NOT_FOUND / "not found"        → 404
    5. UPSTREAM                       → upstream status (default 500), details = upstream payload
    6. PERSISTENCE                    → 400
    7. anything else                  → 500, raw message only in development

Envelope:
    {"success": false, "message": str, "error"?: str|dict, "errors"?: list, "details"?: any}
"""

import logging
from typing import Any, Dict, Tuple

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from bazaar.exceptions import (
    BazaarError,
    ErrorKind,
    ShortCircuit,
    ValidationError,
    from_exception,
)
from bazaar.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Something went wrong"


def classify(exc: BaseException, *, debug: bool = False) -> Tuple[int, Dict[str, Any]]:
    """
    Map an exception onto an HTTP status and error envelope (rules 2-7).

    Args:
        exc:   Any exception; library errors are converted by from_exception().
        debug: Development mode; exposes raw messages in 500 responses.
    """
    error = from_exception(exc)
    message = error.message
    lowered = message.lower()

    if error.kind is ErrorKind.VALIDATION:
        errors = getattr(error, "errors", None)
        return 400, {
            "success": False,
            "message": "Validation error",
            "errors": errors if errors is not None else message,
        }

    if error.kind is ErrorKind.UNAUTHORIZED or "unauthorized" in lowered:
        return 401, {
            "success": False,
            "message": "Unauthorized access",
            "error": message,
        }

    if error.kind is ErrorKind.NOT_FOUND or "not found" in lowered:
        return 404, {
            "success": False,
            "message": "Resource not found",
            "error": message,
        }

    if error.kind is ErrorKind.UPSTREAM:
        payload = getattr(error, "payload", None)
        upstream_message = payload.get("message") if isinstance(payload, dict) else None
        return getattr(error, "status_code", None) or 500, {
            "success": False,
            "message": "Upstream provider request failed",
            "error": upstream_message or message,
            "details": payload,
        }

    if error.kind is ErrorKind.PERSISTENCE:
        return 400, {
            "success": False,
            "message": "Database operation failed",
            "error": message,
        }

    return 500, {
        "success": False,
        "message": "Internal server error",
        "error": message if debug else GENERIC_SERVER_ERROR,
    }


def log_error(exc: BaseException, status: int) -> None:
    rid = request_id_var.get("")
    if status >= 500:
        logger.error("[%s] %s: %s", rid, exc.__class__.__name__, exc, exc_info=exc)
    else:
        logger.warning("[%s] %s (%d): %s", rid, exc.__class__.__name__, status, exc)


class ErrorClassifierMiddleware:
    """
    Pure ASGI middleware wrapping the whole application.

    Tracks whether http.response.start has gone out. If it has, the error is
    re-raised for the server's own error handling (rule 1); otherwise it is
    classified, logged and answered.
    """

    def __init__(self, app: ASGIApp, debug: bool = False):
        self.app = app
        self.debug = debug

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception as exc:
            if response_started:
                raise
            status, envelope = classify(exc, debug=self.debug)
            log_error(exc, status)
            response = JSONResponse(status_code=status, content=envelope)
            await response(scope, receive, send)


# ── FastAPI exception handlers ────────────────────────────────────────────
# These run inside the router, before errors would reach the middleware.

async def handle_short_circuit(request: Request, exc: ShortCircuit) -> JSONResponse:
    """A guard or gate answered the request directly."""
    return JSONResponse(status_code=exc.status_code, content=exc.body, headers=exc.headers)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema failures on body/query/path parameters take the validation rule."""
    error = ValidationError(
        message="Request validation failed",
        errors=[
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ],
    )
    status, envelope = classify(error, debug=request.app.state.settings.is_development)
    log_error(error, status)
    return JSONResponse(status_code=status, content=envelope)


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Framework answers (unknown path 404, wrong method 405, ...) in the same
    envelope. 404 goes through the not-found rule; other codes keep their
    status with {success: false, message: detail}.
    """
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    if exc.status_code == 404:
        status, envelope = classify(BazaarError(message=detail))
    else:
        status, envelope = exc.status_code, {"success": False, "message": detail}
    logger.warning(
        "[%s] %s %s answered %d: %s",
        request_id_var.get(""),
        request.method,
        request.url.path,
        status,
        detail,
    )
    return JSONResponse(status_code=status, content=envelope, headers=getattr(exc, "headers", None))
