"""
Bazaar Backend — Courier Webhook Boundary
==========================================

What:  CORS handling and signature verification for inbound courier-provider
       webhooks (rate limiting lives in rate_limit.py).

Signature schemes:
    pathao: X-Pathao-Signature = hex(HMAC-SHA256(PATHAO_WEBHOOK_SECRET, raw body))
    redx:   ?token=<REDX_WEBHOOK_TOKEN>

Both comparisons are constant-time. An unconfigured secret rejects every
request for that provider.
"""

import hashlib
import hmac
import logging
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from bazaar.exceptions import ShortCircuit

logger = logging.getLogger(__name__)

PATHAO_SIGNATURE_HEADER = "X-Pathao-Signature"
WEBHOOK_PROVIDERS = ("pathao", "redx")

WEBHOOK_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST",
    "Access-Control-Allow-Headers": f"Content-Type, {PATHAO_SIGNATURE_HEADER}",
}


class WebhookCORSMiddleware(BaseHTTPMiddleware):
    """
    Permissive CORS for webhook paths; preflight OPTIONS is answered with 200
    and never reaches the router.
    """

    def __init__(self, app: ASGIApp, path_prefix: str):
        super().__init__(app)
        self.path_prefix = path_prefix

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        if request.method == "OPTIONS":
            return Response(status_code=200, headers=WEBHOOK_CORS_HEADERS)

        response = await call_next(request)
        response.headers.update(WEBHOOK_CORS_HEADERS)
        return response


def pathao_signature(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_webhook_signature(provider: str) -> Callable[[Request], Awaitable[None]]:
    """
    Dependency factory: reject webhook calls that fail the provider's check.

    Usage:
        @router.post("/webhook/pathao", dependencies=[Depends(verify_webhook_signature("pathao"))])
    """
    if provider not in WEBHOOK_PROVIDERS:
        raise ValueError(f"Unknown webhook provider '{provider}'. Expected one of {WEBHOOK_PROVIDERS}")

    async def dependency(request: Request) -> None:
        settings = request.app.state.settings
        if provider == "pathao":
            secret = settings.pathao_webhook_secret
            supplied = request.headers.get(PATHAO_SIGNATURE_HEADER, "")
            expected = pathao_signature(secret, await request.body()) if secret else ""
        else:
            secret = settings.redx_webhook_token
            supplied = request.query_params.get("token", "")
            expected = secret

        if not secret:
            logger.error("Webhook secret for %s is not configured; rejecting request", provider)
        if not secret or not supplied or not hmac.compare_digest(
            supplied.encode("utf-8"), expected.encode("utf-8")
        ):
            logger.warning("Rejected %s webhook with invalid signature", provider)
            raise ShortCircuit(401, "Webhook signature verification failed")

    return dependency
