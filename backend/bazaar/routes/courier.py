"""
Bazaar Backend — Courier Routes
================================

What:  Courier-provider listing, credential verification and inbound
       provider webhooks under /api/courier.

Endpoints:
    GET  /providers            active providers (cache-gated, populated on miss)
    POST /credentials/verify   resolve provider + credentials for a vendor
    POST /webhook/pathao       signed delivery-status events
    POST /webhook/redx         token-authenticated delivery-status events

Webhook paths are also rate limited and given permissive CORS by the
middleware stack (see bazaar.main), and are excluded from sanitization so
the signed body reaches the signature check byte-for-byte.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar.database import get_db_session
from bazaar.exceptions import ValidationError
from bazaar.middleware.auth import authorize_vendor
from bazaar.middleware.cache_gate import cache_gate
from bazaar.middleware.guards import CourierContext, courier_context, validate_environment
from bazaar.middleware.webhook import verify_webhook_signature
from bazaar.models.courier import CourierEnvironment
from bazaar.schemas.common import ApiResponse
from bazaar.schemas.courier import (
    CourierContextOut,
    CourierCredentialsOut,
    CourierProviderOut,
    WebhookAck,
)
from bazaar.services.courier_service import courier_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/courier", tags=["Courier"])

WEBHOOK_PREFIX = "/api/courier/webhook"
PROVIDERS_CACHE_KEY = "courier:providers:active"


@router.get(
    "/providers",
    response_model=ApiResponse[List[CourierProviderOut]],
    dependencies=[Depends(cache_gate(PROVIDERS_CACHE_KEY))],
    summary="List active courier providers",
)
async def list_providers(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[CourierProviderOut]]:
    providers = [
        CourierProviderOut.model_validate(p)
        for p in await courier_service.list_active_providers(db)
    ]
    # A later hit answers {"fromCache": true, "data": <this list>}
    await request.app.state.cache.set_json(
        PROVIDERS_CACHE_KEY,
        [p.model_dump(mode="json", by_alias=True) for p in providers],
    )
    return ApiResponse(message="Courier providers retrieved successfully", data=providers)


@router.post(
    "/credentials/verify",
    response_model=ApiResponse[CourierContextOut],
    summary="Resolve a vendor's active credentials for a courier provider",
)
async def verify_credentials(
    vendor_id: str = Depends(authorize_vendor),
    environment: CourierEnvironment = Depends(validate_environment),
    ctx: CourierContext = Depends(courier_context),
) -> ApiResponse[CourierContextOut]:
    logger.info(
        "Courier credentials verified: provider=%s vendor=%s env=%s",
        ctx.provider.code,
        vendor_id,
        environment.value,
    )
    return ApiResponse(
        message="Courier credentials verified",
        data=CourierContextOut(
            provider=CourierProviderOut.model_validate(ctx.provider),
            credentials=CourierCredentialsOut.model_validate(ctx.credentials),
        ),
    )


# ── Webhooks ──────────────────────────────────────────────────────────────

async def _webhook_event(request: Request) -> dict:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise ValidationError(message="Malformed webhook payload") from exc
    if not isinstance(payload, dict):
        raise ValidationError(message="Webhook payload must be a JSON object")
    return payload


@router.post(
    "/webhook/pathao",
    response_model=WebhookAck,
    dependencies=[Depends(verify_webhook_signature("pathao"))],
    summary="Pathao delivery-status webhook",
)
async def pathao_webhook(request: Request) -> WebhookAck:
    event = await _webhook_event(request)
    logger.info(
        "Pathao webhook: event=%s consignment=%s status=%s",
        event.get("event"),
        event.get("consignment_id"),
        event.get("order_status"),
    )
    return WebhookAck(provider="pathao")


@router.post(
    "/webhook/redx",
    response_model=WebhookAck,
    dependencies=[Depends(verify_webhook_signature("redx"))],
    summary="RedX delivery-status webhook",
)
async def redx_webhook(request: Request) -> WebhookAck:
    event = await _webhook_event(request)
    logger.info(
        "RedX webhook: tracking=%s status=%s",
        event.get("tracking_number"),
        event.get("status"),
    )
    return WebhookAck(provider="redx")
