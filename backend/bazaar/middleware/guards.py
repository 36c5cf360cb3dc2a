"""
Bazaar Backend — Resource-Existence Guards
===========================================

What:  FastAPI dependencies that resolve a referenced courier record before a
       handler runs, and hand it over as a typed value.
How:   Read the identifier from the JSON body or the query string.
       - identifier missing      → 400, answered directly
       - no active record        → 404, answered directly
       - record found            → returned to the handler (CourierContext)
       - store failure           → PersistenceError, left to the classifier

Usage:
    @router.post("/quote")
    async def quote(ctx: CourierContext = Depends(courier_context)):
        ctx.provider, ctx.credentials
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar.database import get_db_session
from bazaar.exceptions import ShortCircuit, ValidationError
from bazaar.models.courier import CourierCredentials, CourierEnvironment, CourierProvider
from bazaar.services.courier_service import courier_service

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = CourierEnvironment.PRODUCTION.value


@dataclass(frozen=True)
class CourierContext:
    """Per-request courier records resolved by the guards."""

    provider: CourierProvider
    credentials: CourierCredentials


async def request_params(request: Request) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """Return (json body as dict, query params as dict). Non-object bodies read as {}."""
    body: Dict[str, Any] = {}
    if request.headers.get("content-type", "").startswith("application/json"):
        raw = await request.body()
        if raw:
            try:
                payload = await request.json()
            except ValueError as exc:
                raise ValidationError(message="Malformed JSON body") from exc
            if isinstance(payload, dict):
                body = payload
    return body, dict(request.query_params)


def _parse_environment(value: Optional[str]) -> CourierEnvironment:
    try:
        return CourierEnvironment(value or DEFAULT_ENVIRONMENT)
    except ValueError:
        raise ShortCircuit(400, "Invalid environment. Must be SANDBOX or PRODUCTION")


async def validate_environment(request: Request) -> CourierEnvironment:
    """`environment` from body or query, defaulting to PRODUCTION."""
    body, query = await request_params(request)
    return _parse_environment(body.get("environment") or query.get("environment"))


async def require_courier_provider(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> CourierProvider:
    body, query = await request_params(request)
    provider_id = body.get("courierProviderId") or query.get("courierProviderId")
    if not provider_id:
        raise ShortCircuit(400, "Courier provider ID is required")

    provider = await courier_service.find_active_provider(db, str(provider_id))
    if provider is None:
        logger.info("Courier provider %s not found or inactive", provider_id)
        raise ShortCircuit(404, "Courier provider not found or inactive")
    return provider


async def require_courier_credentials(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> CourierCredentials:
    """
    courierProviderId, vendorId and environment are all taken from the body
    when the body names a provider, otherwise all from the query string.
    """
    body, query = await request_params(request)
    source: Dict[str, Any] = body if body.get("courierProviderId") else query

    provider_id = source.get("courierProviderId")
    if not provider_id:
        raise ShortCircuit(400, "Courier provider ID is required")
    vendor_id = source.get("vendorId") or None
    environment = _parse_environment(source.get("environment"))

    credentials = await courier_service.find_active_credentials(
        db,
        provider_id=str(provider_id),
        vendor_id=str(vendor_id) if vendor_id is not None else None,
        environment=environment,
    )
    if credentials is None:
        logger.info(
            "No active %s credentials for provider %s (vendor=%s)",
            environment.value,
            provider_id,
            vendor_id,
        )
        raise ShortCircuit(404, "Courier credentials not found or inactive")
    return credentials


async def courier_context(
    provider: CourierProvider = Depends(require_courier_provider),
    credentials: CourierCredentials = Depends(require_courier_credentials),
) -> CourierContext:
    return CourierContext(provider=provider, credentials=credentials)
