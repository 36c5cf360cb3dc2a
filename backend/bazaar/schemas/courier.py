"""Bazaar Backend — Courier read shapes (credential secrets are never exposed)."""

from typing import Optional

from bazaar.models.courier import CourierEnvironment
from bazaar.schemas.common import CamelModel


class CourierProviderOut(CamelModel):
    id: str
    name: str
    code: str
    is_active: bool


class CourierCredentialsOut(CamelModel):
    id: str
    courier_provider_id: str
    vendor_id: Optional[str] = None
    environment: CourierEnvironment
    is_active: bool


class CourierContextOut(CamelModel):
    provider: CourierProviderOut
    credentials: CourierCredentialsOut


class WebhookAck(CamelModel):
    success: bool = True
    provider: str
