"""
Bazaar Backend — Courier Provider Models
=========================================

What:  Shipping providers (Pathao, RedX, ...) and the API credentials used to
       talk to them, per vendor and environment.
Who:   Read by the courier guards; written by admin tooling elsewhere.

A credentials row with vendor_id NULL is the platform-wide default for that
provider and environment.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bazaar.database import Base
from bazaar.models.customer import _utcnow, _uuid


class CourierEnvironment(str, enum.Enum):
    SANDBOX = "SANDBOX"
    PRODUCTION = "PRODUCTION"


class CourierProvider(Base):
    __tablename__ = "courier_providers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    base_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<CourierProvider(code='{self.code}', active={self.is_active})>"


class CourierCredentials(Base):
    __tablename__ = "courier_credentials"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    courier_provider_id: Mapped[str] = mapped_column(
        ForeignKey("courier_providers.id", ondelete="CASCADE"), nullable=False
    )
    vendor_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    environment: Mapped[CourierEnvironment] = mapped_column(
        Enum(CourierEnvironment, name="courier_environment"),
        nullable=False,
        default=CourierEnvironment.PRODUCTION,
    )
    # Provider-specific secrets (client id/secret, api key, ...). Never serialized to clients.
    secrets: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    provider: Mapped["CourierProvider"] = relationship(lazy="selectin")

    __table_args__ = (
        Index(
            "idx_courier_credentials_lookup",
            "courier_provider_id",
            "vendor_id",
            "environment",
        ),
    )
