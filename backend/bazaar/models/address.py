"""
Bazaar Backend — Location and User Address Models
==================================================

Query patterns:
    - List a user's addresses: WHERE user_id = :uid ORDER BY is_default DESC, created_at DESC
    - Default address:         WHERE user_id = :uid AND is_default
    Both served by idx_user_addresses_user_id.

At most one address per user has is_default = true; AddressService keeps
that invariant (the database does not).
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bazaar.database import Base
from bazaar.models.customer import _utcnow, _uuid


class AddressType(str, enum.Enum):
    HOME = "HOME"
    WORK = "WORK"
    OTHER = "OTHER"


class Location(Base):
    """A deliverable area (division / city / zone) referenced by addresses."""

    __tablename__ = "locations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    zone: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class UserAddress(Base):
    __tablename__ = "user_addresses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    location_id: Mapped[str] = mapped_column(ForeignKey("locations.id"), nullable=False)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str] = mapped_column(String(30), nullable=False)
    address_line1: Mapped[str] = mapped_column(String(200), nullable=False)
    address_line2: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    landmark: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    address_type: Mapped[Optional[AddressType]] = mapped_column(
        Enum(AddressType, name="address_type"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    location: Mapped["Location"] = relationship(lazy="selectin")

    __table_args__ = (Index("idx_user_addresses_user_id", "user_id"),)

    def __repr__(self) -> str:
        return f"<UserAddress(id={self.id}, user_id={self.user_id}, default={self.is_default})>"
