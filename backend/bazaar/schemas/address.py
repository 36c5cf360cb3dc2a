"""
Bazaar Backend — User Address Schemas
======================================

Request bodies are validated here; FastAPI turns violations into
RequestValidationError, which the error classifier answers with 400 and the
list of field errors.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from bazaar.models.address import AddressType
from bazaar.schemas.common import CamelModel

# Accepts "+880 1711-000000", "(02) 555 1234", "01711000000", ...
PHONE_PATTERN = r"^[\+]?[(]?[0-9]{1,4}[)]?[-\s\.]?[(]?[0-9]{1,4}[)]?[-\s\.]?[0-9]{1,9}$"


class AddressCreate(CamelModel):
    location_id: str = Field(min_length=1)
    full_name: str = Field(min_length=2, max_length=100)
    phone: str = Field(pattern=PHONE_PATTERN)
    address_line1: str = Field(min_length=5, max_length=200)
    address_line2: Optional[str] = Field(default=None, max_length=200)
    landmark: Optional[str] = Field(default=None, max_length=100)
    is_default: Optional[bool] = None
    address_type: Optional[AddressType] = None


class AddressUpdate(CamelModel):
    """Partial update: only fields present in the request are applied."""

    location_id: Optional[str] = Field(default=None, min_length=1)
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    address_line1: Optional[str] = Field(default=None, min_length=5, max_length=200)
    address_line2: Optional[str] = Field(default=None, max_length=200)
    landmark: Optional[str] = Field(default=None, max_length=100)
    is_default: Optional[bool] = None
    address_type: Optional[AddressType] = None

    @field_validator("location_id", "full_name", "phone", "address_line1")
    @classmethod
    def reject_null(cls, v: Optional[str]) -> str:
        # Omit a field to keep it; null cannot clear a required column
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class AddressUpsert(AddressCreate):
    """Create when `id` is absent, update that address otherwise."""

    id: Optional[str] = None


class LocationOut(CamelModel):
    id: str
    name: str
    city: Optional[str] = None
    zone: Optional[str] = None


class AddressOut(CamelModel):
    id: str
    user_id: str
    location_id: str
    full_name: str
    phone: str
    address_line1: str
    address_line2: Optional[str] = None
    landmark: Optional[str] = None
    is_default: bool
    address_type: Optional[AddressType] = None
    created_at: datetime
    updated_at: datetime
    location: Optional[LocationOut] = None
