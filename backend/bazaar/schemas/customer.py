"""
Bazaar Backend — Customer Account DTOs
=======================================

Read shapes for the customer account models plus the filter/export option
objects used by the admin customer listing. Pure data; no behavior.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import Field

from bazaar.models.customer import (
    ComplaintPriority,
    ComplaintStatus,
    LoyaltyTransactionType,
    WalletTransactionType,
)
from bazaar.schemas.common import CamelModel

CustomerStatus = Literal["active", "blocked", "all"]


class CustomerProfileOut(CamelModel):
    id: str
    user_id: str
    address: Optional[str] = None
    phone: Optional[str] = None
    wallet: Decimal
    loyalty_points: int
    created_at: datetime
    updated_at: datetime


class ReviewOut(CamelModel):
    id: str
    user_id: str
    product_id: str
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None
    is_approved: bool
    is_flagged: bool
    flagged_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ComplaintMessageOut(CamelModel):
    id: str
    complaint_id: str
    sender_id: str
    content: str
    is_internal: bool
    created_at: datetime


class ComplaintOut(CamelModel):
    id: str
    user_id: str
    subject: str
    description: str
    status: ComplaintStatus
    priority: ComplaintPriority
    assigned_to: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    messages: List[ComplaintMessageOut] = Field(default_factory=list)


class WalletTransactionOut(CamelModel):
    id: str
    user_id: str
    amount: Decimal
    type: WalletTransactionType
    description: str
    reference_id: Optional[str] = None
    created_at: datetime


class LoyaltyTransactionOut(CamelModel):
    id: str
    user_id: str
    points: int
    type: LoyaltyTransactionType
    description: str
    reference_id: Optional[str] = None
    created_at: datetime


class CustomerOut(CamelModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    is_blocked: bool
    wallet_balance: Decimal
    loyalty_points: int
    created_at: datetime
    updated_at: datetime


class CustomerDetailOut(CustomerOut):
    profile: Optional[CustomerProfileOut] = None
    reviews: List[ReviewOut] = Field(default_factory=list)
    complaints: List[ComplaintOut] = Field(default_factory=list)
    wallet_transactions: List[WalletTransactionOut] = Field(default_factory=list)
    loyalty_transactions: List[LoyaltyTransactionOut] = Field(default_factory=list)


class CustomerFilter(CamelModel):
    status: Optional[CustomerStatus] = None
    search: Optional[str] = None
    min_wallet: Optional[Decimal] = None
    max_wallet: Optional[Decimal] = None
    min_loyalty: Optional[int] = None
    max_loyalty: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    sort_by: Optional[str] = None
    sort_order: Literal["asc", "desc"] = "desc"


class ExportOptions(CamelModel):
    format: Literal["csv", "json", "excel"]
    fields: List[str]
    filters: Optional[CustomerFilter] = None
