"""
Bazaar Backend — Payment Request Schemas
=========================================

Bodies accepted by /api/payment. Provider callbacks (success/fail/cancel/ipn)
arrive form-encoded and are read as PaymentCallback by the route itself.
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field

from bazaar.schemas.common import CamelModel

GATEWAY_CODES = ("BKASH", "NAGAD", "UPAY", "EBL_COF", "COD")
VALID_PAYMENT_STATUSES = ("VALID", "VALIDATED")


class PaymentInitRequest(CamelModel):
    order_id: int
    gateway_code: str
    user_id: Optional[str] = None


class DeliveryFeeRequest(CamelModel):
    order_id: int
    amount: Decimal = Field(gt=0)
    user_id: Optional[str] = None
    gateway_code: str


class CompleteProductRequest(CamelModel):
    order_id: int


class RefundRequest(CamelModel):
    transaction_id: str = Field(min_length=1)
    refund_amount: Decimal = Field(gt=0)
    refund_reason: str = Field(min_length=1, max_length=255)


class PaymentCallback(CamelModel):
    """Provider callback fields; the provider sends them in snake_case."""

    val_id: Optional[str] = None
    tran_id: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[str] = None
