"""
Bazaar Backend — Payment Routes
================================

What:  Payment lifecycle under /api/payment, forwarded to the PaymentGateway
       held on app.state.

Endpoints:
    POST /init                    open a payment session (COD confirms directly)
    POST /success|/fail|/cancel   provider browser callbacks → redirect to frontend
    POST /ipn                     provider server-to-server notification (plain text)
    GET  /status/{order_id}       payments of an order
    GET  /details/{transaction_id}
    POST /cod/delivery-fee
    POST /cod/complete-product
    POST /refund
    GET  /refund/{refund_ref_id}

Callbacks always end in a redirect, so they are the only handlers that catch
errors: the failure is logged and the browser is sent to the failure page.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, RedirectResponse

from bazaar.exceptions import ShortCircuit
from bazaar.schemas.common import ApiResponse
from bazaar.schemas.payment import (
    GATEWAY_CODES,
    VALID_PAYMENT_STATUSES,
    CompleteProductRequest,
    DeliveryFeeRequest,
    PaymentCallback,
    PaymentInitRequest,
    RefundRequest,
)
from bazaar.services.payment_gateway import PaymentGateway, get_payment_gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payment", tags=["Payment"])

PAID_STATUS = "PAID"


# ── Helpers ───────────────────────────────────────────────────────────────

async def read_callback(request: Request) -> PaymentCallback:
    """Provider callbacks arrive form-encoded; JSON is accepted too."""
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError:
            payload = {}
    else:
        payload = dict(await request.form())
    if not isinstance(payload, dict):
        payload = {}
    return PaymentCallback.model_validate(payload)


def frontend_redirect(request: Request, path: str, tran_id: Optional[str] = None) -> RedirectResponse:
    url = f"{request.app.state.settings.frontend_url.rstrip('/')}{path}"
    if tran_id:
        url = f"{url}?{urlencode({'tran_id': tran_id})}"
    return RedirectResponse(url, status_code=302)


def is_valid_payment(validation: Optional[Dict[str, Any]]) -> bool:
    return bool(validation) and validation.get("status") in VALID_PAYMENT_STATUSES


# ── Online payment lifecycle ──────────────────────────────────────────────

@router.post("/init", response_model=ApiResponse[Dict[str, Any]])
async def init_payment(
    payload: PaymentInitRequest,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> ApiResponse[Dict[str, Any]]:
    if payload.gateway_code not in GATEWAY_CODES:
        raise ShortCircuit(400, "Invalid gateway code")

    if payload.gateway_code == "COD":
        result = await gateway.handle_cod_order(payload.order_id)
        logger.info("Order %s confirmed with cash on delivery", payload.order_id)
        return ApiResponse(message="Order confirmed with Cash on Delivery", data=result)

    session = await gateway.initiate_payment(
        order_id=payload.order_id,
        gateway_code=payload.gateway_code,
        user_id=payload.user_id,
    )
    logger.info(
        "Payment session %s opened for order %s via %s",
        session.get("transactionId"),
        payload.order_id,
        payload.gateway_code,
    )
    return ApiResponse(
        data={
            "gatewayPageURL": session.get("gatewayPageURL"),
            "sessionKey": session.get("sessionKey"),
            "transactionId": session.get("transactionId"),
        }
    )


@router.post("/success", response_class=RedirectResponse, status_code=302)
async def payment_success(
    request: Request,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> RedirectResponse:
    callback = await read_callback(request)
    try:
        validation = await gateway.validate_payment(callback.val_id)
        if not is_valid_payment(validation):
            logger.warning("Success callback for %s failed validation", callback.tran_id)
            return frontend_redirect(request, "/payment/failed")

        # The IPN may already have confirmed this transaction
        payment = await gateway.get_payment_by_transaction_id(callback.tran_id)
        if not payment or payment.get("status") != PAID_STATUS:
            await gateway.confirm_payment(callback.tran_id, validation)
    except Exception:
        logger.exception("Payment success callback failed for %s", callback.tran_id)
        return frontend_redirect(request, "/payment/failed")

    return frontend_redirect(request, "/payment/success", callback.tran_id)


@router.post("/fail", response_class=RedirectResponse, status_code=302)
async def payment_fail(
    request: Request,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> RedirectResponse:
    callback = await read_callback(request)
    try:
        await gateway.handle_failed_payment(callback.tran_id)
    except Exception:
        logger.exception("Payment fail callback failed for %s", callback.tran_id)
        return frontend_redirect(request, "/payment/failed")
    return frontend_redirect(request, "/payment/failed", callback.tran_id)


@router.post("/cancel", response_class=RedirectResponse, status_code=302)
async def payment_cancel(
    request: Request,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> RedirectResponse:
    callback = await read_callback(request)
    try:
        await gateway.handle_cancelled_payment(callback.tran_id)
    except Exception:
        logger.exception("Payment cancel callback failed for %s", callback.tran_id)
        return frontend_redirect(request, "/payment/cancelled")
    return frontend_redirect(request, "/payment/cancelled", callback.tran_id)


@router.post("/ipn", response_class=PlainTextResponse)
async def payment_ipn(
    request: Request,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PlainTextResponse:
    callback = await read_callback(request)
    logger.info(
        "IPN received: tran_id=%s status=%s amount=%s",
        callback.tran_id,
        callback.status,
        callback.amount,
    )

    validation = await gateway.validate_payment(callback.val_id)
    if not is_valid_payment(validation):
        logger.error("IPN for %s rejected: %s", callback.tran_id, validation)
        return PlainTextResponse("Invalid payment", status_code=400)

    await gateway.confirm_payment(callback.tran_id, validation)
    return PlainTextResponse("IPN processed successfully", status_code=200)


# ── Queries ───────────────────────────────────────────────────────────────

@router.get("/status/{order_id}", response_model=ApiResponse[Any])
async def payment_status(
    order_id: int,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> ApiResponse[Any]:
    return ApiResponse(data=await gateway.get_payment_details(order_id))


@router.get("/details/{transaction_id}", response_model=ApiResponse[Any])
async def transaction_details(
    transaction_id: str,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> ApiResponse[Any]:
    return ApiResponse(data=await gateway.query_transaction_status(transaction_id))


# ── Cash on delivery ──────────────────────────────────────────────────────

@router.post("/cod/delivery-fee", response_model=ApiResponse[Any])
async def cod_delivery_fee(
    payload: DeliveryFeeRequest,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> ApiResponse[Any]:
    if payload.gateway_code not in GATEWAY_CODES or payload.gateway_code == "COD":
        raise ShortCircuit(400, "Invalid gateway code")
    result = await gateway.process_delivery_fee(
        order_id=payload.order_id,
        amount=payload.amount,
        user_id=payload.user_id,
        gateway_code=payload.gateway_code,
    )
    return ApiResponse(data=result)


@router.post("/cod/complete-product", response_model=ApiResponse[Any])
async def cod_complete_product(
    payload: CompleteProductRequest,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> ApiResponse[Any]:
    result = await gateway.complete_product_payment(payload.order_id)
    return ApiResponse(message="Product payment completed successfully", data=result)


# ── Refunds ───────────────────────────────────────────────────────────────

@router.post("/refund", response_model=ApiResponse[Any])
async def initiate_refund(
    payload: RefundRequest,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> ApiResponse[Any]:
    result = await gateway.process_refund(
        transaction_id=payload.transaction_id,
        refund_amount=payload.refund_amount,
        refund_reason=payload.refund_reason,
    )
    logger.info("Refund initiated for transaction %s", payload.transaction_id)
    return ApiResponse(message="Refund initiated successfully", data=result)


@router.get("/refund/{refund_ref_id}", response_model=ApiResponse[Any])
async def refund_status(
    refund_ref_id: str,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> ApiResponse[Any]:
    return ApiResponse(data=await gateway.query_refund_status(refund_ref_id))
