"""
Bazaar Backend — Payment Gateway
=================================

What:  The contract the /api/payment routes depend on, and its HTTP
       implementation that forwards each operation to the payment service.
How:   PaymentGateway is an abstract base class; create_app() receives a
       concrete instance (HttpPaymentGateway in production, a fake in tests)
       and stores it on app.state.payment_gateway.

Failure policy:
    - No retries. A failed call surfaces immediately.
    - Non-2xx answers and transport failures are raised as UpstreamError,
      carrying the upstream status and decoded error body, so the error
      classifier answers with the upstream status and the payload under
      `details`.
"""

import logging
import time
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
from fastapi import Request

from bazaar.config import Settings
from bazaar.exceptions import UpstreamError, upstream_error_from_httpx

logger = logging.getLogger(__name__)


class PaymentGateway(ABC):
    """
    Abstract interface to the payment provider.

    Every method returns the provider's decoded JSON answer. Implementations
    raise UpstreamError for provider failures and nothing else.
    """

    # ── Online payment lifecycle ──────────────────────────────────────────

    @abstractmethod
    async def initiate_payment(
        self, order_id: int, gateway_code: str, user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Open a payment session for an order.

        Returns at least `gatewayPageURL`, `sessionKey` and `transactionId`.
        """
        ...

    @abstractmethod
    async def handle_cod_order(self, order_id: int) -> Dict[str, Any]:
        """Confirm an order paid by cash on delivery (no online session)."""
        ...

    @abstractmethod
    async def validate_payment(self, val_id: Optional[str]) -> Dict[str, Any]:
        """Ask the provider to validate a callback; the answer carries `status`."""
        ...

    @abstractmethod
    async def confirm_payment(self, tran_id: str, validation: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def get_payment_by_transaction_id(self, tran_id: str) -> Optional[Dict[str, Any]]:
        """None when the transaction is unknown."""
        ...

    @abstractmethod
    async def handle_failed_payment(self, tran_id: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def handle_cancelled_payment(self, tran_id: str) -> Dict[str, Any]:
        ...

    # ── Queries ───────────────────────────────────────────────────────────

    @abstractmethod
    async def get_payment_details(self, order_id: int) -> List[Dict[str, Any]]:
        """All payments recorded against an order."""
        ...

    @abstractmethod
    async def query_transaction_status(self, transaction_id: str) -> Dict[str, Any]:
        ...

    # ── Cash on delivery ──────────────────────────────────────────────────

    @abstractmethod
    async def process_delivery_fee(
        self,
        order_id: int,
        amount: Decimal,
        user_id: Optional[str],
        gateway_code: str,
    ) -> Dict[str, Any]:
        """Collect the delivery fee of a COD order online, up front."""
        ...

    @abstractmethod
    async def complete_product_payment(self, order_id: int) -> Dict[str, Any]:
        """Record the product amount of a COD order as collected on delivery."""
        ...

    # ── Refunds ───────────────────────────────────────────────────────────

    @abstractmethod
    async def process_refund(
        self, transaction_id: str, refund_amount: Decimal, refund_reason: str
    ) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def query_refund_status(self, refund_ref_id: str) -> Dict[str, Any]:
        ...

    async def close(self) -> None:
        """Release network resources (application shutdown)."""
        return None


class HttpPaymentGateway(PaymentGateway):
    """
    PaymentGateway over the payment service's JSON API.

    Args:
        base_url:       Payment service root (PAYMENT_GATEWAY_URL).
        store_id:       Merchant credentials sent with every call.
        store_password:
        timeout:        Per-request timeout in seconds.
        transport:      Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        store_id: str = "",
        store_password: str = "",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/json",
                "X-Store-Id": store_id,
                "X-Store-Password": store_password,
            },
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "HttpPaymentGateway":
        return cls(
            base_url=settings.payment_gateway_url,
            store_id=settings.payment_store_id,
            store_password=settings.payment_store_password,
            timeout=settings.upstream_timeout_seconds,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        start = time.perf_counter()
        try:
            response = await self.client.request(method, path, json=json, params=params)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            error = upstream_error_from_httpx(exc)
            logger.warning(
                "Payment service %s %s failed (status=%s): %s",
                method,
                path,
                error.status_code,
                exc,
            )
            raise error from exc

        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "Payment service %s %s → %d (%.0fms)",
            method,
            path,
            response.status_code,
            duration_ms,
        )
        if not response.content:
            return None
        return response.json()

    async def initiate_payment(
        self, order_id: int, gateway_code: str, user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/payments/init",
            json={"orderId": order_id, "gatewayCode": gateway_code, "userId": user_id},
        )

    async def handle_cod_order(self, order_id: int) -> Dict[str, Any]:
        return await self._request("POST", f"/orders/{order_id}/cod")

    async def validate_payment(self, val_id: Optional[str]) -> Dict[str, Any]:
        return await self._request("GET", "/payments/validate", params={"val_id": val_id})

    async def confirm_payment(self, tran_id: str, validation: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "POST", f"/transactions/{tran_id}/confirm", json={"validation": validation}
        )

    async def get_payment_by_transaction_id(self, tran_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self._request("GET", f"/transactions/{tran_id}")
        except UpstreamError as exc:
            if exc.status_code == 404:
                return None
            raise

    async def handle_failed_payment(self, tran_id: str) -> Dict[str, Any]:
        return await self._request("POST", f"/transactions/{tran_id}/fail")

    async def handle_cancelled_payment(self, tran_id: str) -> Dict[str, Any]:
        return await self._request("POST", f"/transactions/{tran_id}/cancel")

    async def get_payment_details(self, order_id: int) -> List[Dict[str, Any]]:
        return await self._request("GET", f"/orders/{order_id}/payments")

    async def query_transaction_status(self, transaction_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/transactions/{transaction_id}/status")

    async def process_delivery_fee(
        self,
        order_id: int,
        amount: Decimal,
        user_id: Optional[str],
        gateway_code: str,
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/orders/{order_id}/cod/delivery-fee",
            json={"amount": str(amount), "userId": user_id, "gatewayCode": gateway_code},
        )

    async def complete_product_payment(self, order_id: int) -> Dict[str, Any]:
        return await self._request("POST", f"/orders/{order_id}/cod/complete")

    async def process_refund(
        self, transaction_id: str, refund_amount: Decimal, refund_reason: str
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/refunds",
            json={
                "transactionId": transaction_id,
                "refundAmount": str(refund_amount),
                "refundReason": refund_reason,
            },
        )

    async def query_refund_status(self, refund_ref_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/refunds/{refund_ref_id}")

    async def close(self) -> None:
        await self.client.aclose()


# ── Dependency ────────────────────────────────────────────────────────────
def get_payment_gateway(request: Request) -> PaymentGateway:
    return request.app.state.payment_gateway
