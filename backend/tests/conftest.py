"""
Bazaar Backend — Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the whole suite.
How:   The application is assembled with create_app() around test doubles:
       an in-memory SQLite database (aiosqlite), a dict-backed cache and a
       scripted payment gateway. Requests go through httpx.AsyncClient over
       ASGITransport, so no server or network is involved.

Fixture Hierarchy:
    test_settings        Settings with known secrets
    database             fresh in-memory database, all tables created
    fake_cache           FakeCache (dict)
    fake_gateway         FakePaymentGateway (records calls)
    app / test_client    application + HTTP client
    db_session           a committed session scope for seeding / assertions
    user, other_user, location, courier_provider, courier_credentials
    auth_headers         bearer token for `user`
"""

import json
import os
from decimal import Decimal
from typing import Any, Dict, List, Optional

# Override settings for testing BEFORE any bazaar imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["APP_ENV"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ACCESS_TOKEN_SECRET"] = "test-access-secret"
os.environ["PATHAO_WEBHOOK_SECRET"] = "test-pathao-secret"
os.environ["REDX_WEBHOOK_TOKEN"] = "test-redx-token"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from bazaar.config import Settings
from bazaar.database import Database
from bazaar.main import create_app
from bazaar.middleware.auth import create_access_token
from bazaar.models.address import Location
from bazaar.models.courier import CourierCredentials, CourierEnvironment, CourierProvider
from bazaar.models.customer import User
from bazaar.services.payment_gateway import PaymentGateway


# ══════════════════════════════════════════════════════════════════════════
# Test Doubles
# ══════════════════════════════════════════════════════════════════════════

class FakeCache:
    """In-memory stand-in for CacheStore with the same coroutine API."""

    def __init__(self, available: bool = True):
        self.store: Dict[str, str] = {}
        self.available = available
        self.closed = False

    async def get(self, key: str) -> Optional[str]:
        return self.store.get(key)

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        self.store[key] = json.dumps(value, default=str)

    async def delete(self, key: str) -> None:
        self.store.pop(key, None)

    async def ping(self) -> bool:
        if not self.available:
            raise ConnectionError("cache down")
        return True

    async def close(self) -> None:
        self.closed = True


class FakePaymentGateway(PaymentGateway):
    """
    Scripted PaymentGateway. `validation_status` drives validate_payment();
    `payments` maps tran_id → stored payment; every call is appended to `calls`.
    """

    def __init__(self):
        self.validation_status = "VALID"
        self.payments: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.fail_with: Optional[Exception] = None

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if self.fail_with is not None:
            raise self.fail_with

    def called(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    async def initiate_payment(self, order_id, gateway_code, user_id=None):
        self._record("initiate_payment", order_id, gateway_code, user_id)
        return {
            "gatewayPageURL": f"https://pay.test/session/{order_id}",
            "sessionKey": "sess-123",
            "transactionId": f"TXN-{order_id}",
            "internal": "not exposed",
        }

    async def handle_cod_order(self, order_id):
        self._record("handle_cod_order", order_id)
        return {"orderId": order_id, "status": "CONFIRMED"}

    async def validate_payment(self, val_id):
        self._record("validate_payment", val_id)
        return {"status": self.validation_status, "val_id": val_id}

    async def confirm_payment(self, tran_id, validation):
        self._record("confirm_payment", tran_id, validation)
        self.payments[tran_id] = {"status": "PAID"}
        return {"transactionId": tran_id, "status": "PAID"}

    async def get_payment_by_transaction_id(self, tran_id):
        self._record("get_payment_by_transaction_id", tran_id)
        return self.payments.get(tran_id)

    async def handle_failed_payment(self, tran_id):
        self._record("handle_failed_payment", tran_id)
        return {"transactionId": tran_id, "status": "FAILED"}

    async def handle_cancelled_payment(self, tran_id):
        self._record("handle_cancelled_payment", tran_id)
        return {"transactionId": tran_id, "status": "CANCELLED"}

    async def get_payment_details(self, order_id):
        self._record("get_payment_details", order_id)
        return [{"orderId": order_id, "status": "PAID"}]

    async def query_transaction_status(self, transaction_id):
        self._record("query_transaction_status", transaction_id)
        return {"transactionId": transaction_id, "status": "VALID"}

    async def process_delivery_fee(self, order_id, amount, user_id, gateway_code):
        self._record("process_delivery_fee", order_id, amount, user_id, gateway_code)
        return {"orderId": order_id, "amount": str(amount)}

    async def complete_product_payment(self, order_id):
        self._record("complete_product_payment", order_id)
        return {"orderId": order_id, "status": "COMPLETED"}

    async def process_refund(self, transaction_id, refund_amount, refund_reason):
        self._record("process_refund", transaction_id, refund_amount, refund_reason)
        return {"refundRefId": "RF-1", "status": "PROCESSING"}

    async def query_refund_status(self, refund_ref_id):
        self._record("query_refund_status", refund_ref_id)
        return {"refundRefId": refund_ref_id, "status": "REFUNDED"}


# ══════════════════════════════════════════════════════════════════════════
# Application Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        app_env="test",
        log_level="WARNING",
        frontend_url="http://shop.test",
        access_token_secret="test-access-secret",
        pathao_webhook_secret="test-pathao-secret",
        redx_webhook_token="test-redx-token",
        webhook_rate_limit_requests=100,
        webhook_rate_limit_window=60,
    )


@pytest_asyncio.fixture
async def database():
    """Fresh in-memory database per test; StaticPool keeps the single connection alive."""
    db = Database(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def fake_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def app(test_settings, database, fake_cache, fake_gateway):
    return create_app(
        settings=test_settings,
        database=database,
        cache=fake_cache,
        payment_gateway=fake_gateway,
    )


@pytest_asyncio.fixture
async def test_client(app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def db_session(database):
    async with database.session() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Seed Data
# ══════════════════════════════════════════════════════════════════════════

async def _persist(database: Database, *objects):
    async with database.session() as session:
        session.add_all(objects)
    return objects[0] if len(objects) == 1 else objects


@pytest_asyncio.fixture
async def user(database) -> User:
    return await _persist(
        database,
        User(
            id="user-1",
            name="Rahim Uddin",
            email="rahim@example.com",
            role="customer",
            vendor_id="vendor-1",
            wallet_balance=Decimal("0"),
        ),
    )


@pytest_asyncio.fixture
async def other_user(database) -> User:
    return await _persist(
        database,
        User(id="user-2", name="Karim Mia", email="karim@example.com", role="customer"),
    )


@pytest_asyncio.fixture
async def location(database) -> Location:
    return await _persist(
        database,
        Location(id="loc-1", name="Gulshan", city="Dhaka", zone="Gulshan-1"),
    )


@pytest_asyncio.fixture
async def courier_provider(database) -> CourierProvider:
    return await _persist(
        database,
        CourierProvider(id="prov-1", name="Pathao", code="PATHAO", is_active=True),
    )


@pytest_asyncio.fixture
async def courier_credentials(database, courier_provider) -> CourierCredentials:
    return await _persist(
        database,
        CourierCredentials(
            id="cred-1",
            courier_provider_id=courier_provider.id,
            vendor_id="vendor-1",
            environment=CourierEnvironment.SANDBOX,
            secrets={"client_id": "abc", "client_secret": "shh"},
        ),
    )


@pytest.fixture
def auth_headers(test_settings, user) -> Dict[str, str]:
    token = create_access_token(test_settings, user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def address_payload() -> Dict[str, Any]:
    return {
        "locationId": "loc-1",
        "fullName": "Rahim Uddin",
        "phone": "01711000000",
        "addressLine1": "House 12, Road 5",
        "addressType": "HOME",
    }
