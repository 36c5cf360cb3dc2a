"""
Bazaar Backend — Courier Guard Tests
=====================================

What:  require_courier_provider / require_courier_credentials /
       validate_environment, alone and behind /api/courier/credentials/verify.

What we test:
    ✅ Missing provider id → 400, handler not reached
    ✅ Unknown or inactive provider → 404, handler not reached
    ✅ Credentials resolved from body, or from the query when the body has no provider
    ✅ Invalid environment → 400
    ✅ Store failure becomes a PersistenceError (classifier, not guard)
    ✅ Secrets never leave the service
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from bazaar.exceptions import ShortCircuit
from bazaar.middleware.errors import ErrorClassifierMiddleware, handle_short_circuit
from bazaar.middleware.guards import require_courier_credentials, require_courier_provider
from bazaar.models.courier import CourierProvider


def _guarded_app(database, calls):
    app = FastAPI()
    app.state.database = database

    @app.post("/provider")
    async def provider_route(provider: CourierProvider = Depends(require_courier_provider)):
        calls.append(provider.id)
        return {"code": provider.code}

    @app.get("/credentials")
    async def credentials_route(credentials=Depends(require_courier_credentials)):
        calls.append(credentials.id)
        return {"id": credentials.id}

    app.add_exception_handler(ShortCircuit, handle_short_circuit)
    app.add_middleware(ErrorClassifierMiddleware)
    return app


class TestProviderGuard:

    @pytest.mark.asyncio
    async def test_missing_id_is_400(self, database):
        calls = []
        transport = ASGITransport(app=_guarded_app(database, calls))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/provider", json={})
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Courier provider ID is required"}
        assert calls == []

    @pytest.mark.asyncio
    async def test_unknown_provider_is_404(self, database):
        calls = []
        transport = ASGITransport(app=_guarded_app(database, calls))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/provider", json={"courierProviderId": "nope"})
        assert response.status_code == 404
        assert response.json()["message"] == "Courier provider not found or inactive"
        assert calls == []

    @pytest.mark.asyncio
    async def test_inactive_provider_is_404(self, database):
        async with database.session() as session:
            session.add(CourierProvider(id="prov-x", name="RedX", code="REDX", is_active=False))
        calls = []
        transport = ASGITransport(app=_guarded_app(database, calls))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/provider", json={"courierProviderId": "prov-x"})
        assert response.status_code == 404
        assert calls == []

    @pytest.mark.asyncio
    async def test_active_provider_reaches_handler(self, database, courier_provider):
        calls = []
        transport = ASGITransport(app=_guarded_app(database, calls))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/provider", params={"courierProviderId": courier_provider.id}
            )
        assert response.status_code == 200
        assert response.json() == {"code": "PATHAO"}
        assert calls == [courier_provider.id]

    @pytest.mark.asyncio
    async def test_store_failure_goes_to_classifier(self, database):
        calls = []
        failure = OperationalError("SELECT", {}, Exception("database is locked"))
        transport = ASGITransport(app=_guarded_app(database, calls))
        with patch(
            "bazaar.services.courier_service.AsyncSession.execute",
            new=AsyncMock(side_effect=failure),
        ):
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                response = await client.post("/provider", json={"courierProviderId": "p"})
        assert response.status_code == 400
        assert response.json()["message"] == "Database operation failed"
        assert calls == []


class TestCredentialsGuard:

    @pytest.mark.asyncio
    async def test_credentials_from_query(self, database, courier_credentials):
        calls = []
        transport = ASGITransport(app=_guarded_app(database, calls))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(
                "/credentials",
                params={
                    "courierProviderId": "prov-1",
                    "vendorId": "vendor-1",
                    "environment": "SANDBOX",
                },
            )
        assert response.status_code == 200
        assert response.json() == {"id": "cred-1"}

    @pytest.mark.asyncio
    async def test_environment_defaults_to_production(self, database, courier_credentials):
        calls = []
        transport = ASGITransport(app=_guarded_app(database, calls))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(
                "/credentials",
                params={"courierProviderId": "prov-1", "vendorId": "vendor-1"},
            )
        assert response.status_code == 404
        assert response.json()["message"] == "Courier credentials not found or inactive"
        assert calls == []

    @pytest.mark.asyncio
    async def test_invalid_environment_is_400(self, database, courier_credentials):
        calls = []
        transport = ASGITransport(app=_guarded_app(database, calls))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(
                "/credentials",
                params={"courierProviderId": "prov-1", "environment": "STAGING"},
            )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid environment. Must be SANDBOX or PRODUCTION"


class TestCredentialsVerifyRoute:

    @pytest.mark.asyncio
    async def test_verify_returns_summary_without_secrets(
        self, test_client, auth_headers, courier_credentials
    ):
        response = await test_client.post(
            "/api/courier/credentials/verify",
            json={"courierProviderId": "prov-1", "vendorId": "vendor-1", "environment": "SANDBOX"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["provider"]["code"] == "PATHAO"
        assert data["credentials"]["environment"] == "SANDBOX"
        assert "secrets" not in data["credentials"]
        assert "shh" not in response.text

    @pytest.mark.asyncio
    async def test_verify_unknown_provider(self, test_client, auth_headers, user):
        response = await test_client.post(
            "/api/courier/credentials/verify",
            json={"courierProviderId": "missing", "vendorId": "vendor-1"},
            headers=auth_headers,
        )
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "Courier provider not found or inactive",
        }
