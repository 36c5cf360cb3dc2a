"""
Bazaar Backend — Authentication & Authorization Tests
======================================================

What we test:
    ✅ Bearer parsing
    ✅ Missing / malformed / expired / foreign-signed tokens → 401
    ✅ Inactive or blocked users → 401
    ✅ authorize_vendor: vendorId required, ownership or admin
    ✅ authorize_roles
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from bazaar.exceptions import ShortCircuit, UnauthorizedError
from bazaar.middleware.auth import (
    AuthenticatedUser,
    authorize_roles,
    create_access_token,
    decode_access_token,
    parse_bearer_token,
)
from bazaar.middleware.errors import ErrorClassifierMiddleware, handle_short_circuit
from bazaar.models.customer import User


class TestTokens:

    def test_parse_bearer_token(self):
        assert parse_bearer_token("Bearer abc.def") == "abc.def"
        assert parse_bearer_token("bearer  abc ") == "abc"
        assert parse_bearer_token("Basic abc") is None
        assert parse_bearer_token("Bearer") is None
        assert parse_bearer_token(None) is None

    def test_round_trip_claims(self, test_settings):
        token = create_access_token(test_settings, "user-1", extra={"role": "customer"})
        claims = decode_access_token(test_settings, token)
        assert claims["id"] == "user-1"
        assert claims["role"] == "customer"
        assert claims["exp"] > claims["iat"]

    def test_expired_token(self, test_settings):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"id": "user-1", "exp": int(past.timestamp())},
            test_settings.access_token_secret,
            algorithm="HS256",
        )
        with pytest.raises(UnauthorizedError, match="Token expired"):
            decode_access_token(test_settings, token)

    def test_wrong_secret(self, test_settings):
        token = jwt.encode({"id": "user-1"}, "another-secret", algorithm="HS256")
        with pytest.raises(UnauthorizedError):
            decode_access_token(test_settings, token)

    def test_unconfigured_secret_rejects(self, test_settings):
        token = create_access_token(test_settings, "user-1")
        settings = test_settings.model_copy(update={"access_token_secret": ""})
        with pytest.raises(UnauthorizedError, match="not configured"):
            decode_access_token(settings, token)


class TestAuthenticateUser:

    @pytest.mark.asyncio
    async def test_missing_header(self, test_client):
        response = await test_client.get("/api/addresses")
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Unauthorized access",
            "error": "Authorization header missing",
        }

    @pytest.mark.asyncio
    async def test_garbage_token(self, test_client):
        response = await test_client.get(
            "/api/addresses", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user(self, test_client, test_settings):
        token = create_access_token(test_settings, "ghost")
        response = await test_client.get(
            "/api/addresses", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "User not found or inactive"

    @pytest.mark.asyncio
    async def test_blocked_user(self, test_client, test_settings, database):
        async with database.session() as session:
            session.add(User(id="blocked-1", email="b@example.com", is_blocked=True))
        token = create_access_token(test_settings, "blocked-1")
        response = await test_client.get(
            "/api/addresses", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_valid_token(self, test_client, auth_headers):
        response = await test_client.get("/api/addresses", headers=auth_headers)
        assert response.status_code == 200


class TestAuthorizeVendor:

    @pytest.mark.asyncio
    async def test_vendor_id_required(self, test_client, auth_headers):
        response = await test_client.post(
            "/api/courier/credentials/verify", json={"courierProviderId": "prov-1"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Vendor ID is required"

    @pytest.mark.asyncio
    async def test_foreign_vendor_rejected(self, test_client, auth_headers):
        response = await test_client.post(
            "/api/courier/credentials/verify",
            json={"courierProviderId": "prov-1", "vendorId": "vendor-9"},
            headers=auth_headers,
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_admin_may_act_for_any_vendor(
        self, test_client, test_settings, database, courier_credentials
    ):
        async with database.session() as session:
            session.add(User(id="admin-1", email="admin@example.com", role="admin"))
        token = create_access_token(test_settings, "admin-1")
        response = await test_client.post(
            "/api/courier/credentials/verify",
            json={"courierProviderId": "prov-1", "vendorId": "vendor-1", "environment": "SANDBOX"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 200


class TestAuthorizeRoles:

    @pytest.mark.asyncio
    async def test_role_gate(self, test_settings, database, auth_headers):
        app = FastAPI()
        app.state.settings = test_settings
        app.state.database = database

        @app.get("/admin-only")
        async def admin_only(user: AuthenticatedUser = Depends(authorize_roles("admin"))):
            return {"id": user.id}

        @app.get("/customers")
        async def customers(user: AuthenticatedUser = Depends(authorize_roles("customer", "admin"))):
            return {"id": user.id}

        app.add_exception_handler(ShortCircuit, handle_short_circuit)
        app.add_middleware(ErrorClassifierMiddleware)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            denied = await client.get("/admin-only", headers=auth_headers)
            allowed = await client.get("/customers", headers=auth_headers)

        assert denied.status_code == 401
        assert allowed.json() == {"id": "user-1"}
