"""
Bazaar Backend — Courier Webhook Boundary Tests
================================================

What:  Signature verification, CORS and rate limiting on /api/courier/webhook/*.

What we test:
    ✅ Pathao: valid HMAC accepted; missing / wrong signature → 401
    ✅ RedX: ?token must match
    ✅ Unconfigured secret rejects everything
    ✅ Preflight OPTIONS answered 200 with permissive headers
    ✅ Sliding-window limit → 429 with Retry-After, other paths unaffected
    ✅ Signed bodies reach verification unsanitized
"""

import json

import pytest
from httpx import ASGITransport, AsyncClient

from bazaar.main import create_app
from bazaar.middleware.webhook import PATHAO_SIGNATURE_HEADER, pathao_signature, verify_webhook_signature

PATHAO_URL = "/api/courier/webhook/pathao"
REDX_URL = "/api/courier/webhook/redx"


def _signed(body: bytes, secret: str = "test-pathao-secret") -> dict:
    return {
        "Content-Type": "application/json",
        PATHAO_SIGNATURE_HEADER: pathao_signature(secret, body),
    }


class TestSignatureVerification:

    @pytest.mark.asyncio
    async def test_pathao_valid_signature(self, test_client):
        body = json.dumps({"event": "order.delivered", "consignment_id": "C1"}).encode()
        response = await test_client.post(PATHAO_URL, content=body, headers=_signed(body))
        assert response.status_code == 200
        assert response.json() == {"success": True, "provider": "pathao"}

    @pytest.mark.asyncio
    async def test_pathao_wrong_signature(self, test_client):
        body = b'{"event": "order.delivered"}'
        response = await test_client.post(
            PATHAO_URL, content=body, headers=_signed(body, secret="other-secret")
        )
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Webhook signature verification failed",
        }

    @pytest.mark.asyncio
    async def test_pathao_missing_signature(self, test_client):
        response = await test_client.post(PATHAO_URL, json={"event": "x"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_pathao_tampered_body(self, test_client):
        signed = b'{"order_status": "Pending"}'
        response = await test_client.post(
            PATHAO_URL, content=b'{"order_status": "Delivered"}', headers=_signed(signed)
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_signed_body_is_not_sanitized(self, test_client):
        body = json.dumps({"note": "  <script>x</script> left at door "}).encode()
        response = await test_client.post(PATHAO_URL, content=body, headers=_signed(body))
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_redx_token(self, test_client):
        ok = await test_client.post(
            REDX_URL, params={"token": "test-redx-token"}, json={"tracking_number": "T1"}
        )
        bad = await test_client.post(REDX_URL, params={"token": "guess"}, json={})
        missing = await test_client.post(REDX_URL, json={})
        assert ok.status_code == 200
        assert ok.json()["provider"] == "redx"
        assert bad.status_code == 401
        assert missing.status_code == 401

    @pytest.mark.asyncio
    async def test_unconfigured_secret_rejects(self, test_settings, database, fake_cache, fake_gateway):
        settings = test_settings.model_copy(update={"redx_webhook_token": ""})
        app = create_app(settings, database, fake_cache, fake_gateway)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(REDX_URL, params={"token": ""}, json={})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_malformed_payload_after_valid_signature(self, test_client):
        body = b"not json"
        response = await test_client.post(PATHAO_URL, content=body, headers=_signed(body))
        assert response.status_code == 400
        assert response.json()["message"] == "Validation error"

    def test_unknown_provider_rejected_at_registration(self):
        with pytest.raises(ValueError, match="Unknown webhook provider"):
            verify_webhook_signature("steadfast")


class TestWebhookCORS:

    @pytest.mark.asyncio
    async def test_preflight_short_circuits(self, test_client):
        response = await test_client.options(PATHAO_URL)
        assert response.status_code == 200
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.headers["Access-Control-Allow-Methods"] == "POST"
        assert PATHAO_SIGNATURE_HEADER in response.headers["Access-Control-Allow-Headers"]

    @pytest.mark.asyncio
    async def test_post_carries_cors_headers(self, test_client):
        response = await test_client.post(REDX_URL, params={"token": "test-redx-token"}, json={})
        assert response.headers["Access-Control-Allow-Origin"] == "*"


class TestWebhookRateLimit:

    @pytest.mark.asyncio
    async def test_limit_applies_to_webhooks_only(self, test_settings, database, fake_cache, fake_gateway):
        settings = test_settings.model_copy(update={"webhook_rate_limit_requests": 2})
        app = create_app(settings, database, fake_cache, fake_gateway)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            statuses = [
                (await client.post(REDX_URL, params={"token": "test-redx-token"}, json={})).status_code
                for _ in range(3)
            ]
            limited = await client.post(REDX_URL, params={"token": "test-redx-token"}, json={})
            health = await client.get("/health")

        assert statuses == [200, 200, 429]
        assert limited.status_code == 429
        assert int(limited.headers["Retry-After"]) >= 1
        assert limited.json()["success"] is False
        assert health.status_code == 200
