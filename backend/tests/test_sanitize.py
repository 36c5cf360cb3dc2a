"""
Bazaar Backend — Sanitizer Tests
=================================

What:  sanitize() on JSON-like values and SanitizeMiddleware on live requests.

What we test:
    ✅ Script blocks stripped and whitespace trimmed
    ✅ Lists, tuples and dicts keep shape; other values untouched
    ✅ Sanitizing twice equals sanitizing once
    ✅ Query strings and JSON / form bodies rewritten before routing
    ✅ Attribute-based markup is NOT removed (best-effort only)
"""

import json

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

from bazaar.middleware.sanitize import SanitizeMiddleware, sanitize


class TestSanitizeValues:

    def test_strips_script_block(self):
        assert sanitize("<script>alert(1)</script>hello") == "hello"

    def test_nested_object(self):
        assert sanitize({"a": " x ", "b": ["<script>evil</script>"]}) == {"a": "x", "b": [""]}

    def test_case_insensitive(self):
        assert sanitize("a<SCRIPT type='text/javascript'>x()</ScRiPt>b") == "ab"

    def test_multiple_blocks(self):
        assert sanitize("<script>1</script>keep<script>2</script> me ") == "keep me"

    def test_reassembled_fragments_are_removed(self):
        value = "<scr<script>x</script>ipt>alert(1)</script>ok"
        assert sanitize(value) == "ok"

    def test_sequence_order_and_length_preserved(self):
        result = sanitize([" a ", 1, None, "<script></script>b"])
        assert result == ["a", 1, None, "b"]

    def test_tuple_stays_tuple(self):
        assert sanitize((" a ", "b ")) == ("a", "b")

    def test_keys_are_preserved(self):
        value = {" key ": " v ", "<script>k</script>": "x"}
        result = sanitize(value)
        assert set(result.keys()) == set(value.keys())

    def test_non_string_scalars_pass_through(self):
        for value in (0, 3.5, True, None):
            assert sanitize(value) is value

    def test_unclosed_script_is_kept(self):
        assert sanitize("<script>alert(1)") == "<script>alert(1)"

    def test_attribute_xss_not_removed(self):
        value = '<img src=x onerror="alert(1)">'
        assert sanitize(value) == value

    @pytest.mark.parametrize(
        "value",
        [
            "<script>alert(1)</script>hello",
            {"a": " x ", "b": ["<script>evil</script>", {"c": "  <script>y</script> z "}]},
            ["<scr<script>x</script>ipt>a</script>", "  "],
            "plain",
        ],
    )
    def test_idempotent(self, value):
        once = sanitize(value)
        assert sanitize(once) == once


def _echo_app() -> FastAPI:
    app = FastAPI()

    @app.post("/echo")
    async def echo(request: Request):
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            body = await request.json()
        else:
            body = dict(await request.form())
        return {"query": dict(request.query_params), "body": body}

    @app.post("/raw")
    async def raw_body(request: Request):
        return {"raw": (await request.body()).decode()}

    @app.post("/hooks/raw")
    async def raw(request: Request):
        return {"raw": (await request.body()).decode()}

    app.add_middleware(SanitizeMiddleware, exclude_prefixes=("/hooks",))
    return app


class TestSanitizeMiddleware:

    @pytest.mark.asyncio
    async def test_json_body_and_query_sanitized(self):
        transport = ASGITransport(app=_echo_app())
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/echo",
                params={"q": " <script>x</script>shoes "},
                json={"name": " Rahim <script>steal()</script>", "tags": [" a "]},
            )
        assert response.status_code == 200
        assert response.json() == {
            "query": {"q": "shoes"},
            "body": {"name": "Rahim", "tags": ["a"]},
        }

    @pytest.mark.asyncio
    async def test_form_body_sanitized(self):
        transport = ASGITransport(app=_echo_app())
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/echo", data={"tran_id": " TXN-1<script>x</script> "}
            )
        assert response.json()["body"] == {"tran_id": "TXN-1"}

    @pytest.mark.asyncio
    async def test_undecodable_form_body_left_untouched(self):
        transport = ASGITransport(app=_echo_app())
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/raw",
                content=b"note=%FF%FE<script>x</script>",
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        assert response.json()["raw"] == "note=%FF%FE<script>x</script>"

    @pytest.mark.asyncio
    async def test_malformed_json_left_untouched(self):
        app = FastAPI()

        @app.post("/raw")
        async def raw(request: Request):
            return {"raw": (await request.body()).decode()}

        app.add_middleware(SanitizeMiddleware)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/raw",
                content=b'{"a": <script>',
                headers={"Content-Type": "application/json"},
            )
        assert response.json() == {"raw": '{"a": <script>'}

    @pytest.mark.asyncio
    async def test_excluded_prefix_keeps_raw_body(self):
        body = json.dumps({"note": " <script>x</script> "})
        transport = ASGITransport(app=_echo_app())
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/hooks/raw", content=body, headers={"Content-Type": "application/json"}
            )
        assert response.json() == {"raw": body}
