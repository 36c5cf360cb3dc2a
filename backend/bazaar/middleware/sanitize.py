"""
Bazaar Backend — Request Sanitization
======================================

What:  Strips <script>...</script> blocks and surrounding whitespace from
       every string in the query string and request body.
How:   sanitize() walks JSON-like values recursively. SanitizeMiddleware
       (pure ASGI) rewrites scope["query_string"] and buffers JSON /
       form-urlencoded bodies, sanitizes them and replays the new bytes to the
       application with a corrected Content-Length.

This is a best-effort mitigation, not a security boundary: attribute-based
XSS (onerror=..., javascript: URLs) passes through untouched. Output encoding
at render time is still required.

Webhook paths are excluded; their raw bodies must reach signature
verification byte-for-byte.
"""

import json
import logging
import re
from typing import Any, Iterable, List, Tuple
from urllib.parse import parse_qsl, urlencode

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

# Matches a complete <script ...>...</script> block, case-insensitive.
SCRIPT_TAG_RE = re.compile(
    r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>",
    re.IGNORECASE,
)


def _clean_string(value: str) -> str:
    # Repeat until stable so nested fragments ("<scr<script></script>ipt>")
    # cannot reassemble into a new block, then trim.
    previous = None
    while previous != value:
        previous = value
        value = SCRIPT_TAG_RE.sub("", value)
    return value.strip()


def sanitize(value: Any) -> Any:
    """
    Recursively sanitize a JSON-like value.

    - str:   script blocks removed, whitespace trimmed
    - list / tuple: each element sanitized, order and length preserved
    - dict:  each value sanitized, keys preserved
    - other: returned unchanged

    sanitize(sanitize(x)) == sanitize(x) for every x.

    >>> sanitize({"a": " x ", "b": ["<script>evil</script>"]})
    {'a': 'x', 'b': ['']}
    """
    if isinstance(value, str):
        return _clean_string(value)
    if isinstance(value, list):
        return [sanitize(item) for item in value]
    if isinstance(value, tuple):
        return tuple(sanitize(item) for item in value)
    if isinstance(value, dict):
        return {key: sanitize(item) for key, item in value.items()}
    return value


def sanitize_pairs(pairs: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """Sanitize the values of decoded query/form pairs, keeping keys and order."""
    return [(key, _clean_string(item)) for key, item in pairs]


class SanitizeMiddleware:
    """
    Pure ASGI middleware; runs before routing so guards, validators and
    handlers only ever see sanitized input.

    Args:
        app:              The wrapped ASGI application.
        exclude_prefixes: Path prefixes left untouched (e.g. signed webhooks).
    """

    SANITIZABLE_TYPES = ("application/json", "application/x-www-form-urlencoded")

    def __init__(self, app: ASGIApp, exclude_prefixes: Iterable[str] = ()):
        self.app = app
        self.exclude_prefixes = tuple(exclude_prefixes)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"].startswith(self.exclude_prefixes):
            await self.app(scope, receive, send)
            return

        scope = dict(scope)
        query_string: bytes = scope.get("query_string", b"")
        if query_string:
            pairs = parse_qsl(query_string.decode("latin-1"), keep_blank_values=True)
            scope["query_string"] = urlencode(sanitize_pairs(pairs)).encode("latin-1")

        content_type = self._content_type(scope)
        if not content_type.startswith(self.SANITIZABLE_TYPES):
            await self.app(scope, receive, send)
            return

        body = await self._read_body(receive)
        new_body = self._sanitize_body(body, content_type)
        if new_body != body:
            scope["headers"] = [
                (name, value)
                for name, value in scope["headers"]
                if name.lower() != b"content-length"
            ] + [(b"content-length", str(len(new_body)).encode("latin-1"))]

        replayed = False

        async def replay_receive() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": new_body, "more_body": False}
            return await receive()

        await self.app(scope, replay_receive, send)

    @staticmethod
    def _content_type(scope: Scope) -> str:
        for name, value in scope.get("headers", []):
            if name.lower() == b"content-type":
                return value.decode("latin-1").lower()
        return ""

    @staticmethod
    async def _read_body(receive: Receive) -> bytes:
        chunks: List[bytes] = []
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] != "http.request":
                break
            chunks.append(message.get("body", b""))
            more_body = message.get("more_body", False)
        return b"".join(chunks)

    @staticmethod
    def _sanitize_body(body: bytes, content_type: str) -> bytes:
        if not body:
            return body
        if content_type.startswith("application/json"):
            try:
                payload = json.loads(body)
            except ValueError:
                # Malformed JSON is left for request validation to reject
                return body
            return json.dumps(sanitize(payload)).encode("utf-8")
        try:
            pairs = parse_qsl(body.decode("utf-8"), keep_blank_values=True, errors="strict")
        except UnicodeDecodeError:
            # Undecodable bytes pass through as sent
            return body
        return urlencode(sanitize_pairs(pairs)).encode("utf-8")
