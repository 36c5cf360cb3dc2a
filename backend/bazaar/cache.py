"""
Bazaar Backend — External Cache Store
======================================

What:  Thin async wrapper around a Redis client.
How:   Values are stored as JSON text; callers read raw text with get() and
       decode it themselves, or write structured data with set_json().
Who:   The cache gate (bazaar.middleware.cache_gate) reads; route handlers
       populate on a miss.

The store performs no in-process caching; Redis is the only shared state.
"""

import json
import logging
from typing import Any, Optional

from redis import asyncio as aioredis

logger = logging.getLogger(__name__)


class CacheStore:
    """
    Key-value access to the external cache.

    Args:
        client:      A redis.asyncio.Redis (or anything with the same
                     get/set/ping/aclose coroutine methods).
        default_ttl: Expiry in seconds applied by set_json() when no ttl is given.
    """

    def __init__(self, client: aioredis.Redis, default_ttl: int = 300):
        self._client = client
        self.default_ttl = default_ttl

    @classmethod
    def from_url(cls, url: str, default_ttl: int = 300) -> "CacheStore":
        client = aioredis.from_url(url, decode_responses=True)
        return cls(client, default_ttl=default_ttl)

    async def get(self, key: str) -> Optional[str]:
        """Raw cached text under key, or None on a miss."""
        return await self._client.get(key)

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        payload = json.dumps(value, default=str)
        await self._client.set(key, payload, ex=ttl or self.default_ttl)
        logger.debug("Cache SET %s (ttl=%s)", key, ttl or self.default_ttl)

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()
