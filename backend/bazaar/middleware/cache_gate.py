"""
Bazaar Backend — Cache-Lookup Gate
===================================

What:  Short-circuits a route when the external cache already holds its
       precomputed response.
How:   cache_gate(key) builds a dependency bound to one fixed key at route
       registration. On a hit it answers {"fromCache": true, "data": <value>}
       and the handler never runs; on a miss it does nothing.

The gate never writes. Populating the key on a miss is the handler's job
(CacheStore.set_json). Since the key is fixed, a gated route caches one
global value, not one per query or caller.
"""

import json
import logging
from typing import Awaitable, Callable

from starlette.requests import Request

from bazaar.exceptions import ShortCircuit
from bazaar.schemas.common import CachedEnvelope

logger = logging.getLogger(__name__)


def cache_gate(key: str) -> Callable[[Request], Awaitable[None]]:
    """
    Usage:
        @router.get("/providers", dependencies=[Depends(cache_gate("courier:providers:active"))])
    """

    async def dependency(request: Request) -> None:
        cached = await request.app.state.cache.get(key)
        if cached:
            logger.debug("Cache hit for %s", key)
            envelope = CachedEnvelope(data=json.loads(cached))
            raise ShortCircuit(200, body=envelope.model_dump(mode="json", by_alias=True))

    return dependency
