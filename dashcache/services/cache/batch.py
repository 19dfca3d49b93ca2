"""Cache-aware fan-out of several widget API calls."""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from dashcache.core.logging import get_logger, log_execution_time
from .engine import CacheEngine

logger = get_logger(__name__)


@dataclass
class BatchRequest:
    """One call in a batch.

    ``result_key`` names the value in the merged result; ``cache_key`` and
    ``ttl`` are what the call is cached under.
    """
    result_key: str
    cache_key: str
    ttl: Optional[int]
    fetch: Callable[[], Awaitable[Any]]


class BatchFetcher:
    """Resolves a batch of requests against the cache, fetching only misses."""

    def __init__(self, cache: CacheEngine):
        self.cache = cache

    async def fetch(self, requests: Sequence[BatchRequest]) -> Dict[str, Any]:
        """Return ``{result_key: data}`` for every request that hit or fetched.

        Cache lookups run concurrently, then every miss is fetched
        concurrently. A failing fetch is logged and left out of the result;
        it never fails the batch.
        """
        start = time.time()

        cached = await asyncio.gather(
            *(self.cache.get_async(request.cache_key, request.ttl) for request in requests)
        )

        results: Dict[str, Any] = {}
        misses: List[BatchRequest] = []
        for request, data in zip(requests, cached):
            if data is not None:
                results[request.result_key] = data
            else:
                misses.append(request)

        fresh = await asyncio.gather(*(self._fetch_one(request) for request in misses))

        fetched = 0
        for request, data in zip(misses, fresh):
            if data is not None:
                results[request.result_key] = data
                fetched += 1

        log_execution_time(logger, "batch_fetch", start, time.time(),
                           requests=len(requests), hits=len(requests) - len(misses),
                           fetched=fetched, failed=len(misses) - fetched)
        return results

    async def _fetch_one(self, request: BatchRequest) -> Any:
        try:
            data = await request.fetch()
        except Exception as e:
            logger.error("API call failed", result_key=request.result_key,
                         cache_key=request.cache_key, error=str(e))
            return None

        if data is not None:
            self.cache.set(request.cache_key, data, request.ttl)
        return data
