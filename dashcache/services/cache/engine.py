"""Two-tier TTL cache for widget API responses.

Memory tier: synchronous dict, authoritative for reads.
Durable tier: async SQL table, written through in detached tasks and read
back once at startup (preload) or on an explicit ``get_async`` miss.

Failures in the durable tier are logged and otherwise behave like a cache
miss; nothing in here raises into widget code.
"""

import asyncio
from typing import Any, Callable, Coroutine, Dict, List, Optional, Set

from dashcache.core.config import Settings
from dashcache.core.logging import get_logger, log_cache_operation
from dashcache.models.cache import CacheEntry, CacheInfo, CacheStats, now_ms
from .memory import MemoryTier
from .store import DurableStore, DurableStoreUnavailable

logger = get_logger(__name__)


class CacheEngine:
    """Process-wide widget cache.

    One instance is owned by the application container. ``startup()`` starts
    the sweep loop, opens the durable store and kicks off preload;
    ``destroy()`` undoes all of it.

    Reads take a ``ttl_gate``: a falsy gate disables caching for that call,
    a truthy gate only enables the lookup. Expiry is always judged by the TTL
    the entry was written with.
    """

    def __init__(self, settings: Settings, store: Optional[DurableStore] = None,
                 clock: Callable[[], int] = now_ms,
                 sweep_interval: Optional[float] = None):
        self.settings = settings
        self.store = store
        self.clock = clock
        self.sweep_interval = sweep_interval or settings.cache_sweep_interval
        self.memory = MemoryTier()

        self._durable_available = False
        self._preloaded = False
        self._started = False
        self._sweep_task: Optional[asyncio.Task] = None
        self._preload_task: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def durable_available(self) -> bool:
        return self._durable_available and self.store is not None and self.store.available

    @property
    def preloaded(self) -> bool:
        return self._preloaded

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def startup(self) -> None:
        """Start sweeping, open the durable tier and schedule preload."""
        if self._started:
            return
        self._started = True

        self._sweep_task = asyncio.create_task(self._sweep_loop())

        if self.store is None:
            logger.info("Using in-memory widget cache (no durable store)")
            return

        try:
            await self.store.open()
            self._durable_available = True
        except DurableStoreUnavailable as e:
            logger.warning("Durable cache unavailable, falling back to in-memory only", error=str(e))
            return

        self._preload_task = asyncio.create_task(self._preload())

    async def wait_until_ready(self) -> None:
        """Wait for preload to finish. Returns immediately in memory-only mode."""
        if self._preload_task is not None:
            await asyncio.shield(self._preload_task)

    async def flush(self) -> None:
        """Wait for every in-flight durable write/delete to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def destroy(self) -> None:
        """Stop the sweep loop, drop the memory tier and close the store."""
        for task in (self._sweep_task, self._preload_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._sweep_task = None
        self._preload_task = None

        await self.flush()
        self.memory.clear()

        if self.store is not None:
            try:
                await self.store.close()
            except Exception as e:
                logger.warning("Failed to close durable cache store", error=str(e))

        self._durable_available = False
        self._preloaded = False
        self._started = False
        logger.info("Widget cache destroyed")

    async def _preload(self) -> None:
        """Hydrate memory from durable rows, dropping expired ones."""
        try:
            rows = await self.store.get_all()
        except Exception as e:
            logger.warning("Failed to preload widget cache", error=str(e))
            return

        now = self.clock()
        loaded = 0
        dropped = 0
        for key, entry in rows:
            if entry.is_expired(now):
                self._spawn(self.store.delete(key), "delete", key)
                dropped += 1
                continue
            current = self.memory.get(key)
            # A set() that raced ahead of preload is newer than the durable row
            if current is not None and current.written_at_ms >= entry.written_at_ms:
                continue
            self.memory.set(key, entry)
            loaded += 1

        self._preloaded = True
        logger.info("Preloaded widget cache", loaded=loaded, dropped=dropped)

    # =========================================================================
    # SWEEP
    # =========================================================================

    async def _sweep_loop(self) -> None:
        """Run ``sweep()`` every ``sweep_interval`` seconds until destroyed."""
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep()
            except Exception as e:
                logger.error("Cache sweep failed", error=str(e))

    def sweep(self) -> int:
        """Remove expired memory entries and prune the durable tier.

        The durable tier decides expiry from its own rows; it is not told
        which keys the memory tier dropped.
        """
        now = self.clock()
        expired = self.memory.sweep(now)
        if expired:
            logger.debug("Swept expired cache entries", count=len(expired))
        if self.durable_available:
            self._spawn(self.store.cleanup_expired(now), "cleanup_expired", None)
        return len(expired)

    # =========================================================================
    # READS
    # =========================================================================

    def get(self, key: str, ttl_gate: Optional[int] = None) -> Any:
        """Memory-only lookup. Returns ``None`` on miss, expiry or falsy gate."""
        if not ttl_gate:
            log_cache_operation(logger, "get", key, hit=False, reason="disabled")
            return None

        entry = self.memory.get(key)
        if entry is None:
            log_cache_operation(logger, "get", key, hit=False)
            return None

        now = self.clock()
        if entry.is_expired(now):
            self.memory.delete(key)
            log_cache_operation(logger, "get", key, hit=False, reason="expired",
                                age_ms=entry.age_ms(now), ttl_ms=entry.ttl_ms)
            return None

        log_cache_operation(logger, "get", key, hit=True,
                            age_ms=entry.age_ms(now), ttl_ms=entry.ttl_ms)
        return entry.data

    async def get_async(self, key: str, ttl_gate: Optional[int] = None) -> Any:
        """Memory lookup with a durable-tier fallback on miss."""
        data = self.get(key, ttl_gate)
        if data is not None:
            return data
        if not ttl_gate or not self.durable_available:
            return None

        try:
            entry = await self.store.get(key)
        except Exception as e:
            logger.warning("Durable cache read failed", key=key, error=str(e))
            return None

        if entry is None:
            log_cache_operation(logger, "get_async", key, hit=False)
            return None

        if entry.is_expired(self.clock()):
            self._spawn(self.store.delete(key), "delete", key)
            log_cache_operation(logger, "get_async", key, hit=False, reason="expired")
            return None

        self.memory.set(key, entry)
        log_cache_operation(logger, "get_async", key, hit=True, source="durable")
        return entry.data

    # =========================================================================
    # WRITES
    # =========================================================================

    def set(self, key: str, data: Any, ttl: Optional[int] = None) -> None:
        """Cache ``data`` for ``ttl`` ms. A falsy ``ttl`` does nothing."""
        if not ttl:
            log_cache_operation(logger, "set", key, skipped=True)
            return

        entry = CacheEntry(data=data, written_at_ms=self.clock(), ttl_ms=ttl)
        self.memory.set(key, entry)
        log_cache_operation(logger, "set", key, ttl_ms=ttl, size=len(self.memory))

        if self.durable_available:
            self._spawn(self.store.put(key, entry), "put", key)

    def clear(self, key: Optional[str] = None) -> None:
        """Drop one key, or everything when ``key`` is None, from both tiers."""
        if key is not None:
            self.memory.delete(key)
            if self.durable_available:
                self._spawn(self.store.delete(key), "delete", key)
            log_cache_operation(logger, "clear", key)
        else:
            self.memory.clear()
            if self.durable_available:
                self._spawn(self.store.clear(), "clear", None)
            logger.info("Widget cache cleared")

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def is_expired(self, key: str) -> bool:
        """True when the key is absent or past its stored TTL."""
        entry = self.memory.get(key)
        if entry is None:
            return True
        return entry.is_expired(self.clock())

    def get_info(self, key: str) -> Optional[CacheInfo]:
        entry = self.memory.get(key)
        if entry is None:
            return None
        age = entry.age_ms(self.clock())
        return CacheInfo(exists=True, age_ms=age, ttl_ms=entry.ttl_ms, expired=age > entry.ttl_ms)

    def get_stats(self) -> CacheStats:
        return CacheStats(size=len(self.memory), keys=self.memory.keys())

    def debug(self) -> List[Dict[str, Any]]:
        """Log and return a human-readable snapshot of the memory tier."""
        stats = self.get_stats()
        logger.info("Cache state", size=stats.size, keys=stats.keys,
                    durable=self.durable_available, preloaded=self._preloaded)

        now = self.clock()
        snapshot = []
        for key, entry in self.memory.entries():
            age = entry.age_ms(now)
            line = {
                "key": key,
                "age": f"{round(age / 1000)}s",
                "remaining": f"{round((entry.ttl_ms - age) / 1000)}s",
                "ttl": f"{round(entry.ttl_ms / 1000)}s",
            }
            logger.info("Cache entry", **line)
            snapshot.append(line)
        return snapshot

    # =========================================================================
    # DETACHED DURABLE WORK
    # =========================================================================

    def _spawn(self, coro: Coroutine, operation: str, key: Optional[str]) -> None:
        """Run a durable-tier coroutine without awaiting it; log failures."""
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning("No running event loop, skipped durable cache write",
                           operation=operation, key=key)
            return

        self._pending.add(task)
        task.add_done_callback(lambda t: self._on_done(t, operation, key))

    def _on_done(self, task: asyncio.Task, operation: str, key: Optional[str]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Durable cache operation failed", operation=operation,
                           key=key, error=str(error))
