"""Tests for the durable SQLite store."""

import asyncio

import pytest

from dashcache.core.config import Settings
from dashcache.models.cache import CacheEntry
from dashcache.services.cache import DurableStore, DurableStoreUnavailable


class TestDurableStore:

    async def test_put_get_roundtrip(self, store):
        await store.put("w:1", CacheEntry(data={"t": 20}, written_at_ms=100, ttl_ms=5000))
        got = await store.get("w:1")
        assert got == CacheEntry(data={"t": 20}, written_at_ms=100, ttl_ms=5000)

    async def test_put_overwrites(self, store):
        await store.put("k", CacheEntry(data=[1], written_at_ms=1, ttl_ms=10))
        await store.put("k", CacheEntry(data=[2], written_at_ms=2, ttl_ms=20))
        rows = await store.get_all()
        assert rows == [("k", CacheEntry(data=[2], written_at_ms=2, ttl_ms=20))]

    async def test_concurrent_puts_on_new_key(self, store):
        await asyncio.gather(*(
            store.put("k", CacheEntry(data=i, written_at_ms=i, ttl_ms=1000))
            for i in range(5)
        ))
        rows = await store.get_all()
        assert rows == [("k", CacheEntry(data=4, written_at_ms=4, ttl_ms=1000))]

    async def test_get_missing(self, store):
        assert await store.get("nope") is None

    async def test_delete_and_clear(self, store):
        await store.put("a", CacheEntry(data=1, written_at_ms=0, ttl_ms=10))
        await store.put("b", CacheEntry(data=2, written_at_ms=0, ttl_ms=10))
        assert await store.delete("a") is True
        assert await store.delete("a") is False
        assert await store.clear() == 1
        assert await store.get_all() == []

    async def test_cleanup_expired_uses_row_fields(self, store):
        await store.put("old", CacheEntry(data=1, written_at_ms=0, ttl_ms=100))
        await store.put("fresh", CacheEntry(data=2, written_at_ms=0, ttl_ms=10_000))
        await store.put("edge", CacheEntry(data=3, written_at_ms=500, ttl_ms=500))
        assert await store.cleanup_expired(1000) == 1
        keys = sorted(key for key, _ in await store.get_all())
        assert keys == ["edge", "fresh"]

    async def test_open_is_idempotent(self, store):
        engine = store.engine
        await store.open()
        assert store.engine is engine

    async def test_survives_reopen(self, settings):
        first = DurableStore(settings)
        await first.open()
        await first.put("k", CacheEntry(data="v", written_at_ms=1, ttl_ms=2))
        await first.close()

        second = DurableStore(settings)
        await second.open()
        assert (await second.get("k")).data == "v"
        await second.close()

    async def test_unopened_store_is_noop(self, settings):
        durable = DurableStore(settings)
        assert not durable.available
        await durable.put("k", CacheEntry(data=1, written_at_ms=0, ttl_ms=1))
        assert await durable.get("k") is None
        assert await durable.get_all() == []
        assert await durable.delete("k") is False
        assert await durable.clear() == 0
        assert await durable.cleanup_expired(0) == 0

    async def test_disabled_by_config(self):
        durable = DurableStore(Settings(cache_durable_enabled=False, cache_database_url=None))
        with pytest.raises(DurableStoreUnavailable):
            await durable.open()
        assert not durable.available

    async def test_bad_backend_is_unavailable(self):
        durable = DurableStore(Settings(cache_database_url="nosuchdialect://cache"))
        with pytest.raises(DurableStoreUnavailable):
            await durable.open()
        assert not durable.available
