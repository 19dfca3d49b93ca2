"""Tests for batch fetching through the cache."""

from dashcache.services.cache import BatchFetcher, BatchRequest


def returning(value, calls=None):
    async def fetch():
        if calls is not None:
            calls.append(value)
        return value
    return fetch


async def failing():
    raise ConnectionError("upstream timeout")


class TestBatchFetcher:

    async def test_failed_request_is_dropped(self, memory_engine):
        fetcher = BatchFetcher(memory_engine)
        result = await fetcher.fetch([
            BatchRequest("weather", "weather:lat:1", 5000, returning({"t": 20})),
            BatchRequest("aqi", "aqi:lat:1", 5000, failing),
            BatchRequest("sun", "sun:lat:1", 5000, returning({"up": True})),
        ])
        assert result == {"weather": {"t": 20}, "sun": {"up": True}}
        assert memory_engine.get("aqi:lat:1", 5000) is None

    async def test_fresh_results_are_cached(self, memory_engine):
        fetcher = BatchFetcher(memory_engine)
        await fetcher.fetch([BatchRequest("fx", "fx:base:EUR", 5000, returning({"USD": 1.1}))])
        assert memory_engine.get("fx:base:EUR", 5000) == {"USD": 1.1}

    async def test_hits_are_not_refetched(self, memory_engine):
        memory_engine.set("fx:base:EUR", {"USD": 1.0}, 5000)
        calls = []
        fetcher = BatchFetcher(memory_engine)
        result = await fetcher.fetch([
            BatchRequest("fx", "fx:base:EUR", 5000, returning({"USD": 9.9}, calls)),
            BatchRequest("quote", "zenquotes:", 5000, returning("carpe diem", calls)),
        ])
        assert result == {"fx": {"USD": 1.0}, "quote": "carpe diem"}
        assert calls == ["carpe diem"]

    async def test_uncached_request_always_fetches(self, memory_engine):
        calls = []
        fetcher = BatchFetcher(memory_engine)
        request = BatchRequest("ip", "ip-info:", None, returning("1.2.3.4", calls))
        await fetcher.fetch([request])
        await fetcher.fetch([request])
        assert calls == ["1.2.3.4", "1.2.3.4"]
        assert memory_engine.get_stats().size == 0

    async def test_none_result_is_dropped(self, memory_engine):
        fetcher = BatchFetcher(memory_engine)
        result = await fetcher.fetch([BatchRequest("empty", "empty:", 5000, returning(None))])
        assert result == {}
        assert memory_engine.get_stats().size == 0

    async def test_empty_batch(self, memory_engine):
        assert await BatchFetcher(memory_engine).fetch([]) == {}

    async def test_reads_durable_tier(self, engine, clock):
        engine.set("k", "v", 5000)
        await engine.flush()
        engine.memory.clear()
        result = await BatchFetcher(engine).fetch([BatchRequest("r", "k", 5000, failing)])
        assert result == {"r": "v"}
