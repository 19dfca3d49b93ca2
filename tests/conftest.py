"""Shared fixtures for widget cache tests."""

import pytest

from dashcache.core.config import Settings
from dashcache.services.cache import CacheEngine, DurableStore


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'widget_cache.db'}"


@pytest.fixture
def settings(db_url):
    return Settings(cache_database_url=db_url, cache_durable_enabled=True)


@pytest.fixture
def memory_settings():
    return Settings(cache_durable_enabled=False, cache_database_url=None)


@pytest.fixture
async def store(settings):
    durable = DurableStore(settings)
    await durable.open()
    yield durable
    await durable.close()


@pytest.fixture
def memory_engine(memory_settings, clock):
    """Engine with no durable tier and no background tasks."""
    return CacheEngine(memory_settings, store=None, clock=clock)


@pytest.fixture
async def engine(settings, clock):
    """Started engine over a temp-file SQLite store, preload finished."""
    cache = CacheEngine(settings, store=DurableStore(settings), clock=clock)
    await cache.startup()
    await cache.wait_until_ready()
    yield cache
    await cache.destroy()
