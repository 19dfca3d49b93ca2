"""Durable cache tier on an async SQLModel/SQLAlchemy engine.

One table (``widget_cache``) keyed by cache key. The store is best-effort:
it exists so cached API responses survive a restart, the memory tier stays
the source of truth for reads.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import List, Optional, Tuple

from sqlalchemy import delete, insert, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel, select

from dashcache.core.config import Settings
from dashcache.core.logging import get_logger
from dashcache.models.cache import CacheEntry, CacheRow

logger = get_logger(__name__)


class DurableStoreUnavailable(Exception):
    """Durable storage is disabled or could not be opened."""


class DurableStore:
    """Async key/value table for cache entries.

    Construction never touches the backend; ``open()`` does. Until it has
    succeeded every operation is a no-op. Errors raised by an open backend
    propagate so the caller can decide how to degrade.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine: Optional[AsyncEngine] = None
        self.async_session: Optional[async_sessionmaker] = None
        self._write_lock = asyncio.Lock()

    @property
    def available(self) -> bool:
        return self.async_session is not None

    async def open(self) -> None:
        """Connect and create the cache table if needed. Idempotent."""
        if self.available:
            return

        if not self.settings.durable_configured:
            raise DurableStoreUnavailable("durable cache disabled by configuration")

        engine = None
        try:
            engine = create_async_engine(
                self.settings.cache_database_url,
                echo=self.settings.cache_database_echo,
                future=True
            )
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all, tables=[CacheRow.__table__])
        except Exception as e:
            if engine is not None:
                await engine.dispose()
            raise DurableStoreUnavailable(str(e)) from e

        self.engine = engine
        self.async_session = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False
        )
        logger.info("Durable cache store opened", url=self.settings.cache_database_url)

    async def close(self) -> None:
        """Dispose the engine. The store can be reopened afterwards."""
        engine = self.engine
        self.engine = None
        self.async_session = None
        if engine is not None:
            await engine.dispose()
            logger.info("Durable cache store closed")

    @asynccontextmanager
    async def get_session(self):
        """Get async database session."""
        if not self.async_session:
            raise RuntimeError("Durable cache store not open")

        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    # ============================================================================
    # Entries
    # ============================================================================

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Insert or overwrite the row for ``key``."""
        if not self.available:
            return

        values = {
            "key": key,
            "data": entry.data,
            "written_at_ms": entry.written_at_ms,
            "ttl_ms": entry.ttl_ms,
        }

        async with self._write_lock:
            async with self.get_session() as session:
                if self.engine.dialect.name == "sqlite":
                    stmt = sqlite_insert(CacheRow).values(**values)
                    stmt = stmt.on_conflict_do_update(
                        index_elements=["key"],
                        set_={
                            "data": stmt.excluded.data,
                            "written_at_ms": stmt.excluded.written_at_ms,
                            "ttl_ms": stmt.excluded.ttl_ms,
                        }
                    )
                    await session.execute(stmt)
                    await session.commit()
                    return

                try:
                    await session.execute(insert(CacheRow).values(**values))
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    await session.execute(
                        update(CacheRow).where(CacheRow.key == key).values(
                            data=entry.data,
                            written_at_ms=entry.written_at_ms,
                            ttl_ms=entry.ttl_ms
                        )
                    )
                    await session.commit()

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Get the row for ``key`` regardless of expiry."""
        if not self.available:
            return None

        async with self.get_session() as session:
            stmt = select(CacheRow).where(CacheRow.key == key)
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            return row.to_entry() if row else None

    async def get_all(self) -> List[Tuple[str, CacheEntry]]:
        """Every stored row, expired or not."""
        if not self.available:
            return []

        async with self.get_session() as session:
            result = await session.execute(select(CacheRow))
            return [(row.key, row.to_entry()) for row in result.scalars().all()]

    async def delete(self, key: str) -> bool:
        """Delete the row for ``key``. Returns True if a row was removed."""
        if not self.available:
            return False

        async with self._write_lock:
            async with self.get_session() as session:
                result = await session.execute(delete(CacheRow).where(CacheRow.key == key))
                await session.commit()
                return bool(result.rowcount)

    async def clear(self) -> int:
        """Delete every row. Returns count deleted."""
        if not self.available:
            return 0

        async with self._write_lock:
            async with self.get_session() as session:
                result = await session.execute(delete(CacheRow))
                await session.commit()
                return result.rowcount or 0

    async def cleanup_expired(self, now: int) -> int:
        """Delete rows expired by their own stored timestamp and TTL."""
        if not self.available:
            return 0

        async with self._write_lock:
            async with self.get_session() as session:
                stmt = delete(CacheRow).where(
                    (now - CacheRow.written_at_ms) > CacheRow.ttl_ms
                )
                result = await session.execute(stmt)
                await session.commit()

        count = result.rowcount or 0
        if count > 0:
            logger.info("Cleaned up expired durable cache entries", count=count)
        return count
