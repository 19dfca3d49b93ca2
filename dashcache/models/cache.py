"""Cache entry models.

``CacheEntry`` is the in-process value shared by both tiers; ``CacheRow`` is
the SQLModel table backing the durable tier (one row per cache key).
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField
from sqlmodel import SQLModel, Field, Column, JSON
from sqlalchemy import BigInteger


def now_ms() -> int:
    """Wall clock in integer milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CacheEntry:
    """Cached value with the TTL it was written with.

    ``ttl_ms`` is fixed at write time; expiry is always judged against it,
    never against a TTL supplied by a later read.
    """
    data: Any
    written_at_ms: int
    ttl_ms: int

    def age_ms(self, now: int) -> int:
        return now - self.written_at_ms

    def is_expired(self, now: int) -> bool:
        return now - self.written_at_ms > self.ttl_ms


@dataclass
class CacheInfo:
    """Diagnostic view of a single memory-tier entry."""
    exists: bool
    age_ms: int
    ttl_ms: int
    expired: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exists": self.exists,
            "age_ms": self.age_ms,
            "ttl_ms": self.ttl_ms,
            "expired": self.expired,
        }


@dataclass
class CacheStats:
    """Size and keys of the memory tier."""
    size: int = 0
    keys: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"size": self.size, "keys": list(self.keys)}


class CacheRow(SQLModel, table=True):
    """Durable cache record, keyed by cache key."""

    __tablename__ = "widget_cache"

    key: str = Field(primary_key=True, max_length=1024)
    data: Any = Field(default=None, sa_column=Column(JSON))
    written_at_ms: int = Field(sa_column=Column(BigInteger, nullable=False))
    ttl_ms: int = Field(sa_column=Column(BigInteger, nullable=False))

    def to_entry(self) -> CacheEntry:
        return CacheEntry(data=self.data, written_at_ms=self.written_at_ms, ttl_ms=self.ttl_ms)


class WidgetCacheConfig(BaseModel):
    """Cache section of a persisted widget configuration.

    ``cacheTimeMs`` absent means "fall back to the registry default";
    ``0`` means caching is disabled for this widget.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    cache_time_ms: Optional[int] = PydanticField(default=None, alias="cacheTimeMs", ge=0)
