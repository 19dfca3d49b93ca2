"""Widget API cache package.

- Deterministic cache keys
- Memory tier (sync, authoritative) + durable tier (async SQL, best-effort)
- Effective TTL resolution from config, registry default or config shape
- Batch fetching of several cached API calls
"""

from .keys import derive_key, encode_value
from .memory import MemoryTier
from .store import DurableStore, DurableStoreUnavailable
from .engine import CacheEngine
from .ttl import (
    INFERENCE_RULES,
    resolve_ttl,
    infer_widget_type,
    explicit_cache_time,
    registry_default,
)
from .batch import BatchFetcher, BatchRequest

__all__ = [
    # Keys
    "derive_key",
    "encode_value",
    # Tiers
    "MemoryTier",
    "DurableStore",
    "DurableStoreUnavailable",
    # Engine
    "CacheEngine",
    # TTL
    "INFERENCE_RULES",
    "resolve_ttl",
    "infer_widget_type",
    "explicit_cache_time",
    "registry_default",
    # Batch
    "BatchFetcher",
    "BatchRequest",
]
