"""In-process memory tier."""

from typing import Dict, Iterator, List, Optional, Tuple

from dashcache.models.cache import CacheEntry


class MemoryTier:
    """Synchronous key -> CacheEntry mapping.

    Expiry is judged only by each entry's stored TTL.
    """

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> Iterator[Tuple[str, CacheEntry]]:
        # Snapshot so callers may delete while iterating
        return iter(list(self._entries.items()))

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def sweep(self, now: int) -> List[str]:
        """Remove expired entries and return their keys."""
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return expired

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
