"""In-process cache backend with per-entry expiry and LRU eviction."""

from __future__ import annotations

import time
from collections.abc import Callable

from cachetools import TLRUCache

from confidence_router.models.domain import CacheEntry


def _entry_expiry(_key: str, entry: CacheEntry, _now: float) -> float:
    return entry.expires_at


class MemoryCacheBackend:
    def __init__(self, max_entries: int = 1000, timer: Callable[[], float] = time.time) -> None:
        # timer must share the epoch clock used to compute CacheEntry.expires_at
        self._cache: TLRUCache[str, CacheEntry] = TLRUCache(
            maxsize=max_entries, ttu=_entry_expiry, timer=timer
        )

    async def get(self, key: str) -> CacheEntry | None:
        return self._cache.get(key)

    async def set(self, entry: CacheEntry) -> None:
        self._cache[entry.key] = entry

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    async def entries(self) -> list[CacheEntry]:
        self._cache.expire()
        return list(self._cache.values())

    async def clear(self) -> int:
        count = len(self._cache)
        self._cache.clear()
        return count

    async def size(self) -> int:
        self._cache.expire()
        return len(self._cache)
