"""Protocol for response cache storage backends."""

from __future__ import annotations

from typing import Protocol

from confidence_router.models.domain import CacheEntry


class CacheBackend(Protocol):
    async def get(self, key: str) -> CacheEntry | None: ...

    async def set(self, entry: CacheEntry) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def entries(self) -> list[CacheEntry]: ...

    async def clear(self) -> int: ...

    async def size(self) -> int: ...
