"""SQLite-backed response cache that survives restarts."""

from __future__ import annotations

import aiosqlite

from confidence_router.exceptions import CacheError
from confidence_router.models.domain import CacheEntry

CREATE_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS response_cache (
    cache_key TEXT PRIMARY KEY,
    normalized_query TEXT NOT NULL,
    payload TEXT NOT NULL,
    expires_at REAL NOT NULL
)
"""

CACHE_EXPIRY_INDEX = """
CREATE INDEX IF NOT EXISTS idx_response_cache_expires_at ON response_cache(expires_at)
"""


class SQLiteCacheBackend:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(CREATE_CACHE_TABLE)
            await db.execute(CACHE_EXPIRY_INDEX)
            await db.commit()

    async def get(self, key: str) -> CacheEntry | None:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                async with db.execute(
                    "SELECT cache_key, normalized_query, payload, expires_at "
                    "FROM response_cache WHERE cache_key = ?",
                    (key,),
                ) as cursor:
                    row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise CacheError(f"Cache read failed: {e}") from e
        if row is None:
            return None
        return CacheEntry(key=row[0], normalized_query=row[1], payload=row[2], expires_at=row[3])

    async def set(self, entry: CacheEntry) -> None:
        # Last write wins for concurrent identical queries
        try:
            async with aiosqlite.connect(self._db_path) as db:
                await db.execute(
                    "INSERT OR REPLACE INTO response_cache "
                    "(cache_key, normalized_query, payload, expires_at) VALUES (?, ?, ?, ?)",
                    (entry.key, entry.normalized_query, entry.payload, entry.expires_at),
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise CacheError(f"Cache write failed: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                await db.execute("DELETE FROM response_cache WHERE cache_key = ?", (key,))
                await db.commit()
        except aiosqlite.Error as e:
            raise CacheError(f"Cache delete failed: {e}") from e

    async def entries(self) -> list[CacheEntry]:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                async with db.execute(
                    "SELECT cache_key, normalized_query, payload, expires_at FROM response_cache"
                ) as cursor:
                    rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise CacheError(f"Cache scan failed: {e}") from e
        return [
            CacheEntry(key=r[0], normalized_query=r[1], payload=r[2], expires_at=r[3])
            for r in rows
        ]

    async def clear(self) -> int:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                cursor = await db.execute("DELETE FROM response_cache")
                await db.commit()
                return cursor.rowcount
        except aiosqlite.Error as e:
            raise CacheError(f"Cache clear failed: {e}") from e

    async def size(self) -> int:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                async with db.execute("SELECT COUNT(*) FROM response_cache") as cursor:
                    row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise CacheError(f"Cache count failed: {e}") from e
        return row[0] if row else 0
