"""Response cache keyed on normalized query text with confidence-tiered TTLs."""

from __future__ import annotations

import hashlib
import re
import time
from collections.abc import Callable

from pydantic import ValidationError

from confidence_router.aggregation.ttl import ttl_for_confidence
from confidence_router.models.domain import CacheEntry, Query
from confidence_router.models.schemas import RouteResponse
from confidence_router.observability.logger import get_logger
from confidence_router.protocols.cache import CacheBackend

logger = get_logger("response_cache")

KEY_PREFIX = "query:"


def normalize_query_text(text: str) -> str:
    text = text.lower()
    text = re.sub(r"[^\w\s]", "", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


class ResponseCache:
    def __init__(self, backend: CacheBackend, clock: Callable[[], float] = time.time) -> None:
        self._backend = backend
        self._clock = clock

    @staticmethod
    def key_for(text: str, salt: str = "") -> str:
        normalized = normalize_query_text(text)
        material = f"{normalized}|{salt}" if salt else normalized
        return KEY_PREFIX + hashlib.sha256(material.encode("utf-8")).hexdigest()

    async def get(self, query: Query | str, salt: str = "") -> RouteResponse | None:
        key = self.key_for(_text(query), salt)
        entry = await self._backend.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            await self._backend.delete(key)
            return None
        try:
            return RouteResponse.model_validate_json(entry.payload)
        except ValidationError:
            logger.warning("cache_entry_unreadable", key=key)
            await self._backend.delete(key)
            return None

    async def set(
        self,
        query: Query | str,
        response: RouteResponse,
        ttl: int | None = None,
        salt: str = "",
    ) -> int:
        text = _text(query)
        ttl = ttl if ttl is not None else ttl_for_confidence(response.confidence)
        entry = CacheEntry(
            key=self.key_for(text, salt),
            normalized_query=normalize_query_text(text),
            payload=response.model_dump_json(),
            expires_at=self._clock() + ttl,
        )
        await self._backend.set(entry)
        logger.debug("cache_set", key=entry.key, ttl=ttl, confidence=response.confidence)
        return ttl

    async def invalidate(self, pattern: str) -> int:
        """Drop entries whose normalized query matches ``pattern`` (regex search).

        The hashed key only counts on a full match, so a short pattern never
        hits digest characters by accident.
        """
        regex = re.compile(pattern)
        removed = 0
        for entry in await self._backend.entries():
            if regex.search(entry.normalized_query) or regex.fullmatch(entry.key):
                await self._backend.delete(entry.key)
                removed += 1
        logger.info("cache_invalidated", pattern=pattern, removed=removed)
        return removed

    async def clear(self) -> int:
        return await self._backend.clear()

    async def size(self) -> int:
        return await self._backend.size()


def _text(query: Query | str) -> str:
    return query.text if isinstance(query, Query) else query
