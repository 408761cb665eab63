"""Generic adapter for sources exposed over HTTP.

The remote service receives ``{"query", "requester_id", "context"}`` and must
answer with ``{"answer", "confidence", "reasoning"?, "metadata"?}``.
"""

from __future__ import annotations

import time

import httpx

from confidence_router.config.routing import SourceSpec
from confidence_router.exceptions import ConfigurationError, SourceError, SourceTimeoutError
from confidence_router.models.domain import Query, SourceResult
from confidence_router.observability.logger import get_logger

logger = get_logger("http_source")


class HttpSource:
    def __init__(
        self,
        name: str,
        url: str,
        priority: int = 5,
        headers: dict[str, str] | None = None,
        expected_latency_ms: float = 1000.0,
        cost_per_call: float = 0.0,
        domains: list[str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not url:
            raise ConfigurationError(f"HTTP source '{name}' requires a url")
        self.name = name
        self.priority = priority
        self._url = url
        self._headers = headers or {}
        self._expected_latency_ms = expected_latency_ms
        self._cost = cost_per_call
        self._domains = [d.lower() for d in domains or []]
        self._client = client or httpx.AsyncClient()

    @classmethod
    def from_spec(cls, name: str, spec: SourceSpec) -> HttpSource:
        opts = spec.options
        return cls(
            name=name,
            url=opts.get("url", ""),
            priority=spec.priority,
            headers=opts.get("headers"),
            expected_latency_ms=float(opts.get("expected_latency_ms", 1000.0)),
            cost_per_call=float(opts.get("cost", 0.0)),
            domains=opts.get("domains"),
        )

    async def query(self, query: Query, timeout: float) -> SourceResult:
        payload = {
            "query": query.text,
            "requester_id": query.requester_id,
            "context": {
                "previous_queries": list(query.context.previous_queries),
                "urgency": query.context.urgency,
                "domain": query.context.domain,
                "expertise": query.context.expertise,
            },
        }
        start = time.monotonic()
        try:
            resp = await self._client.post(
                self._url, json=payload, headers=self._headers, timeout=timeout
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as e:
            raise SourceTimeoutError(self.name, f"timed out after {timeout:.2f}s") from e
        except httpx.HTTPStatusError as e:
            raise SourceError(self.name, f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise SourceError(self.name, str(e)) from e

        if not isinstance(data, dict) or "answer" not in data or "confidence" not in data:
            raise SourceError(self.name, "response missing 'answer' or 'confidence'")

        latency_ms = (time.monotonic() - start) * 1000
        logger.debug("http_source_answered", source=self.name, latency_ms=round(latency_ms, 2))
        return SourceResult(
            source=self.name,
            confidence=data["confidence"],
            answer=str(data["answer"]),
            metadata=dict(data.get("metadata") or {}),
            reasoning=str(data.get("reasoning") or ""),
            latency_ms=latency_ms,
        )

    def can_handle(self, query: Query) -> bool:
        if not self._domains:
            return True
        domain = (query.context.domain or "").lower()
        text = query.text.lower()
        return domain in self._domains or any(d in text for d in self._domains)

    def average_latency(self) -> float:
        return self._expected_latency_ms

    def cost(self) -> float:
        return self._cost

    async def aclose(self) -> None:
        await self._client.aclose()
