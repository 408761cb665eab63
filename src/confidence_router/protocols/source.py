"""Protocol for information sources the router can query."""

from __future__ import annotations

from typing import Protocol

from confidence_router.models.domain import Query, SourceResult


class InformationSource(Protocol):
    """An answer provider that reports its own confidence.

    ``query`` must honor ``timeout`` (seconds) and be cancellable. A failure is
    raised as ``SourceError``; a source never returns a made-up low-confidence
    answer in place of an error.
    """

    name: str
    priority: int

    async def query(self, query: Query, timeout: float) -> SourceResult: ...

    def can_handle(self, query: Query) -> bool: ...

    def average_latency(self) -> float: ...

    def cost(self) -> float: ...
