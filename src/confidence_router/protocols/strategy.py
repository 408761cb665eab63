"""Protocol for routing strategies."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from confidence_router.models.domain import Query, QueryClassification

if TYPE_CHECKING:
    from confidence_router.routing.base import ExecutionPlan, StrategyRun
    from confidence_router.sources.registry import SourceRegistry


class RoutingStrategy(Protocol):
    name: str

    async def execute(
        self,
        query: Query,
        classification: QueryClassification,
        plan: ExecutionPlan,
        registry: SourceRegistry,
        run: StrategyRun,
    ) -> None:
        """Query sources per ``plan`` and append every outcome to ``run`` as it lands."""
        ...
