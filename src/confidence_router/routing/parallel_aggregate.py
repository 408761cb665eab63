"""Parallel aggregate: ask every applicable source at once and keep all answers."""

from __future__ import annotations

import asyncio

from confidence_router.models.domain import Query, QueryClassification
from confidence_router.routing.base import (
    ExecutionPlan,
    StrategyRun,
    call_and_record,
    record_cancelled,
    resolve_sources,
)
from confidence_router.sources.registry import SourceRegistry


class ParallelAggregateStrategy:
    name = "parallel_aggregate"

    async def execute(
        self,
        query: Query,
        classification: QueryClassification,
        plan: ExecutionPlan,
        registry: SourceRegistry,
        run: StrategyRun,
    ) -> None:
        resolved = resolve_sources(plan, registry, query, run)
        tasks = {
            asyncio.create_task(
                call_and_record(source, query, plan.step_timeout(step), run)
            ): step.name
            for step, source in resolved
        }
        try:
            # call_and_record never raises for source failures, so this settles all
            await asyncio.gather(*tasks)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            # An outer cancellation reaches the children through gather before we get here
            record_cancelled(
                run, [name for task, name in tasks.items() if task in pending or task.cancelled()]
            )
