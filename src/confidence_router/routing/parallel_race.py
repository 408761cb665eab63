"""Parallel race: take the first confident answer, keep near-simultaneous arrivals."""

from __future__ import annotations

import asyncio

from confidence_router.models.domain import Query, QueryClassification, SourceExecution
from confidence_router.observability.logger import get_logger
from confidence_router.routing.base import (
    ExecutionPlan,
    StrategyRun,
    call_and_record,
    record_cancelled,
    resolve_sources,
)
from confidence_router.sources.registry import SourceRegistry

logger = get_logger("race_strategy")


class ParallelRaceStrategy:
    name = "parallel_race"

    async def execute(
        self,
        query: Query,
        classification: QueryClassification,
        plan: ExecutionPlan,
        registry: SourceRegistry,
        run: StrategyRun,
    ) -> None:
        resolved = resolve_sources(plan, registry, query, run)
        tasks: dict[asyncio.Task[SourceExecution], str] = {
            asyncio.create_task(
                call_and_record(source, query, plan.step_timeout(step), run)
            ): step.name
            for step, source in resolved
        }
        pending: set[asyncio.Task[SourceExecution]] = set(tasks)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + plan.timeout_ms / 1000

        try:
            winner: SourceExecution | None = None
            while pending and winner is None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                done, pending = await asyncio.wait(
                    pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    execution = task.result()
                    if (
                        execution.succeeded
                        and execution.result is not None
                        and execution.result.confidence >= plan.race_threshold
                    ):
                        execution.triggered_stop = True
                        if winner is None or execution.result.confidence > winner.result.confidence:
                            winner = execution

            if winner is not None and pending and plan.grace_period_ms > 0:
                # Results landing inside the grace window stay as alternatives
                _, pending = await asyncio.wait(pending, timeout=plan.grace_period_ms / 1000)

            if winner is not None:
                logger.info(
                    "race_won",
                    trace_id=run.trace_id,
                    source=winner.source,
                    confidence=winner.result.confidence,
                    cancelled=len(pending),
                )
        finally:
            still_running = [task for task in tasks if not task.done()]
            for task in still_running:
                task.cancel()
            record_cancelled(run, [tasks[task] for task in still_running])
