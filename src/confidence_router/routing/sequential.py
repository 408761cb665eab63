"""Sequential short-circuit: query sources in order, stop at the first confident answer."""

from __future__ import annotations

import asyncio

from confidence_router.models.domain import Query, QueryClassification
from confidence_router.observability.logger import get_logger
from confidence_router.routing.base import (
    ExecutionPlan,
    StrategyRun,
    call_source,
    record_cancelled,
    resolve_step,
)
from confidence_router.sources.registry import SourceRegistry

logger = get_logger("sequential_strategy")


class SequentialStrategy:
    name = "sequential"

    async def execute(
        self,
        query: Query,
        classification: QueryClassification,
        plan: ExecutionPlan,
        registry: SourceRegistry,
        run: StrategyRun,
    ) -> None:
        for step in plan.steps:
            source = resolve_step(step, registry, query, run)
            if source is None:
                continue

            try:
                execution = await call_source(source, query, plan.step_timeout(step))
            except asyncio.CancelledError:
                record_cancelled(run, [step.name])
                raise
            # Thresholds compare the source's own confidence, before normalization
            stop = (
                plan.early_stopping
                and execution.succeeded
                and execution.result is not None
                and execution.result.confidence >= step.threshold
            )
            execution.triggered_stop = stop
            run.add(execution)

            if stop:
                logger.info(
                    "early_stop",
                    trace_id=run.trace_id,
                    source=step.name,
                    confidence=execution.result.confidence,
                    threshold=step.threshold,
                )
                return
