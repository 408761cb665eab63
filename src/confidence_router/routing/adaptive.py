"""Adaptive routing: pick between the sequential and parallel engines from history.

When one source has a strong track record for this query type it goes first
in a sequential run with a slightly relaxed threshold. Otherwise every source
is asked in parallel.
"""

from __future__ import annotations

from confidence_router.config.routing import SourceStep
from confidence_router.metrics.store import MetricsStore
from confidence_router.models.domain import Query, QueryClassification, StrategyType
from confidence_router.observability.logger import get_logger
from confidence_router.routing.base import ExecutionPlan, StrategyRun
from confidence_router.routing.parallel_aggregate import ParallelAggregateStrategy
from confidence_router.routing.sequential import SequentialStrategy
from confidence_router.scoring.normalizer import round_half_up
from confidence_router.sources.registry import SourceRegistry

logger = get_logger("adaptive_strategy")


class AdaptiveStrategy:
    name = "adaptive"

    def __init__(
        self,
        metrics: MetricsStore,
        sequential: SequentialStrategy | None = None,
        parallel: ParallelAggregateStrategy | None = None,
        dominance_threshold: float = 0.8,
        threshold_scale: float = 0.9,
        min_samples: int = 5,
    ) -> None:
        self._metrics = metrics
        self._sequential = sequential or SequentialStrategy()
        self._parallel = parallel or ParallelAggregateStrategy()
        self._dominance_threshold = dominance_threshold
        self._threshold_scale = threshold_scale
        self._min_samples = min_samples

    def plan_for(self, classification: QueryClassification, plan: ExecutionPlan) -> ExecutionPlan:
        """Return the concrete sequential or parallel plan for this query type."""
        performance = self._metrics.get_performance(classification.query_type)
        ranked = sorted(
            (
                (performance[step.name].success_rate, step)
                for step in plan.steps
                if step.name in performance
                and performance[step.name].samples >= self._min_samples
            ),
            key=lambda pair: pair[0],
            reverse=True,
        )

        if ranked and ranked[0][0] >= self._dominance_threshold:
            best = ranked[0][1]
            lead = SourceStep(
                name=best.name,
                threshold=round_half_up(best.threshold * self._threshold_scale),
                timeout_ms=best.timeout_ms,
            )
            rest = [step for step in plan.steps if step.name != best.name]
            return ExecutionPlan(
                type=StrategyType.SEQUENTIAL,
                steps=(lead, *rest),
                timeout_ms=plan.timeout_ms,
                early_stopping=plan.early_stopping,
            )

        return ExecutionPlan(
            type=StrategyType.PARALLEL_AGGREGATE,
            steps=plan.steps,
            timeout_ms=plan.timeout_ms,
            early_stopping=plan.early_stopping,
        )

    async def execute(
        self,
        query: Query,
        classification: QueryClassification,
        plan: ExecutionPlan,
        registry: SourceRegistry,
        run: StrategyRun,
    ) -> None:
        concrete = self.plan_for(classification, plan)
        run.detail = f"adaptive:{concrete.type}"
        logger.info(
            "adaptive_plan",
            trace_id=run.trace_id,
            query_type=str(classification.query_type),
            engine=str(concrete.type),
            order=[step.name for step in concrete.steps],
        )
        engine = (
            self._sequential if concrete.type == StrategyType.SEQUENTIAL else self._parallel
        )
        await engine.execute(query, classification, concrete, registry, run)
