"""Route orchestrator: the single entry point for answering a query.

cache lookup -> classify -> select strategy -> execute under the global
deadline -> normalize -> aggregate -> cache -> record metrics and trace.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

import aiosqlite

from confidence_router.aggregation.aggregator import ResultAggregator
from confidence_router.cache.response_cache import ResponseCache
from confidence_router.config import constants
from confidence_router.config.manager import RoutingConfigManager, RoutingSnapshot
from confidence_router.config.settings import Settings
from confidence_router.exceptions import CacheError
from confidence_router.metrics.store import MetricsStore
from confidence_router.models.domain import (
    ExecutionStatus,
    Query,
    RouteTrace,
    StrategyType,
)
from confidence_router.models.schemas import (
    ExecutionSummary,
    HealthResponse,
    MetricsSnapshot,
    RouteDebug,
    RouteResponse,
    SourceHealth,
)
from confidence_router.observability.logger import get_logger
from confidence_router.observability.metrics import log_route_metrics
from confidence_router.observability.tracing import TraceContext
from confidence_router.protocols.strategy import RoutingStrategy
from confidence_router.query.classifier import QueryClassifier
from confidence_router.routing.adaptive import AdaptiveStrategy
from confidence_router.routing.base import ExecutionPlan, StrategyRun
from confidence_router.routing.parallel_aggregate import ParallelAggregateStrategy
from confidence_router.routing.parallel_race import ParallelRaceStrategy
from confidence_router.routing.selector import StrategySelector
from confidence_router.routing.sequential import SequentialStrategy
from confidence_router.scoring.normalizer import ConfidenceNormalizer
from confidence_router.scoring.reason_codes import ReasonCode
from confidence_router.scoring.similarity import SimilarityFn, word_overlap_similarity
from confidence_router.storage.sqlite_trace_store import SQLiteTraceStore

logger = get_logger("orchestrator")


@dataclass(frozen=True)
class RouteOptions:
    bypass_cache: bool = False
    strategy: str | None = None


class Orchestrator:
    def __init__(
        self,
        config_manager: RoutingConfigManager,
        cache: ResponseCache,
        metrics: MetricsStore,
        settings: Settings,
        trace_store: SQLiteTraceStore | None = None,
        similarity: SimilarityFn = word_overlap_similarity,
    ) -> None:
        self._config_manager = config_manager
        self._cache = cache
        self._metrics = metrics
        self._settings = settings
        self._trace_store = trace_store
        self._similarity = similarity
        self._normalizer = ConfidenceNormalizer(settings.default_source_accuracy)
        self._selector = StrategySelector(adaptive_routing=settings.adaptive_routing)

        sequential = SequentialStrategy()
        parallel = ParallelAggregateStrategy()
        self._strategies: dict[StrategyType, RoutingStrategy] = {
            StrategyType.SEQUENTIAL: sequential,
            StrategyType.PARALLEL_AGGREGATE: parallel,
            StrategyType.PARALLEL_RACE: ParallelRaceStrategy(),
            StrategyType.ADAPTIVE: AdaptiveStrategy(
                metrics,
                sequential=sequential,
                parallel=parallel,
                dominance_threshold=settings.adaptive_dominance_threshold,
                threshold_scale=settings.adaptive_threshold_scale,
                min_samples=settings.adaptive_min_samples,
            ),
        }
        self._classifier: tuple[int, QueryClassifier] | None = None
        self._background: set[asyncio.Task] = set()

        self._metrics.set_accuracy_priors(config_manager.current.config.accuracy_priors())

    async def route(self, query: Query, options: RouteOptions | None = None) -> RouteResponse:
        options = options or RouteOptions()
        # One snapshot per request: a reload never changes an in-flight route
        snapshot = self._config_manager.current
        config = snapshot.config
        trace = TraceContext()
        salt = self._cache_salt(snapshot)

        if not options.bypass_cache:
            with trace.span("cache_lookup"):
                cached = await self._cache_get(query, salt)
            if cached is not None:
                self._metrics.record_cache_hit()
                logger.info(
                    "cache_hit",
                    trace_id=trace.trace_id,
                    source=cached.source,
                    confidence=cached.confidence,
                )
                self._persist(self._cache_hit_trace(trace, query, cached))
                return cached

        with trace.span("classification"):
            classification = self._classifier_for(snapshot).classify(query)
        logger.info("query_classified", trace_id=trace.trace_id, **classification.to_dict())

        selection = self._selector.select(classification, config, options.strategy)
        logger.info(
            "strategy_selected",
            trace_id=trace.trace_id,
            strategy=selection.name,
            type=str(selection.type),
        )

        plan = ExecutionPlan.from_config(selection.config, config)
        engine = self._strategies[selection.type]
        run = StrategyRun(trace_id=trace.trace_id)
        partial = False

        with trace.span("strategy", strategy=selection.name):
            try:
                await asyncio.wait_for(
                    engine.execute(query, classification, plan, snapshot.registry, run),
                    timeout=self._settings.global_timeout_ms / 1000,
                )
            except TimeoutError:
                partial = True
                logger.warning(
                    "route_deadline_exceeded",
                    trace_id=trace.trace_id,
                    timeout_ms=self._settings.global_timeout_ms,
                    completed=len(run.results),
                )

        with trace.span("normalization"):
            accuracy = self._metrics.get_source_accuracy()
            normalized = self._normalizer.normalize_all(run.results, accuracy)

        with trace.span("aggregation"):
            aggregator = ResultAggregator.from_routing_config(config, self._similarity)
            response = aggregator.aggregate(normalized)

        strategy_label = run.detail or selection.name
        response = self._finalize(
            response, run, trace, classification.to_dict(), strategy_label, partial
        )

        if not partial and response.confidence > 0:
            with trace.span("cache_store"):
                await self._cache_set(query, response, salt)

        route_trace = RouteTrace(
            trace_id=trace.trace_id,
            query=query.text,
            query_type=str(classification.query_type),
            strategy=strategy_label,
            timestamp=trace.started_at,
            latency_ms=trace.elapsed_ms,
            confidence=response.confidence,
            source=response.source,
            conflict=response.conflict,
            reason_codes=[str(code) for code in response.reasons],
            executions=[e.to_dict() for e in run.executions],
            partial=partial,
            winning_sources=list(response.sources),
        )
        self._metrics.record_request(route_trace)
        log_route_metrics(
            trace.trace_id,
            strategy_label,
            response.confidence,
            response.source,
            run.sources_called,
            response.conflict,
            partial,
        )
        logger.info(
            "route_completed",
            trace_id=trace.trace_id,
            latency_ms=round(trace.elapsed_ms, 2),
            spans=trace.span_durations(),
        )
        self._persist(route_trace)
        return response

    def _finalize(
        self,
        response: RouteResponse,
        run: StrategyRun,
        trace: TraceContext,
        classification: dict,
        strategy: str,
        partial: bool,
    ) -> RouteResponse:
        reasons = list(response.reasons)
        statuses = {e.status for e in run.executions}
        if any(e.triggered_stop for e in run.executions):
            reasons.append(ReasonCode.EARLY_STOP)
        if ExecutionStatus.ERROR in statuses:
            reasons.append(ReasonCode.SOURCE_FAILED)
        if ExecutionStatus.TIMEOUT in statuses:
            reasons.append(ReasonCode.SOURCE_TIMEOUT)

        warning = response.warning
        if partial:
            reasons.append(ReasonCode.PARTIAL_RESULTS)
            warning = (
                f"{warning}; {constants.PARTIAL_WARNING}" if warning else constants.PARTIAL_WARNING
            )

        debug = RouteDebug(
            trace_id=trace.trace_id,
            strategy=strategy,
            classification=classification,
            executions=[ExecutionSummary(**e.to_dict()) for e in run.executions],
            latency_ms=round(trace.elapsed_ms, 2),
            partial=partial,
        )
        return response.model_copy(update={"reasons": reasons, "warning": warning, "debug": debug})

    def _classifier_for(self, snapshot: RoutingSnapshot) -> QueryClassifier:
        if self._classifier is None or self._classifier[0] != snapshot.version:
            self._classifier = (snapshot.version, QueryClassifier(snapshot.config.classifier))
        return self._classifier[1]

    def _cache_salt(self, snapshot: RoutingSnapshot) -> str:
        if not self._settings.cache_salt_by_sources:
            return ""
        return ",".join(sorted(snapshot.config.enabled_sources()))

    async def _cache_get(self, query: Query, salt: str) -> RouteResponse | None:
        try:
            return await self._cache.get(query, salt=salt)
        except CacheError as e:
            logger.warning("cache_lookup_failed", error=str(e))
            return None

    async def _cache_set(self, query: Query, response: RouteResponse, salt: str) -> None:
        try:
            await self._cache.set(query, response, salt=salt)
        except CacheError as e:
            logger.warning("cache_store_failed", error=str(e))

    @staticmethod
    def _cache_hit_trace(trace: TraceContext, query: Query, cached: RouteResponse) -> RouteTrace:
        return RouteTrace(
            trace_id=trace.trace_id,
            query=query.text,
            query_type="cached",
            strategy="cache",
            timestamp=trace.started_at,
            latency_ms=trace.elapsed_ms,
            confidence=cached.confidence,
            source=cached.source,
            conflict=cached.conflict,
            reason_codes=[str(code) for code in cached.reasons],
            executions=[],
            cache_hit=True,
            winning_sources=list(cached.sources),
        )

    def _persist(self, trace: RouteTrace) -> None:
        if self._trace_store is None:
            return
        task = asyncio.create_task(self._save_trace(trace))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _save_trace(self, trace: RouteTrace) -> None:
        try:
            await self._trace_store.save_trace(trace)
        except aiosqlite.Error as e:
            logger.warning("trace_save_failed", trace_id=trace.trace_id, error=str(e))

    async def drain(self) -> None:
        """Wait for outstanding trace writes."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def warm_up(self) -> int:
        """Seed metrics from persisted traces so accuracy and health survive restarts."""
        if self._trace_store is None or self._settings.metrics_warmup_traces <= 0:
            return 0
        traces = await self._trace_store.get_recent_traces(
            limit=self._settings.metrics_warmup_traces
        )
        return self._metrics.replay(traces)

    def current_config(self) -> RoutingSnapshot:
        return self._config_manager.current

    def reload_config(self, path: str | Path | None = None) -> RoutingSnapshot:
        snapshot = self._config_manager.reload(path)
        self._metrics.set_accuracy_priors(snapshot.config.accuracy_priors())
        return snapshot

    def record_feedback(self, trace_id: str, correct: bool, source: str | None = None) -> bool:
        return self._metrics.record_feedback(trace_id, correct, source)

    async def invalidate_cache(self, pattern: str) -> int:
        return await self._cache.invalidate(pattern)

    def metrics_snapshot(self) -> MetricsSnapshot:
        return self._metrics.snapshot()

    async def health(self) -> HealthResponse:
        snapshot = self._config_manager.current
        observed = self._metrics.source_health()
        sources = {
            name: observed.get(name)
            or SourceHealth(
                status="unknown", success_rate=0.0, avg_latency_ms=0.0, recent_failures=0, samples=0
            )
            for name in snapshot.registry.names()
        }
        try:
            cache_entries = await self._cache.size()
        except CacheError as e:
            logger.warning("cache_size_failed", error=str(e))
            cache_entries = None
        return HealthResponse(
            status=MetricsStore.overall_status(sources),
            sources=sources,
            cache_entries=cache_entries,
            config_version=snapshot.version,
        )
