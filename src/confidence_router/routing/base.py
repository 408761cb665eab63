"""Shared building blocks for routing strategies."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field, replace

from confidence_router.config.routing import RoutingConfig, SourceStep, StrategyConfig
from confidence_router.exceptions import SourceError, SourceTimeoutError
from confidence_router.models.domain import (
    ExecutionStatus,
    Query,
    SourceExecution,
    SourceResult,
    StrategyType,
)
from confidence_router.observability.logger import get_logger
from confidence_router.observability.metrics import log_source_result
from confidence_router.protocols.source import InformationSource
from confidence_router.sources.registry import SourceRegistry

logger = get_logger("routing")


@dataclass(frozen=True)
class ExecutionPlan:
    """The per-request view of a strategy config: enabled steps and limits."""

    type: StrategyType
    steps: tuple[SourceStep, ...]
    timeout_ms: int
    race_threshold: int = 80
    grace_period_ms: int = 500
    early_stopping: bool = True

    @classmethod
    def from_config(cls, strategy: StrategyConfig, routing: RoutingConfig) -> ExecutionPlan:
        return cls(
            type=strategy.type,
            steps=tuple(s for s in strategy.sources if routing.sources[s.name].enabled),
            timeout_ms=strategy.timeout_ms,
            race_threshold=strategy.race_threshold,
            grace_period_ms=strategy.grace_period_ms,
            early_stopping=routing.enable_early_stopping,
        )

    def with_steps(self, steps: list[SourceStep]) -> ExecutionPlan:
        return replace(self, steps=tuple(steps))

    def step_timeout(self, step: SourceStep) -> float:
        """Seconds allowed for one source call, capped by the strategy timeout."""
        return min(step.timeout_ms, self.timeout_ms) / 1000


@dataclass
class StrategyRun:
    """Mutable record of everything a strategy attempted for one request."""

    trace_id: str | None = None
    executions: list[SourceExecution] = field(default_factory=list)
    detail: str | None = None

    def add(self, execution: SourceExecution) -> None:
        self.executions.append(execution)
        log_source_result(self.trace_id, execution)

    @property
    def results(self) -> list[SourceResult]:
        return [e.result for e in self.executions if e.succeeded and e.result is not None]

    @property
    def sources_called(self) -> int:
        return sum(1 for e in self.executions if e.status != ExecutionStatus.SKIPPED)


async def call_source(source: InformationSource, query: Query, timeout: float) -> SourceExecution:
    """Run one source call under ``timeout``. Failures are recorded, cancellation propagates."""
    start = time.monotonic()
    try:
        result = await asyncio.wait_for(source.query(query, timeout), timeout=timeout)
    except (TimeoutError, SourceTimeoutError):
        return SourceExecution(
            source=source.name,
            status=ExecutionStatus.TIMEOUT,
            latency_ms=(time.monotonic() - start) * 1000,
            error=f"timed out after {timeout:.2f}s",
        )
    except SourceError as e:
        return SourceExecution(
            source=source.name,
            status=ExecutionStatus.ERROR,
            latency_ms=(time.monotonic() - start) * 1000,
            error=e.message,
        )
    except Exception as e:
        logger.exception("source_raised_unexpectedly", source=source.name)
        return SourceExecution(
            source=source.name,
            status=ExecutionStatus.ERROR,
            latency_ms=(time.monotonic() - start) * 1000,
            error=f"{type(e).__name__}: {e}",
        )

    latency_ms = (time.monotonic() - start) * 1000
    result.source = source.name
    if not result.latency_ms:
        result.latency_ms = latency_ms
    return SourceExecution(
        source=source.name,
        status=ExecutionStatus.OK,
        result=result,
        latency_ms=latency_ms,
    )


async def call_and_record(
    source: InformationSource, query: Query, timeout: float, run: StrategyRun
) -> SourceExecution:
    execution = await call_source(source, query, timeout)
    run.add(execution)
    return execution


def resolve_sources(
    plan: ExecutionPlan, registry: SourceRegistry, query: Query, run: StrategyRun
) -> list[tuple[SourceStep, InformationSource]]:
    """Look up each step's source, recording skips for missing or unwilling ones."""
    resolved: list[tuple[SourceStep, InformationSource]] = []
    for step in plan.steps:
        source = resolve_step(step, registry, query, run)
        if source is not None:
            resolved.append((step, source))
    return resolved


def resolve_step(
    step: SourceStep, registry: SourceRegistry, query: Query, run: StrategyRun
) -> InformationSource | None:
    source = registry.get(step.name)
    if source is None:
        run.add(_skipped(step.name, "not registered"))
        return None
    if not source.can_handle(query):
        run.add(_skipped(step.name, "cannot handle query"))
        return None
    return source


def record_cancelled(run: StrategyRun, names: list[str]) -> None:
    for name in names:
        run.add(
            SourceExecution(source=name, status=ExecutionStatus.CANCELLED, error="cancelled")
        )


def _skipped(name: str, reason: str) -> SourceExecution:
    return SourceExecution(source=name, status=ExecutionStatus.SKIPPED, error=reason)
