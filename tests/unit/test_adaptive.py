"""Tests for history-driven adaptive routing."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from confidence_router.metrics.store import MetricsStore
from confidence_router.models.domain import (
    QueryClassification,
    QueryType,
    RouteTrace,
    StrategyType,
    Urgency,
)
from confidence_router.routing.adaptive import AdaptiveStrategy
from confidence_router.routing.base import ExecutionPlan, StrategyRun

CLASSIFICATION = QueryClassification(
    urgency=Urgency.NORMAL, complexity=6, domain="general", query_type=QueryType.PROCEDURAL
)


def _seed(store, source, confidence, count, query_type="procedural"):
    for i in range(count):
        store.record_request(
            RouteTrace(
                trace_id=f"{source}-{query_type}-{i}",
                query="q",
                query_type=query_type,
                strategy="default",
                timestamp=datetime.now(timezone.utc),
                latency_ms=5.0,
                confidence=confidence,
                source=source,
                conflict=False,
                reason_codes=[],
                executions=[
                    {"source": source, "status": "ok", "confidence": confidence, "latency_ms": 5.0}
                ],
            )
        )


@pytest.fixture
def plan(routing_config):
    return ExecutionPlan.from_config(routing_config.strategies["default"], routing_config)


def test_dominant_source_goes_first_with_relaxed_threshold(plan):
    store = MetricsStore()
    _seed(store, "llm", 90, 6)
    _seed(store, "kb", 40, 6)

    concrete = AdaptiveStrategy(store).plan_for(CLASSIFICATION, plan)
    assert concrete.type == StrategyType.SEQUENTIAL
    assert [s.name for s in concrete.steps] == ["llm", "kb", "web"]
    # 75 scaled by 0.9, rounded half up
    assert concrete.steps[0].threshold == 68
    assert concrete.steps[1].threshold == 85


def test_no_dominant_source_falls_back_to_parallel(plan):
    store = MetricsStore()
    _seed(store, "kb", 60, 6)
    concrete = AdaptiveStrategy(store).plan_for(CLASSIFICATION, plan)
    assert concrete.type == StrategyType.PARALLEL_AGGREGATE
    assert [s.name for s in concrete.steps] == ["kb", "llm", "web"]


def test_too_few_samples_is_not_dominance(plan):
    store = MetricsStore()
    _seed(store, "kb", 95, 4)
    concrete = AdaptiveStrategy(store, min_samples=5).plan_for(CLASSIFICATION, plan)
    assert concrete.type == StrategyType.PARALLEL_AGGREGATE


def test_history_is_per_query_type(plan):
    store = MetricsStore()
    _seed(store, "kb", 95, 10, query_type="factual")
    concrete = AdaptiveStrategy(store).plan_for(CLASSIFICATION, plan)
    assert concrete.type == StrategyType.PARALLEL_AGGREGATE


async def test_execute_delegates_and_labels_run(plan, registry_of, fake_source, query):
    store = MetricsStore()
    _seed(store, "kb", 95, 6)
    kb, llm = fake_source("kb", 80), fake_source("llm", 99)
    run = StrategyRun(trace_id="t")
    await AdaptiveStrategy(store).execute(query, CLASSIFICATION, plan, registry_of(kb, llm), run)
    assert run.detail == "adaptive:sequential"
    # 80 clears the relaxed kb threshold of 77
    assert kb.calls == 1
    assert llm.calls == 0


async def test_execute_parallel_asks_everyone(plan, registry_of, fake_source, query):
    kb, llm, web = fake_source("kb", 50), fake_source("llm", 60), fake_source("web", 70)
    run = StrategyRun(trace_id="t")
    await AdaptiveStrategy(MetricsStore()).execute(
        query, CLASSIFICATION, plan, registry_of(kb, llm, web), run
    )
    assert run.detail == "adaptive:parallel_aggregate"
    assert kb.calls == llm.calls == web.calls == 1
