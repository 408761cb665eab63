"""Shared test fixtures."""

from __future__ import annotations

import asyncio

import pytest

from confidence_router.cache.memory_backend import MemoryCacheBackend
from confidence_router.cache.response_cache import ResponseCache
from confidence_router.config.manager import RoutingConfigManager
from confidence_router.config.routing import RoutingConfig
from confidence_router.config.settings import Settings
from confidence_router.metrics.store import MetricsStore
from confidence_router.models.domain import Query, SourceResult
from confidence_router.pipeline.orchestrator import Orchestrator
from confidence_router.sources.registry import SourceRegistry, build_registry

PRIORITIES = {"kb": 1, "llm": 2, "ms_docs": 3, "web": 4}


class FakeSource:
    """Scriptable source that records calls and cancellation."""

    def __init__(
        self,
        name: str,
        confidence: int = 80,
        answer: str | None = None,
        delay: float = 0.0,
        error: Exception | None = None,
        handles: bool = True,
        metadata: dict | None = None,
    ) -> None:
        self.name = name
        self.priority = PRIORITIES.get(name, 5)
        self.confidence = confidence
        self.answer = answer if answer is not None else f"answer from {name}"
        self.delay = delay
        self.error = error
        self.handles = handles
        self.metadata = metadata or {}
        self.calls = 0
        self.completed = 0
        self.cancelled = False

    async def query(self, query: Query, timeout: float) -> SourceResult:
        self.calls += 1
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        self.completed += 1
        return SourceResult(
            source=self.name,
            confidence=self.confidence,
            answer=self.answer,
            metadata=dict(self.metadata),
            reasoning=f"{self.name} reasoning",
        )

    def can_handle(self, query: Query) -> bool:
        return self.handles

    def average_latency(self) -> float:
        return self.delay * 1000

    def cost(self) -> float:
        return 0.0


def routing_dict(accuracy: float | None = 1.0) -> dict:
    sources = {
        name: {"priority": priority, "historical_accuracy": accuracy}
        for name, priority in PRIORITIES.items()
    }
    sources["ms_docs"]["authoritative"] = True
    everything = [{"name": n, "timeout_ms": 1000} for n in PRIORITIES]
    return {
        "sources": sources,
        "strategies": {
            "default": {
                "type": "sequential",
                "sources": [
                    {"name": "kb", "threshold": 85, "timeout_ms": 1000},
                    {"name": "llm", "threshold": 75, "timeout_ms": 1000},
                    {"name": "web", "threshold": 0, "timeout_ms": 1000},
                ],
            },
            "fast": {
                "type": "sequential",
                "sources": [
                    {"name": "kb", "threshold": 80, "timeout_ms": 1000},
                    {"name": "llm", "threshold": 70, "timeout_ms": 1000},
                ],
            },
            "critical": {"type": "parallel_aggregate", "timeout_ms": 1000, "sources": everything},
            "race": {
                "type": "parallel_race",
                "timeout_ms": 1000,
                "race_threshold": 80,
                "grace_period_ms": 100,
                "sources": everything,
            },
        },
    }


@pytest.fixture
def make_routing_config():
    def _make(accuracy: float | None = 1.0, **overrides) -> RoutingConfig:
        data = routing_dict(accuracy)
        data.update(overrides)
        return RoutingConfig.model_validate(data)

    return _make


@pytest.fixture
def routing_config(make_routing_config) -> RoutingConfig:
    return make_routing_config()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Test settings with temp paths."""
    return Settings(
        _env_file=None,
        trace_db_path=str(tmp_path / "traces.db"),
        cache_db_path=str(tmp_path / "cache.db"),
        global_timeout_ms=2000,
        metrics_warmup_traces=0,
    )


@pytest.fixture
def query() -> Query:
    return Query(text="How do I rotate storage account keys?")


@pytest.fixture
def make_orchestrator(settings, routing_config):
    """Build an orchestrator over fake sources with an in-memory cache."""

    def _make(
        sources: list[FakeSource],
        config: RoutingConfig | None = None,
        cache: ResponseCache | None = None,
        **setting_overrides,
    ) -> Orchestrator:
        cfg = config or routing_config
        # Sources a test does not care about are present but decline every query
        given = {s.name for s in sources}
        fillers = [FakeSource(name, handles=False) for name in cfg.sources if name not in given]
        registry = build_registry(cfg, [*sources, *fillers])
        run_settings = settings.model_copy(update=setting_overrides)
        return Orchestrator(
            config_manager=RoutingConfigManager(cfg, registry),
            cache=cache if cache is not None else ResponseCache(MemoryCacheBackend(max_entries=100)),
            metrics=MetricsStore(history_size=100),
            settings=run_settings,
        )

    return _make


@pytest.fixture
def registry_of():
    def _make(*sources: FakeSource) -> SourceRegistry:
        return SourceRegistry(sources)

    return _make


@pytest.fixture
def fake_source():
    return FakeSource
