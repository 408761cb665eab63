"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from confidence_router.models.domain import Query, QueryContext, Urgency


class QueryContextModel(BaseModel):
    previous_queries: list[str] = Field(default_factory=list)
    urgency: Literal["low", "normal", "high", "critical"] | None = None
    domain: str | None = None
    expertise: str | None = None


class RouteRequest(BaseModel):
    query: str = Field(min_length=1)
    requester_id: str = "anonymous"
    context: QueryContextModel = Field(default_factory=QueryContextModel)
    bypass_cache: bool = False
    strategy: str | None = None

    def to_query(self) -> Query:
        return Query(
            text=self.query,
            requester_id=self.requester_id,
            context=QueryContext(
                previous_queries=tuple(self.context.previous_queries),
                urgency=Urgency(self.context.urgency) if self.context.urgency else None,
                domain=self.context.domain,
                expertise=self.context.expertise,
            ),
        )


class Alternative(BaseModel):
    answer: str
    source: str
    confidence: int


class ExecutionSummary(BaseModel):
    source: str
    status: str
    confidence: int | None = None
    latency_ms: float = 0.0
    error: str | None = None
    triggered_stop: bool = False


class RouteDebug(BaseModel):
    trace_id: str
    strategy: str
    classification: dict
    executions: list[ExecutionSummary]
    latency_ms: float
    partial: bool = False


class RouteResponse(BaseModel):
    answer: str
    confidence: int = Field(ge=0, le=100)
    source: str
    sources: list[str] = Field(default_factory=list)
    alternatives: list[Alternative] = Field(default_factory=list)
    warning: str | None = None
    conflict: bool = False
    reasoning: str = ""
    reasons: list[str] = Field(default_factory=list)
    metadata: dict = Field(default_factory=dict)
    debug: RouteDebug | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FeedbackRequest(BaseModel):
    trace_id: str
    correct: bool
    source: str | None = None


class FeedbackResponse(BaseModel):
    accepted: bool


class InvalidateRequest(BaseModel):
    pattern: str = Field(min_length=1)


class InvalidateResponse(BaseModel):
    removed: int


class SourceHealth(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy", "unknown"]
    success_rate: float
    avg_latency_ms: float
    recent_failures: int
    samples: int


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    sources: dict[str, SourceHealth]
    cache_entries: int | None  # None when the cache backend cannot be read
    config_version: int


class MetricsSnapshot(BaseModel):
    total_queries: int
    cache_hits: int
    cache_hit_rate: float
    avg_confidence: float
    avg_latency_ms: float
    strategy_usage: dict[str, int]
    source_usage: dict[str, int]
    stopped_at: dict[str, int]
    conflicts: int
    authority_tiebreaks: int
    no_results: int
    partial_results: int


class ConfigReloadRequest(BaseModel):
    path: str | None = None


class ConfigSummary(BaseModel):
    version: int
    sources: list[str]
    strategies: list[str]
    config: dict
