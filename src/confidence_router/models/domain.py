"""Core domain objects used throughout the router."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class Urgency(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class QueryType(StrEnum):
    FACTUAL = "factual"
    PROCEDURAL = "procedural"
    DIAGNOSTIC = "diagnostic"
    COMPARATIVE = "comparative"
    RECOMMENDATION = "recommendation"
    GENERAL = "general"


class StrategyType(StrEnum):
    SEQUENTIAL = "sequential"
    PARALLEL_AGGREGATE = "parallel_aggregate"
    PARALLEL_RACE = "parallel_race"
    ADAPTIVE = "adaptive"


class ExecutionStatus(StrEnum):
    OK = "ok"
    ERROR = "error"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class QueryContext:
    previous_queries: tuple[str, ...] = ()
    urgency: Urgency | None = None
    domain: str | None = None
    expertise: str | None = None


@dataclass(frozen=True)
class Query:
    text: str
    requester_id: str = "anonymous"
    context: QueryContext = field(default_factory=QueryContext)


@dataclass
class SourceResult:
    source: str
    confidence: int
    answer: str
    metadata: dict = field(default_factory=dict)
    reasoning: str = ""
    latency_ms: float = 0.0

    def __post_init__(self) -> None:
        self.confidence = max(0, min(100, int(round(self.confidence))))


@dataclass(frozen=True)
class NormalizedResult:
    """A source result with its confidence recalibrated by historical accuracy."""

    result: SourceResult
    confidence: int

    @property
    def source(self) -> str:
        return self.result.source

    @property
    def answer(self) -> str:
        return self.result.answer

    @property
    def metadata(self) -> dict:
        return self.result.metadata

    @property
    def reasoning(self) -> str:
        return self.result.reasoning

    @property
    def latency_ms(self) -> float:
        return self.result.latency_ms

    @property
    def original_confidence(self) -> int:
        return self.result.confidence


@dataclass
class SourceExecution:
    source: str
    status: ExecutionStatus
    result: SourceResult | None = None
    latency_ms: float = 0.0
    error: str | None = None
    triggered_stop: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.OK and self.result is not None

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "status": str(self.status),
            "confidence": self.result.confidence if self.result else None,
            "latency_ms": round(self.latency_ms, 2),
            "error": self.error,
            "triggered_stop": self.triggered_stop,
        }


@dataclass(frozen=True)
class QueryClassification:
    urgency: Urgency
    complexity: int
    domain: str
    query_type: QueryType

    def to_dict(self) -> dict:
        return {
            "urgency": str(self.urgency),
            "complexity": self.complexity,
            "domain": self.domain,
            "query_type": str(self.query_type),
        }


@dataclass
class SourcePerformance:
    avg_confidence: float
    success_rate: float
    avg_latency_ms: float
    samples: int
    accuracy: float | None = None


@dataclass
class CacheEntry:
    key: str
    normalized_query: str
    payload: str  # serialized RouteResponse JSON
    expires_at: float  # epoch seconds

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass
class RouteTrace:
    trace_id: str
    query: str
    query_type: str
    strategy: str
    timestamp: datetime
    latency_ms: float
    confidence: int
    source: str
    conflict: bool
    reason_codes: list[str]
    executions: list[dict]
    cache_hit: bool = False
    partial: bool = False
    winning_sources: list[str] = field(default_factory=list)
