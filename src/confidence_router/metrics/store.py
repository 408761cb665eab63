"""In-memory routing history: per-source performance, accuracy feedback, health.

All mutation happens synchronously between awaits, so counter updates are
atomic on the event loop and no locks are held across requests.
"""

from __future__ import annotations

from collections import Counter, deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from confidence_router.config import constants
from confidence_router.models.domain import ExecutionStatus, RouteTrace, SourcePerformance
from confidence_router.models.schemas import MetricsSnapshot, SourceHealth
from confidence_router.observability.logger import get_logger
from confidence_router.scoring.reason_codes import ReasonCode

logger = get_logger("metrics_store")

RECENT_WINDOW = 10
MAX_RECENT_FAILURES = 3


@dataclass
class _SourceCounters:
    samples: int = 0
    successes: int = 0
    failures: int = 0
    confidence_sum: int = 0
    latency_sum: float = 0.0
    recent: deque[bool] = field(default_factory=lambda: deque(maxlen=RECENT_WINDOW))

    def record(self, confidence: int | None, latency_ms: float, ok: bool, success: bool) -> None:
        self.samples += 1
        self.latency_sum += latency_ms
        if ok:
            self.confidence_sum += confidence or 0
        else:
            self.failures += 1
        if success:
            self.successes += 1
        self.recent.append(ok)

    @property
    def success_rate(self) -> float:
        return self.successes / self.samples if self.samples else 0.0

    @property
    def avg_latency_ms(self) -> float:
        return self.latency_sum / self.samples if self.samples else 0.0

    @property
    def avg_confidence(self) -> float:
        answered = self.samples - self.failures
        return self.confidence_sum / answered if answered else 0.0

    @property
    def recent_failures(self) -> int:
        return sum(1 for ok in self.recent if not ok)


class MetricsStore:
    def __init__(
        self,
        history_size: int = 1000,
        accuracy_priors: Mapping[str, float] | None = None,
        success_threshold: int = constants.SUCCESS_CONFIDENCE,
    ) -> None:
        self._history: deque[RouteTrace] = deque(maxlen=history_size)
        self._by_trace_id: dict[str, RouteTrace] = {}
        self._priors: dict[str, float] = dict(accuracy_priors or {})
        self._success_threshold = success_threshold

        self._by_type: dict[tuple[str, str], _SourceCounters] = {}
        self._by_source: dict[str, _SourceCounters] = {}
        self._feedback: dict[str, list[int]] = {}  # source -> [correct, total]

        self._routed = 0
        self._cache_hits = 0
        self._strategy_usage: Counter[str] = Counter()
        self._source_usage: Counter[str] = Counter()
        self._stopped_at: Counter[str] = Counter()
        self._conflicts = 0
        self._authority_tiebreaks = 0
        self._no_results = 0
        self._partial = 0

    def set_accuracy_priors(self, priors: Mapping[str, float]) -> None:
        self._priors = dict(priors)

    def record_request(self, trace: RouteTrace) -> None:
        self._routed += 1
        self._strategy_usage[trace.strategy] += 1
        for source in trace.winning_sources:
            self._source_usage[source] += 1

        if trace.conflict:
            self._conflicts += 1
        if ReasonCode.AUTHORITY_TIEBREAK in trace.reason_codes:
            self._authority_tiebreaks += 1
        if ReasonCode.NO_RESULTS in trace.reason_codes:
            self._no_results += 1
        if trace.partial:
            self._partial += 1

        for execution in trace.executions:
            status = execution.get("status")
            if status in (ExecutionStatus.SKIPPED, ExecutionStatus.CANCELLED):
                continue
            source = execution["source"]
            confidence = execution.get("confidence")
            ok = status == ExecutionStatus.OK
            success = ok and confidence is not None and confidence >= self._success_threshold
            latency = float(execution.get("latency_ms") or 0.0)

            key = (trace.query_type, source)
            if key not in self._by_type:
                self._by_type[key] = _SourceCounters()
            self._by_type[key].record(confidence, latency, ok, success)

            if source not in self._by_source:
                self._by_source[source] = _SourceCounters()
            self._by_source[source].record(confidence, latency, ok, success)

            if execution.get("triggered_stop"):
                self._stopped_at[source] += 1

        if len(self._history) == self._history.maxlen:
            evicted = self._history[0]
            self._by_trace_id.pop(evicted.trace_id, None)
        self._history.append(trace)
        self._by_trace_id[trace.trace_id] = trace

    def record_cache_hit(self) -> None:
        self._cache_hits += 1

    def record_feedback(self, trace_id: str, correct: bool, source: str | None = None) -> bool:
        """Attribute correctness feedback to a source. False if the trace is unknown."""
        trace = self._by_trace_id.get(trace_id)
        if trace is None:
            return False
        sources = [source] if source else trace.winning_sources
        for name in sources:
            counts = self._feedback.setdefault(name, [0, 0])
            counts[0] += int(correct)
            counts[1] += 1
        logger.info("feedback_recorded", trace_id=trace_id, correct=correct, sources=sources)
        return True

    def get_source_accuracy(self) -> dict[str, float]:
        """Observed feedback accuracy per source, falling back to configured priors."""
        accuracy = dict(self._priors)
        for source, (correct, total) in self._feedback.items():
            if total:
                accuracy[source] = correct / total
        return accuracy

    def get_performance(self, query_type: str) -> dict[str, SourcePerformance]:
        accuracy = self.get_source_accuracy()
        return {
            source: SourcePerformance(
                avg_confidence=counters.avg_confidence,
                success_rate=counters.success_rate,
                avg_latency_ms=counters.avg_latency_ms,
                samples=counters.samples,
                accuracy=accuracy.get(source),
            )
            for (qtype, source), counters in self._by_type.items()
            if qtype == query_type
        }

    def source_health(self) -> dict[str, SourceHealth]:
        health: dict[str, SourceHealth] = {}
        for source, counters in self._by_source.items():
            rate = counters.success_rate
            if counters.samples == 0:
                status = "unknown"
            elif rate >= 0.8 and counters.recent_failures < MAX_RECENT_FAILURES:
                status = "healthy"
            elif rate >= 0.5:
                status = "degraded"
            else:
                status = "unhealthy"
            health[source] = SourceHealth(
                status=status,
                success_rate=round(rate, 4),
                avg_latency_ms=round(counters.avg_latency_ms, 2),
                recent_failures=counters.recent_failures,
                samples=counters.samples,
            )
        return health

    @staticmethod
    def overall_status(health: Mapping[str, SourceHealth]) -> str:
        known = [h.status for h in health.values() if h.status != "unknown"]
        if not known or all(s == "healthy" for s in known):
            return "healthy"
        if all(s == "unhealthy" for s in known):
            return "unhealthy"
        return "degraded"

    def snapshot(self) -> MetricsSnapshot:
        history = list(self._history)
        total = self._routed + self._cache_hits
        return MetricsSnapshot(
            total_queries=total,
            cache_hits=self._cache_hits,
            cache_hit_rate=round(self._cache_hits / total, 4) if total else 0.0,
            avg_confidence=(
                round(sum(t.confidence for t in history) / len(history), 2) if history else 0.0
            ),
            avg_latency_ms=(
                round(sum(t.latency_ms for t in history) / len(history), 2) if history else 0.0
            ),
            strategy_usage=dict(self._strategy_usage),
            source_usage=dict(self._source_usage),
            stopped_at=dict(self._stopped_at),
            conflicts=self._conflicts,
            authority_tiebreaks=self._authority_tiebreaks,
            no_results=self._no_results,
            partial_results=self._partial,
        )

    def replay(self, traces: Iterable[RouteTrace]) -> int:
        """Warm counters from persisted traces, oldest first."""
        count = 0
        for trace in sorted(traces, key=lambda t: t.timestamp):
            if trace.cache_hit:
                self.record_cache_hit()
            else:
                self.record_request(trace)
            count += 1
        logger.info("metrics_replayed", traces=count)
        return count
