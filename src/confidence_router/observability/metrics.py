"""Metric recording helpers for route traces."""

from __future__ import annotations

from confidence_router.models.domain import ExecutionStatus, SourceExecution
from confidence_router.observability.logger import get_logger

logger = get_logger("metrics")


def log_source_result(trace_id: str | None, execution: SourceExecution) -> None:
    fields = {
        "trace_id": trace_id,
        "source": execution.source,
        "status": str(execution.status),
        "latency_ms": round(execution.latency_ms, 2),
    }
    if execution.result is not None:
        fields["confidence"] = execution.result.confidence
    if execution.error:
        fields["error"] = execution.error
    if execution.status in (ExecutionStatus.ERROR, ExecutionStatus.TIMEOUT):
        logger.warning("source_result", **fields)
    else:
        logger.info("source_result", **fields)


def log_route_metrics(
    trace_id: str,
    strategy: str,
    confidence: int,
    source: str,
    sources_called: int,
    conflict: bool,
    partial: bool,
) -> None:
    logger.info(
        "route_metrics",
        trace_id=trace_id,
        strategy=strategy,
        confidence=confidence,
        source=source,
        sources_called=sources_called,
        conflict=conflict,
        partial=partial,
    )

