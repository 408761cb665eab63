"""Operational endpoints: feedback, cache invalidation, routing config."""

from __future__ import annotations

import re

from fastapi import APIRouter, Depends, HTTPException

from confidence_router.api.dependencies import get_orchestrator
from confidence_router.config.manager import RoutingSnapshot
from confidence_router.exceptions import CacheError, ConfigurationError
from confidence_router.models.schemas import (
    ConfigReloadRequest,
    ConfigSummary,
    FeedbackRequest,
    FeedbackResponse,
    InvalidateRequest,
    InvalidateResponse,
)
from confidence_router.pipeline.orchestrator import Orchestrator

router = APIRouter()


def _summary(snapshot: RoutingSnapshot) -> ConfigSummary:
    return ConfigSummary(
        version=snapshot.version,
        sources=snapshot.registry.names(),
        strategies=sorted(snapshot.config.strategies),
        config=snapshot.config.model_dump(mode="json"),
    )


@router.post("/feedback", response_model=FeedbackResponse)
async def feedback(
    request: FeedbackRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> FeedbackResponse:
    accepted = orchestrator.record_feedback(request.trace_id, request.correct, request.source)
    if not accepted:
        raise HTTPException(status_code=404, detail=f"Unknown trace '{request.trace_id}'")
    return FeedbackResponse(accepted=True)


@router.post("/cache/invalidate", response_model=InvalidateResponse)
async def invalidate_cache(
    request: InvalidateRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> InvalidateResponse:
    try:
        removed = await orchestrator.invalidate_cache(request.pattern)
    except re.error as e:
        raise HTTPException(status_code=400, detail=f"Invalid pattern: {e}")
    except CacheError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return InvalidateResponse(removed=removed)


@router.get("/config", response_model=ConfigSummary)
async def get_config(orchestrator: Orchestrator = Depends(get_orchestrator)) -> ConfigSummary:
    return _summary(orchestrator.current_config())


@router.post("/config/reload", response_model=ConfigSummary)
async def reload_config(
    request: ConfigReloadRequest | None = None,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ConfigSummary:
    path = request.path if request else None
    try:
        snapshot = orchestrator.reload_config(path)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _summary(snapshot)
