"""Health and metrics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from confidence_router.api.dependencies import get_orchestrator
from confidence_router.models.schemas import HealthResponse, MetricsSnapshot
from confidence_router.pipeline.orchestrator import Orchestrator

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(orchestrator: Orchestrator = Depends(get_orchestrator)) -> HealthResponse:
    return await orchestrator.health()


@router.get("/metrics", response_model=MetricsSnapshot)
async def metrics(orchestrator: Orchestrator = Depends(get_orchestrator)) -> MetricsSnapshot:
    return orchestrator.metrics_snapshot()
