"""Routing endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from confidence_router.api.dependencies import get_orchestrator
from confidence_router.exceptions import RouterError, UnknownStrategyError
from confidence_router.models.schemas import RouteRequest, RouteResponse
from confidence_router.pipeline.orchestrator import Orchestrator, RouteOptions

router = APIRouter()


@router.post("/route", response_model=RouteResponse)
async def route(
    request: RouteRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> RouteResponse:
    options = RouteOptions(bypass_cache=request.bypass_cache, strategy=request.strategy)
    try:
        return await orchestrator.route(request.to_query(), options)
    except UnknownStrategyError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except RouterError as e:
        raise HTTPException(status_code=500, detail=str(e))
