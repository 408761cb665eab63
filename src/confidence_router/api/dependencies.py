"""FastAPI dependency injection helpers."""

from __future__ import annotations

from fastapi import Request

from confidence_router.pipeline.orchestrator import Orchestrator


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator
