"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from confidence_router.api.middleware import RequestTimingMiddleware
from confidence_router.api.routes_admin import router as admin_router
from confidence_router.api.routes_health import router as health_router
from confidence_router.api.routes_route import router as route_router
from confidence_router.cache.memory_backend import MemoryCacheBackend
from confidence_router.cache.response_cache import ResponseCache
from confidence_router.cache.sqlite_backend import SQLiteCacheBackend
from confidence_router.config.manager import RoutingConfigManager
from confidence_router.config.routing import load_routing_config
from confidence_router.config.settings import Settings
from confidence_router.metrics.store import MetricsStore
from confidence_router.observability.logger import get_logger, setup_logging
from confidence_router.pipeline.orchestrator import Orchestrator
from confidence_router.protocols.cache import CacheBackend
from confidence_router.protocols.source import InformationSource
from confidence_router.sources.registry import build_registry
from confidence_router.storage.sqlite_trace_store import SQLiteTraceStore

logger = get_logger("app")


def create_app(
    settings: Settings | None = None,
    sources: Iterable[InformationSource] = (),
) -> FastAPI:
    """Build the app. ``sources`` are code-registered adapters (routing ``type: external``)."""
    settings = settings or Settings()
    external_sources = list(sources)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level, settings.log_json)

        # Ensure data directories exist
        for path in [settings.trace_db_path, settings.cache_db_path]:
            Path(path).parent.mkdir(parents=True, exist_ok=True)

        # Routing config + sources (fatal on unknown sources)
        routing_config = load_routing_config(settings.routing_config_path)
        registry = build_registry(routing_config, external_sources)
        config_manager = RoutingConfigManager(
            routing_config, registry, path=settings.routing_config_path or None
        )

        # Storage
        trace_store = SQLiteTraceStore(settings.trace_db_path)
        await trace_store.initialize()

        # Cache
        backend: CacheBackend
        if settings.cache_backend == "sqlite":
            sqlite_backend = SQLiteCacheBackend(settings.cache_db_path)
            await sqlite_backend.initialize()
            backend = sqlite_backend
        else:
            backend = MemoryCacheBackend(max_entries=settings.cache_max_entries)
        cache = ResponseCache(backend)

        # Metrics
        metrics = MetricsStore(history_size=settings.metrics_history_size)

        orchestrator = Orchestrator(
            config_manager=config_manager,
            cache=cache,
            metrics=metrics,
            settings=settings,
            trace_store=trace_store,
        )
        replayed = await orchestrator.warm_up()

        app.state.orchestrator = orchestrator
        app.state.settings = settings

        logger.info(
            "startup_complete",
            sources=registry.names(),
            cache_backend=settings.cache_backend,
            replayed_traces=replayed,
        )

        yield

        await orchestrator.drain()
        await config_manager.current.registry.aclose()
        logger.info("shutdown_complete")

    app = FastAPI(
        title="Confidence Router",
        version="1.0.0",
        description="Confidence-based routing across multiple answer sources",
        lifespan=lifespan,
    )
    app.add_middleware(RequestTimingMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(route_router, tags=["route"])
    app.include_router(admin_router, tags=["admin"])
    return app
