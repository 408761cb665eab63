"""Holds the active routing config and swaps it atomically on reload."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from confidence_router.config.routing import RoutingConfig, load_routing_config
from confidence_router.observability.logger import get_logger

if TYPE_CHECKING:
    from confidence_router.sources.registry import SourceRegistry

logger = get_logger("config_manager")


@dataclass(frozen=True)
class RoutingSnapshot:
    config: RoutingConfig
    registry: SourceRegistry
    version: int


class RoutingConfigManager:
    def __init__(
        self,
        config: RoutingConfig,
        registry: SourceRegistry,
        path: str | Path | None = None,
    ) -> None:
        self._snapshot = RoutingSnapshot(config=config, registry=registry, version=1)
        self._path = path

    @property
    def current(self) -> RoutingSnapshot:
        """The snapshot a request should read once and keep for its lifetime."""
        return self._snapshot

    @property
    def path(self) -> str | Path | None:
        return self._path

    def reload(self, path: str | Path | None = None) -> RoutingSnapshot:
        """Parse, validate, then swap. A failure leaves the active snapshot untouched."""
        target = path or self._path
        new_config = load_routing_config(target)
        new_registry = self._snapshot.registry.extended(new_config)

        self._snapshot = RoutingSnapshot(
            config=new_config,
            registry=new_registry,
            version=self._snapshot.version + 1,
        )
        self._path = target
        logger.info(
            "routing_config_reloaded",
            path=str(target) if target else None,
            version=self._snapshot.version,
            sources=sorted(new_registry.names()),
        )
        return self._snapshot
