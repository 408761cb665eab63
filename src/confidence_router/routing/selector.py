"""Map a query classification onto one of the configured strategies."""

from __future__ import annotations

from dataclasses import dataclass

from confidence_router.config.routing import RoutingConfig, StrategyConfig
from confidence_router.exceptions import UnknownStrategyError
from confidence_router.models.domain import QueryClassification, StrategyType, Urgency

ADAPTIVE = "adaptive"


@dataclass(frozen=True)
class StrategySelection:
    name: str  # key into RoutingConfig.strategies, or "adaptive"
    type: StrategyType
    config: StrategyConfig


class StrategySelector:
    def __init__(self, adaptive_routing: bool = False) -> None:
        self._adaptive_routing = adaptive_routing

    def select(
        self,
        classification: QueryClassification,
        config: RoutingConfig,
        override: str | None = None,
    ) -> StrategySelection:
        if override is not None:
            return self._by_name(override, config)

        if classification.urgency == Urgency.CRITICAL:
            return self._by_name("critical", config)
        if classification.complexity < 5:
            return self._by_name("fast", config)
        if classification.complexity > 7:
            return self._by_name("race", config)
        if self._adaptive_routing:
            return self._by_name(ADAPTIVE, config)
        return self._by_name("default", config)

    @staticmethod
    def _by_name(name: str, config: RoutingConfig) -> StrategySelection:
        if name == ADAPTIVE and ADAPTIVE not in config.strategies:
            return StrategySelection(
                name=ADAPTIVE, type=StrategyType.ADAPTIVE, config=config.strategies["default"]
            )
        strategy = config.strategies.get(name)
        if strategy is None:
            raise UnknownStrategyError(
                f"Unknown strategy '{name}'. Configured: {sorted(config.strategies)}"
            )
        return StrategySelection(name=name, type=strategy.type, config=strategy)
