"""Declarative routing configuration: sources, strategies, aggregation thresholds.

Loaded from YAML and validated with pydantic. Every model is frozen so a
loaded config can be shared by concurrent requests as an immutable snapshot.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from confidence_router.config import constants
from confidence_router.exceptions import ConfigurationError, UnknownSourceError
from confidence_router.models.domain import StrategyType

REQUIRED_STRATEGIES = ("default", "fast", "critical", "race")


class SourceSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    # "external" sources are registered in code; other types are built from options
    type: str = "external"
    priority: int = Field(default=5, ge=1)
    historical_accuracy: float | None = Field(default=None, ge=0.0, le=1.0)
    authoritative: bool = False
    enabled: bool = True
    options: dict = Field(default_factory=dict)


class SourceStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    threshold: int = Field(default=0, ge=0, le=100)
    timeout_ms: int = Field(default=3000, gt=0)


class StrategyConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: StrategyType
    sources: list[SourceStep]
    timeout_ms: int = Field(default=5000, gt=0)
    race_threshold: int = Field(default=80, ge=0, le=100)
    grace_period_ms: int = Field(default=500, ge=0)

    @property
    def source_names(self) -> list[str]:
        return [step.name for step in self.sources]


class AggregationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    low_confidence_threshold: int = 70
    tie_margin: int = 5
    combine_similarity: float = 0.7
    conflict_similarity: float = 0.5
    conflict_confidence: int = 70
    conflict_penalty: float = 0.10
    recency_weight: float = 0.3
    authority_weight: float = 0.4
    specificity_weight: float = 0.3
    authoritative_sources: list[str] = Field(default_factory=lambda: ["ms_docs"])
    enable_conflict_detection: bool = True
    max_alternatives: int = 2


class ClassifierConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    urgency_keywords: list[str] = Field(default_factory=lambda: list(constants.URGENCY_KEYWORDS))
    technical_terms: list[str] = Field(default_factory=lambda: list(constants.TECHNICAL_TERMS))
    compound_markers: list[str] = Field(default_factory=lambda: list(constants.COMPOUND_MARKERS))
    domain_keywords: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in constants.DOMAIN_KEYWORDS.items()}
    )
    query_type_patterns: list[tuple[str, str]] = Field(
        default_factory=lambda: list(constants.QUERY_TYPE_PATTERNS)
    )


class RoutingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    sources: dict[str, SourceSpec]
    strategies: dict[str, StrategyConfig]
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    enable_early_stopping: bool = True

    @model_validator(mode="after")
    def _check_references(self) -> RoutingConfig:
        missing = [name for name in REQUIRED_STRATEGIES if name not in self.strategies]
        if missing:
            raise ValueError(f"Missing required strategies: {missing}")
        for strategy_name, strategy in self.strategies.items():
            for step in strategy.sources:
                if step.name not in self.sources:
                    raise ValueError(
                        f"Strategy '{strategy_name}' references undefined source '{step.name}'"
                    )
        return self

    def enabled_sources(self) -> list[str]:
        return [name for name, spec in self.sources.items() if spec.enabled]

    def source_priorities(self) -> dict[str, int]:
        return {name: spec.priority for name, spec in self.sources.items()}

    def accuracy_priors(self) -> dict[str, float]:
        return {
            name: spec.historical_accuracy
            for name, spec in self.sources.items()
            if spec.historical_accuracy is not None
        }

    def authoritative_sources(self) -> set[str]:
        flagged = {name for name, spec in self.sources.items() if spec.authoritative}
        return flagged | set(self.aggregation.authoritative_sources)

    def validate_sources(self, registered: set[str] | list[str]) -> None:
        """Fail fast when an enabled strategy step names a source nobody registered."""
        known = set(registered)
        for strategy_name, strategy in self.strategies.items():
            for step in strategy.sources:
                if not self.sources[step.name].enabled:
                    continue
                if step.name not in known:
                    raise UnknownSourceError(
                        f"Strategy '{strategy_name}' uses source '{step.name}' "
                        f"which is not registered. Registered: {sorted(known)}"
                    )


def default_routing_config() -> RoutingConfig:
    """Built-in config used when no YAML file is supplied."""
    return RoutingConfig.model_validate(
        {
            "sources": {
                "kb": {"type": "documents", "priority": 1, "historical_accuracy": 0.85},
                "llm": {
                    "type": "http",
                    "priority": 2,
                    "historical_accuracy": 0.80,
                    "enabled": False,
                },
                "ms_docs": {
                    "type": "http",
                    "priority": 3,
                    "historical_accuracy": 0.82,
                    "authoritative": True,
                    "enabled": False,
                },
                "web": {
                    "type": "http",
                    "priority": 4,
                    "historical_accuracy": 0.70,
                    "enabled": False,
                },
            },
            "strategies": {
                "default": {
                    "type": "sequential",
                    "sources": [
                        {"name": "kb", "threshold": 85, "timeout_ms": 1000},
                        {"name": "llm", "threshold": 75, "timeout_ms": 3000},
                        {"name": "web", "threshold": 0, "timeout_ms": 5000},
                    ],
                },
                "fast": {
                    "type": "sequential",
                    "sources": [
                        {"name": "kb", "threshold": 80, "timeout_ms": 500},
                        {"name": "llm", "threshold": 70, "timeout_ms": 2000},
                    ],
                },
                "critical": {
                    "type": "parallel_aggregate",
                    "timeout_ms": 5000,
                    "sources": [
                        {"name": "kb", "timeout_ms": 5000},
                        {"name": "llm", "timeout_ms": 5000},
                        {"name": "ms_docs", "timeout_ms": 5000},
                        {"name": "web", "timeout_ms": 5000},
                    ],
                },
                "race": {
                    "type": "parallel_race",
                    "timeout_ms": 5000,
                    "race_threshold": 80,
                    "grace_period_ms": 500,
                    "sources": [
                        {"name": "kb", "timeout_ms": 5000},
                        {"name": "llm", "timeout_ms": 5000},
                        {"name": "ms_docs", "timeout_ms": 5000},
                        {"name": "web", "timeout_ms": 5000},
                    ],
                },
            },
        }
    )


def load_routing_config(path: str | Path | None) -> RoutingConfig:
    if not path:
        return default_routing_config()

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Routing config not found: {config_path}")

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Routing config {config_path} must be a mapping")

    try:
        return RoutingConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid routing config {config_path}: {e}") from e
