"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Routing config (YAML). Empty means built-in defaults.
    routing_config_path: str = ""

    # Global ceiling on a single route call
    global_timeout_ms: int = 10000

    # Normalization
    default_source_accuracy: float = 0.8

    # Adaptive routing
    adaptive_routing: bool = False
    adaptive_dominance_threshold: float = 0.8
    adaptive_threshold_scale: float = 0.9
    adaptive_min_samples: int = 5

    # Response cache
    cache_backend: Literal["memory", "sqlite"] = "memory"
    cache_db_path: str = "data/response_cache.db"
    cache_max_entries: int = 1000
    cache_salt_by_sources: bool = False

    # Metrics / history
    metrics_history_size: int = 1000
    metrics_warmup_traces: int = 500

    # Storage paths
    trace_db_path: str = "data/route_traces.db"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_file": ".env", "env_prefix": "ROUTER_"}
