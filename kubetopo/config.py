"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kubetopo.models.config import (
    APIConfig,
    ForceParams,
    LayoutConfig,
    LayoutDirection,
    LayoutStrategy,
    LogConfig,
    TopologyConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBETOPO_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    return val


def _validate_strategy(value: str) -> LayoutStrategy:
    try:
        return LayoutStrategy(value)
    except ValueError:
        valid = {s.value for s in LayoutStrategy}
        raise ValueError(f"Invalid layout strategy: {value}. Must be one of {valid}") from None


def _validate_direction(value: str) -> LayoutDirection:
    try:
        return LayoutDirection(value)
    except ValueError:
        valid = {d.value for d in LayoutDirection}
        raise ValueError(f"Invalid layout direction: {value}. Must be one of {valid}") from None


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def load_layout_config() -> LayoutConfig:
    """Layout defaults from KUBETOPO_* variables; unset values keep LayoutConfig defaults."""
    defaults = LayoutConfig()
    return LayoutConfig(
        strategy=_validate_strategy(_env("LAYOUT_STRATEGY", defaults.strategy.value)),
        direction=_validate_direction(_env("LAYOUT_DIRECTION", defaults.direction.value)),
        node_width=_env_float("NODE_WIDTH", defaults.node_width, min_val=1.0),
        node_height=_env_float("NODE_HEIGHT", defaults.node_height, min_val=1.0),
        nodesep=_env_float("NODESEP", defaults.nodesep, min_val=0.0),
        ranksep=_env_float("RANKSEP", defaults.ranksep, min_val=0.0),
        force=ForceParams(
            iterations=_env_int("FORCE_ITERATIONS", defaults.force.iterations, min_val=1, max_val=5000),
        ),
    )


def load_config() -> TopologyConfig:
    """Load configuration from KUBETOPO_* environment variables."""
    return TopologyConfig(
        cluster_name=_env("CLUSTER_NAME", "default"),
        layout=load_layout_config(),
        api=APIConfig(
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
            compute_timeout_seconds=_env_float("COMPUTE_TIMEOUT", 30.0, min_val=1.0),
            layout_cache_size=_env_int("LAYOUT_CACHE_SIZE", 128, min_val=1, max_val=10000),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
