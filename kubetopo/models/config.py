"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class LayoutStrategy(StrEnum):
    """Node placement algorithms offered by the layout engine."""

    HIERARCHICAL = "hierarchical"
    FORCE = "force"
    CIRCULAR = "circular"
    GRID = "grid"

    @classmethod
    def _missing_(cls, value: object) -> LayoutStrategy | None:
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in ("force-directed", "force_directed", "forcedirected"):
                return cls.FORCE
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class LayoutDirection(StrEnum):
    """Rank axis orientation for the hierarchical layout."""

    TOP_BOTTOM = "TB"
    BOTTOM_TOP = "BT"
    LEFT_RIGHT = "LR"
    RIGHT_LEFT = "RL"

    @classmethod
    def _missing_(cls, value: object) -> LayoutDirection | None:
        if not isinstance(value, str):
            return None
        aliases = {
            "tb": cls.TOP_BOTTOM,
            "top-bottom": cls.TOP_BOTTOM,
            "bt": cls.BOTTOM_TOP,
            "bottom-top": cls.BOTTOM_TOP,
            "lr": cls.LEFT_RIGHT,
            "left-right": cls.LEFT_RIGHT,
            "rl": cls.RIGHT_LEFT,
            "right-left": cls.RIGHT_LEFT,
        }
        return aliases.get(value.strip().lower())

    @property
    def horizontal(self) -> bool:
        return self in (LayoutDirection.LEFT_RIGHT, LayoutDirection.RIGHT_LEFT)

    @property
    def inverted(self) -> bool:
        return self in (LayoutDirection.BOTTOM_TOP, LayoutDirection.RIGHT_LEFT)


@dataclass(frozen=True)
class ForceParams:
    """Tunables for the force-directed simulation."""

    iterations: int = 300
    link_distance: float = 150.0
    charge: float = 30000.0
    spring: float = 0.01
    gravity: float = 0.01
    damping: float = 0.85
    max_step: float = 50.0


@dataclass(frozen=True)
class LayoutConfig:
    """Layout engine configuration."""

    strategy: LayoutStrategy = LayoutStrategy.HIERARCHICAL
    direction: LayoutDirection = LayoutDirection.TOP_BOTTOM
    node_width: float = 200.0
    node_height: float = 120.0
    nodesep: float = 150.0
    ranksep: float = 200.0
    margin: float = 50.0
    crossing_passes: int = 4
    force: ForceParams = field(default_factory=ForceParams)

    def to_dict(self) -> dict[str, object]:
        return {
            "strategy": self.strategy.value,
            "direction": self.direction.value,
            "node_width": self.node_width,
            "node_height": self.node_height,
            "nodesep": self.nodesep,
            "ranksep": self.ranksep,
            "margin": self.margin,
            "crossing_passes": self.crossing_passes,
            "force": {
                "iterations": self.force.iterations,
                "link_distance": self.force.link_distance,
                "charge": self.force.charge,
                "spring": self.force.spring,
                "gravity": self.force.gravity,
                "damping": self.force.damping,
                "max_step": self.force.max_step,
            },
        }


@dataclass
class APIConfig:
    """REST API configuration."""

    port: int = 8080
    compute_timeout_seconds: float = 30.0
    layout_cache_size: int = 128


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class TopologyConfig:
    """Top-level kubetopo configuration."""

    cluster_name: str = "default"
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
