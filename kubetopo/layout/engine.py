"""Layout strategy dispatch."""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import replace
from typing import TypeVar

from kubetopo.cancellation import CancellationToken
from kubetopo.errors import UnknownLayoutStrategyError
from kubetopo.graph.models import GraphEdge, GraphNode, NetworkTopology, TopologyGraph
from kubetopo.layout.force import force_directed_layout
from kubetopo.layout.geometric import circular_layout, grid_layout
from kubetopo.layout.hierarchical import hierarchical_layout
from kubetopo.models.config import LayoutConfig, LayoutStrategy
from kubetopo.observability.logging import get_logger
from kubetopo.observability.metrics import layout_duration_seconds

_log = get_logger("layout.engine")

_Topology = TypeVar("_Topology", TopologyGraph, NetworkTopology)


def resolve_strategy(strategy: LayoutStrategy | str | None, config: LayoutConfig) -> LayoutStrategy:
    if strategy is None:
        return config.strategy
    try:
        return LayoutStrategy(strategy)
    except ValueError:
        raise UnknownLayoutStrategyError(str(strategy)) from None


def apply_layout(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    strategy: LayoutStrategy | str | None = None,
    config: LayoutConfig | None = None,
    *,
    cancel: CancellationToken | None = None,
) -> list[GraphNode]:
    """Return copies of *nodes* with ``position`` set.

    Args:
        nodes:    Nodes to place; their order drives every strategy.
        edges:    Graph edges; ownership edges define hierarchical ranks.
        strategy: Overrides ``config.strategy`` when given.
        config:   Layout tunables, defaults to LayoutConfig().
        cancel:   Checked between force simulation steps.

    Raises:
        UnknownLayoutStrategyError: *strategy* names no known layout.
        CyclicOwnershipError: hierarchical layout over a cyclic ownership graph.
        OperationCancelled: the token fired during the force simulation.
    """
    config = config or LayoutConfig()
    chosen = resolve_strategy(strategy, config)

    started = time.perf_counter()
    match chosen:
        case LayoutStrategy.HIERARCHICAL:
            placed = hierarchical_layout(nodes, edges, config)
        case LayoutStrategy.FORCE:
            placed = force_directed_layout(nodes, edges, config, cancel)
        case LayoutStrategy.CIRCULAR:
            placed = circular_layout(nodes, config)
        case LayoutStrategy.GRID:
            placed = grid_layout(nodes, config)
    elapsed = time.perf_counter() - started

    layout_duration_seconds.labels(strategy=chosen.value).observe(elapsed)
    _log.debug("layout_applied", strategy=chosen.value, nodes=len(placed), duration_ms=round(elapsed * 1000, 2))
    return placed


def layout_topology(
    topology: _Topology,
    strategy: LayoutStrategy | str | None = None,
    config: LayoutConfig | None = None,
    *,
    cancel: CancellationToken | None = None,
) -> _Topology:
    """Position the nodes of a resource graph or network topology."""
    placed = apply_layout(topology.nodes, topology.edges, strategy, config, cancel=cancel)
    return replace(topology, nodes=tuple(placed))
