"""Layout engine: hierarchical, force-directed, circular and grid placement."""

from kubetopo.layout.cache import LayoutCache, layout_key
from kubetopo.layout.engine import apply_layout, layout_topology, resolve_strategy
from kubetopo.layout.force import ForceState, force_directed_layout, force_step, initial_state
from kubetopo.layout.geometric import circle_geometry, circular_layout, grid_layout
from kubetopo.layout.hierarchical import assign_ranks, hierarchical_layout, order_layers

__all__ = [
    "ForceState",
    "LayoutCache",
    "apply_layout",
    "assign_ranks",
    "circle_geometry",
    "circular_layout",
    "force_directed_layout",
    "force_step",
    "grid_layout",
    "hierarchical_layout",
    "initial_state",
    "layout_key",
    "layout_topology",
    "order_layers",
    "resolve_strategy",
]
