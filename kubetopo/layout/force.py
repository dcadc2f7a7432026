"""Force-directed layout as a bounded sequence of pure simulation steps.

Each step applies pairwise repulsion (``charge / d**2``), a spring force
along every edge (``spring * (d - link_distance)``) and a weak pull towards
the centre, then integrates damped velocities.  Per-step displacement is
capped so near-coincident nodes cannot fling each other off-canvas.

The simulation always starts from the circular layout and runs exactly
``iterations`` steps, which makes it deterministic and guarantees
termination.  Callers wanting an animation call ``force_step`` repeatedly
and draw each intermediate state.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, replace

from kubetopo.cancellation import CancellationToken, check
from kubetopo.graph.models import GraphEdge, GraphNode, Position
from kubetopo.layout.geometric import circle_geometry, circular_layout
from kubetopo.models.config import ForceParams, LayoutConfig

_MIN_DISTANCE_SQ = 1.0


@dataclass(frozen=True)
class ForceState:
    """Immutable simulation state; ``links`` are index pairs into ``ids``."""

    ids: tuple[str, ...]
    positions: tuple[tuple[float, float], ...]
    velocities: tuple[tuple[float, float], ...]
    links: tuple[tuple[int, int], ...]
    center: tuple[float, float]
    step: int = 0


def initial_state(nodes: Sequence[GraphNode], edges: Sequence[GraphEdge], config: LayoutConfig) -> ForceState:
    placed = circular_layout(nodes, config)
    index = {node.id: i for i, node in enumerate(nodes)}
    links = tuple(
        (index[e.source], index[e.target])
        for e in edges
        if e.source in index and e.target in index and e.source != e.target
    )
    cx, cy, _ = circle_geometry(len(nodes), config)
    return ForceState(
        ids=tuple(node.id for node in nodes),
        positions=tuple((n.position.x, n.position.y) for n in placed if n.position is not None),
        velocities=tuple((0.0, 0.0) for _ in nodes),
        links=links,
        center=(cx, cy),
    )


def force_step(state: ForceState, params: ForceParams) -> ForceState:
    """Advance the simulation by one step without mutating *state*."""
    count = len(state.ids)
    fx = [0.0] * count
    fy = [0.0] * count
    pos = state.positions

    for i in range(count):
        xi, yi = pos[i]
        for j in range(i + 1, count):
            dx = pos[j][0] - xi
            dy = pos[j][1] - yi
            dist_sq = dx * dx + dy * dy
            if dist_sq == 0.0:
                # coincident nodes: separate them along x, lower index to the left
                dx, dist_sq = 1.0, 1.0
            dist = math.sqrt(dist_sq)
            force = params.charge / max(dist_sq, _MIN_DISTANCE_SQ)
            ux, uy = dx / dist, dy / dist
            fx[i] -= ux * force
            fy[i] -= uy * force
            fx[j] += ux * force
            fy[j] += uy * force

    for source, target in state.links:
        dx = pos[target][0] - pos[source][0]
        dy = pos[target][1] - pos[source][1]
        dist = math.sqrt(dx * dx + dy * dy) or 1.0
        force = params.spring * (dist - params.link_distance)
        ux, uy = dx / dist, dy / dist
        fx[source] += ux * force
        fy[source] += uy * force
        fx[target] -= ux * force
        fy[target] -= uy * force

    cx, cy = state.center
    positions = []
    velocities = []
    for i in range(count):
        x, y = pos[i]
        vx = (state.velocities[i][0] + fx[i] + (cx - x) * params.gravity) * params.damping
        vy = (state.velocities[i][1] + fy[i] + (cy - y) * params.gravity) * params.damping
        speed = math.hypot(vx, vy)
        if speed > params.max_step:
            vx, vy = vx * params.max_step / speed, vy * params.max_step / speed
        velocities.append((vx, vy))
        positions.append((x + vx, y + vy))

    return replace(state, positions=tuple(positions), velocities=tuple(velocities), step=state.step + 1)


def force_directed_layout(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    config: LayoutConfig,
    cancel: CancellationToken | None = None,
) -> list[GraphNode]:
    if not nodes:
        return []
    state = initial_state(nodes, edges, config)
    for _ in range(config.force.iterations):
        check(cancel, "force_layout")
        state = force_step(state, config.force)
    return [replace(node, position=Position(*state.positions[i])) for i, node in enumerate(nodes)]
