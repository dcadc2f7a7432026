"""Position-independent layouts: circle and grid."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import replace

from kubetopo.graph.models import GraphNode, Position
from kubetopo.models.config import LayoutConfig


def circle_geometry(count: int, config: LayoutConfig) -> tuple[float, float, float]:
    """Centre x, centre y and radius of a circle holding *count* nodes.

    The circumference leaves ``node_width + nodesep`` of arc per node so
    neighbours never overlap.
    """
    radius = max(config.node_width, count * (config.node_width + config.nodesep) / (2 * math.pi))
    centre = config.margin + radius + config.node_width / 2
    return centre, centre, radius


def circular_layout(nodes: Sequence[GraphNode], config: LayoutConfig) -> list[GraphNode]:
    count = len(nodes)
    if count == 0:
        return []
    cx, cy, radius = circle_geometry(count, config)
    if count == 1:
        return [replace(nodes[0], position=Position(cx, cy))]

    placed = []
    for index, node in enumerate(nodes):
        angle = 2 * math.pi * index / count
        placed.append(replace(node, position=Position(cx + radius * math.cos(angle), cy + radius * math.sin(angle))))
    return placed


def grid_layout(nodes: Sequence[GraphNode], config: LayoutConfig) -> list[GraphNode]:
    if not nodes:
        return []
    columns = math.ceil(math.sqrt(len(nodes)))
    cell_w = config.node_width + config.nodesep
    cell_h = config.node_height + config.nodesep
    return [
        replace(
            node,
            position=Position(
                x=config.margin + (index % columns) * cell_w,
                y=config.margin + (index // columns) * cell_h,
            ),
        )
        for index, node in enumerate(nodes)
    ]
