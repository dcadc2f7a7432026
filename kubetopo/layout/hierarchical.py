"""Rank-based hierarchical layout.

Ranks come from the ownership DAG (owns/manages edges): a node's rank is
the length of the longest path reaching it from any root.  Nodes that take
no part in ownership sit on rank 0.  Within a rank, nodes are reordered by
the barycenter of their neighbours on the adjacent rank, alternating
downward and upward sweeps, to reduce edge crossings.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

import networkx as nx

from kubetopo.errors import CyclicOwnershipError
from kubetopo.graph.models import OWNERSHIP_EDGES, GraphEdge, GraphNode, Position
from kubetopo.models.config import LayoutConfig


def ownership_graph(nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> nx.DiGraph:
    graph = nx.DiGraph()
    graph.add_nodes_from(n.id for n in nodes)
    for edge in edges:
        if edge.kind in OWNERSHIP_EDGES and edge.source in graph and edge.target in graph:
            graph.add_edge(edge.source, edge.target)
    return graph


def assign_ranks(nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> dict[str, int]:
    """Longest-path rank for every node.

    Raises:
        CyclicOwnershipError: the owns/manages subgraph is not a DAG.
    """
    graph = ownership_graph(nodes, edges)
    try:
        cycle = nx.find_cycle(graph)
    except nx.NetworkXNoCycle:
        pass
    else:
        raise CyclicOwnershipError([source for source, _ in cycle] + [cycle[0][0]])

    ranks = {node_id: 0 for node_id in graph}
    for node_id in nx.topological_sort(graph):
        for child in graph.successors(node_id):
            ranks[child] = max(ranks[child], ranks[node_id] + 1)
    return ranks


def _neighbours(edges: Sequence[GraphEdge], ranks: dict[str, int]) -> dict[str, list[str]]:
    adjacent: dict[str, list[str]] = {node_id: [] for node_id in ranks}
    for edge in edges:
        if edge.source not in ranks or edge.target not in ranks:
            continue
        if abs(ranks[edge.source] - ranks[edge.target]) == 1:
            adjacent[edge.source].append(edge.target)
            adjacent[edge.target].append(edge.source)
    return adjacent


def _reorder(layer: list[str], reference: list[str], adjacent: dict[str, list[str]]) -> list[str]:
    index = {node_id: i for i, node_id in enumerate(reference)}

    def barycenter(item: tuple[int, str]) -> float:
        position, node_id = item
        linked = [index[n] for n in adjacent[node_id] if n in index]
        return sum(linked) / len(linked) if linked else float(position)

    # sorted() is stable, so ties keep their current order
    return [node_id for _, node_id in sorted(enumerate(layer), key=barycenter)]


def order_layers(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    ranks: dict[str, int],
    passes: int,
) -> list[list[str]]:
    """Group nodes by rank (input order) and apply barycenter sweeps."""
    depth = max(ranks.values(), default=-1) + 1
    layers: list[list[str]] = [[] for _ in range(depth)]
    for node in nodes:
        layers[ranks[node.id]].append(node.id)

    adjacent = _neighbours(edges, ranks)
    for sweep in range(passes):
        if sweep % 2 == 0:
            for rank in range(1, depth):
                layers[rank] = _reorder(layers[rank], layers[rank - 1], adjacent)
        else:
            for rank in range(depth - 2, -1, -1):
                layers[rank] = _reorder(layers[rank], layers[rank + 1], adjacent)
    return layers


def hierarchical_layout(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    config: LayoutConfig,
) -> list[GraphNode]:
    ranks = assign_ranks(nodes, edges)
    layers = order_layers(nodes, edges, ranks, config.crossing_passes)
    if not layers:
        return []

    horizontal = config.direction.horizontal
    rank_step = (config.node_width if horizontal else config.node_height) + config.ranksep
    slot_step = (config.node_height if horizontal else config.node_width) + config.nodesep
    widest = max(len(layer) for layer in layers)
    last_rank = len(layers) - 1

    positions: dict[str, Position] = {}
    for rank, layer in enumerate(layers):
        along = (last_rank - rank if config.direction.inverted else rank) * rank_step + config.margin
        # centre each rank against the widest one
        offset = (widest - len(layer)) * slot_step / 2 + config.margin
        for slot, node_id in enumerate(layer):
            across = offset + slot * slot_step
            positions[node_id] = Position(x=along, y=across) if horizontal else Position(x=across, y=along)

    return [replace(node, position=positions[node.id]) for node in nodes]
