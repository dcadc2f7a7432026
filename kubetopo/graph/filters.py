"""Subsetting a built graph by kind, namespace, status and free-text search."""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass, field, replace

from kubetopo.graph.models import GraphNode, NodeStatus, TopologyGraph


@dataclass(frozen=True)
class TopologyFilters:
    """Empty collections impose no constraint."""

    kinds: frozenset[str] = field(default_factory=frozenset)
    namespaces: frozenset[str] = field(default_factory=frozenset)
    statuses: frozenset[NodeStatus] = field(default_factory=frozenset)
    search: str = ""

    @classmethod
    def create(
        cls,
        kinds: Collection[str] = (),
        namespaces: Collection[str] = (),
        statuses: Collection[str] = (),
        search: str = "",
    ) -> TopologyFilters:
        return cls(
            kinds=frozenset(k.lower() for k in kinds),
            namespaces=frozenset(namespaces),
            statuses=frozenset(NodeStatus(s) for s in statuses),
            search=search.strip().lower(),
        )

    def accepts(self, node: GraphNode) -> bool:
        if self.kinds and node.kind.lower() not in self.kinds:
            return False
        if self.namespaces and node.namespace not in self.namespaces:
            return False
        if self.statuses and node.status not in self.statuses:
            return False
        if self.search:
            haystack = [node.label.lower()]
            haystack += [f"{k}={v}".lower() for k, v in node.labels.items()]
            if not any(self.search in text for text in haystack):
                return False
        return True


def filter_graph(graph: TopologyGraph, filters: TopologyFilters) -> TopologyGraph:
    """Keep matching nodes and the edges whose endpoints both survive."""
    nodes = tuple(n for n in graph.nodes if filters.accepts(n))
    kept = {n.id for n in nodes}
    edges = tuple(e for e in graph.edges if e.source in kept and e.target in kept)
    warnings = tuple(w for w in graph.warnings if w.resource_id in kept)
    return replace(graph, nodes=nodes, edges=edges, warnings=warnings)
