"""Resource topology graph.

Builds nodes and typed edges from a snapshot of Kubernetes objects
(ownerReferences, HPA scale targets, Service selectors, Pod volume and env
references, Ingress backends) and filters the result for display.
"""

from kubetopo.graph.builder import build_graph
from kubetopo.graph.filters import TopologyFilters, filter_graph
from kubetopo.graph.models import (
    EdgeType,
    GraphEdge,
    GraphMetadata,
    GraphNode,
    NetworkTopology,
    NodeStatus,
    Position,
    TopologyGraph,
)
from kubetopo.graph.status import infer_status

__all__ = [
    "EdgeType",
    "GraphEdge",
    "GraphMetadata",
    "GraphNode",
    "NetworkTopology",
    "NodeStatus",
    "Position",
    "TopologyFilters",
    "TopologyGraph",
    "build_graph",
    "filter_graph",
    "infer_status",
]
