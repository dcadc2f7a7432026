"""Data structures for the resource topology graph."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from kubetopo.models.policy import ConnectionRecord
from kubetopo.models.quality import DataQualityWarning


class EdgeType(StrEnum):
    """Types of relationships between Kubernetes resources."""

    OWNS = "owns"  # controller owner reference, e.g. Deployment -> ReplicaSet
    MANAGES = "manages"  # autoscaler scale target
    EXPOSES = "exposes"  # Service selector -> Pod
    MOUNTS = "mounts"  # Pod -> ConfigMap / Secret / PVC
    ROUTES = "routes"  # Ingress backend -> Service
    ALLOWS = "allows"
    DENIES = "denies"


OWNERSHIP_EDGES = frozenset({EdgeType.OWNS, EdgeType.MANAGES})


class NodeStatus(StrEnum):
    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class GraphNode:
    """A node in the topology graph representing one resource.

    ``position`` is None until the layout engine places the node.
    """

    id: str
    kind: str
    label: str
    status: NodeStatus = NodeStatus.UNKNOWN
    namespace: str = ""
    labels: Mapping[str, str] = field(default_factory=dict)
    resource: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)
    position: Position | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "kind": self.kind,
            "label": self.label,
            "status": self.status.value,
            "namespace": self.namespace,
            "labels": dict(self.labels),
            "resource": self.resource,
            "position": None if self.position is None else {"x": self.position.x, "y": self.position.y},
        }


@dataclass(frozen=True)
class GraphEdge:
    """A directed, typed edge.  Endpoints are node ids, never node objects."""

    id: str
    source: str
    target: str
    kind: EdgeType
    label: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "kind": self.kind.value,
            "label": self.label,
        }


@dataclass(frozen=True)
class GraphMetadata:
    cluster_name: str = "default"
    namespace: str | None = None
    resource_count: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "cluster_name": self.cluster_name,
            "namespace": self.namespace,
            "resource_count": self.resource_count,
        }


@dataclass(frozen=True)
class TopologyGraph:
    """Result of building the resource graph."""

    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()
    warnings: tuple[DataQualityWarning, ...] = ()
    metadata: GraphMetadata = field(default_factory=GraphMetadata)

    def to_dict(self) -> dict[str, object]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "warnings": [w.to_dict() for w in self.warnings],
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class NetworkTopology:
    """Pods, services and policies as nodes, plus per-pair connection records."""

    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()
    connections: tuple[ConnectionRecord, ...] = ()
    warnings: tuple[DataQualityWarning, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "connections": [c.to_dict() for c in self.connections],
            "warnings": [w.to_dict() for w in self.warnings],
        }
