"""Resource graph construction.

Turns a snapshot of Kubernetes objects into nodes (one per resource, in
input order) and typed edges.  Edges are inferred in a fixed pass order so
that identical input always yields identical output:

    owns     -- metadata.ownerReferences (Deployment -> ReplicaSet -> Pod)
    manages  -- HorizontalPodAutoscaler scaleTargetRef -> workload
    exposes  -- Service spec.selector matching Pod labels
    mounts   -- Pod volumes and env sources -> ConfigMap / Secret / PVC
    routes   -- Ingress backends -> Service

A dangling owner reference still produces its node; the missing edge is
reported as an ``orphaned_resource`` warning rather than an error.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from kubetopo.graph.models import (
    EdgeType,
    GraphEdge,
    GraphMetadata,
    GraphNode,
    TopologyGraph,
)
from kubetopo.graph.status import infer_status
from kubetopo.models.policy import LabelSelector
from kubetopo.models.quality import DataQualityWarning, WarningCode
from kubetopo.models.resources import (
    AutoscalerResource,
    IngressResource,
    PodResource,
    Resource,
    ServiceResource,
    parse_resource,
)
from kubetopo.observability.logging import get_logger, record_warning
from kubetopo.observability.metrics import graph_builds_total
from kubetopo.policy.selector import matches

_log = get_logger("graph.builder")


def _to_node(resource: Resource) -> GraphNode:
    return GraphNode(
        id=resource.id,
        kind=resource.kind,
        label=resource.name or "Unnamed",
        status=infer_status(resource),
        namespace=resource.namespace,
        labels=dict(resource.labels),
        resource=resource.raw,
    )


class _EdgeCollector:
    """Ordered edge list with unique ids.

    A second edge with the same id is folded into the first; for labelled
    edges (several Ingress paths to one Service, several volumes from one
    Secret) the labels are joined.
    """

    def __init__(self, node_ids: set[str]) -> None:
        self._node_ids = node_ids
        self._edges: list[GraphEdge] = []
        self._positions: dict[str, int] = {}

    def add(self, source: str, target: str, kind: EdgeType, label: str | None = None) -> None:
        if source not in self._node_ids or target not in self._node_ids:
            return
        edge_id = f"{source}-{target}-{kind.value}"
        existing = self._positions.get(edge_id)
        if existing is None:
            self._positions[edge_id] = len(self._edges)
            self._edges.append(GraphEdge(id=edge_id, source=source, target=target, kind=kind, label=label))
            return
        previous = self._edges[existing]
        if label and previous.label != label:
            merged = f"{previous.label}, {label}" if previous.label else label
            self._edges[existing] = GraphEdge(
                id=edge_id, source=source, target=target, kind=kind, label=merged
            )

    def edges(self) -> tuple[GraphEdge, ...]:
        return tuple(self._edges)


def _owner_edges(
    resources: list[Resource],
    edges: _EdgeCollector,
    node_ids: set[str],
    warnings: list[DataQualityWarning],
) -> None:
    for resource in resources:
        for owner in resource.owner_references:
            if owner.uid in node_ids:
                edges.add(owner.uid, resource.id, EdgeType.OWNS)
                continue
            warnings.append(
                record_warning(
                    _log,
                    DataQualityWarning(
                        code=WarningCode.ORPHANED_RESOURCE,
                        resource_id=resource.id,
                        message=(
                            f"{resource.kind} {resource.namespace}/{resource.name} references owner "
                            f"{owner.kind} {owner.name} ({owner.uid}) which is not in the snapshot"
                        ),
                    ),
                )
            )


def _autoscaler_edges(
    resources: list[Resource],
    edges: _EdgeCollector,
    by_name: Mapping[tuple[str, str, str], str],
) -> None:
    for resource in resources:
        if not isinstance(resource, AutoscalerResource):
            continue
        target = by_name.get((resource.target_kind, resource.namespace, resource.target_name))
        if target is not None:
            edges.add(resource.id, target, EdgeType.MANAGES)


def _service_edges(resources: list[Resource], pods: list[PodResource], edges: _EdgeCollector) -> None:
    for resource in resources:
        # A Service without a selector has manually managed endpoints and
        # selects no pods, unlike an empty LabelSelector.
        if not isinstance(resource, ServiceResource) or not resource.selector:
            continue
        selector = LabelSelector(match_labels=resource.selector)
        for pod in pods:
            if pod.namespace == resource.namespace and matches(pod.labels, selector):
                edges.add(resource.id, pod.id, EdgeType.EXPOSES)


def _mount_edges(
    pods: list[PodResource],
    edges: _EdgeCollector,
    by_name: Mapping[tuple[str, str, str], str],
) -> None:
    for pod in pods:
        for ref in pod.volume_refs:
            target = by_name.get((ref.kind, pod.namespace, ref.name))
            if target is None:
                _log.debug("mount_target_missing", pod=pod.id, kind=ref.kind, name=ref.name)
                continue
            edges.add(pod.id, target, EdgeType.MOUNTS, ref.label or None)


def _route_edges(
    resources: list[Resource],
    edges: _EdgeCollector,
    by_name: Mapping[tuple[str, str, str], str],
) -> None:
    for resource in resources:
        if not isinstance(resource, IngressResource):
            continue
        for backend in resource.backends:
            target = by_name.get(("Service", resource.namespace, backend.service_name))
            if target is not None:
                edges.add(resource.id, target, EdgeType.ROUTES, backend.path)


def build_graph(
    resources: Iterable[Mapping[str, Any] | Resource],
    namespace: str | None = None,
    *,
    cluster_name: str = "default",
) -> TopologyGraph:
    """Build the resource topology graph for a snapshot.

    Args:
        resources:    Kubernetes-shaped dicts or parsed Resource variants.
        namespace:    When set, namespaced resources outside it are dropped;
                      cluster-scoped resources are kept.
        cluster_name: Recorded in the graph metadata.

    Returns:
        TopologyGraph with nodes in input order and edges in pass order.
    """
    parsed = [parse_resource(r) for r in resources]
    if namespace:
        parsed = [r for r in parsed if not r.namespace or r.namespace == namespace]

    warnings: list[DataQualityWarning] = []
    nodes: list[GraphNode] = []
    unique: list[Resource] = []
    node_ids: set[str] = set()
    for resource in parsed:
        if resource.id in node_ids:
            _log.warning("duplicate_resource_id", resource_id=resource.id, kind=resource.kind)
            continue
        node_ids.add(resource.id)
        unique.append(resource)
        nodes.append(_to_node(resource))
        if isinstance(resource, PodResource) and not resource.labels:
            warnings.append(
                record_warning(
                    _log,
                    DataQualityWarning(
                        code=WarningCode.MISSING_LABELS,
                        resource_id=resource.id,
                        message=(
                            f"Pod {resource.namespace}/{resource.name} has no labels; "
                            "only empty or DoesNotExist selectors can target it"
                        ),
                    ),
                )
            )

    by_name: dict[tuple[str, str, str], str] = {}
    for resource in unique:
        by_name.setdefault((resource.kind, resource.namespace, resource.name), resource.id)
    pods = [r for r in unique if isinstance(r, PodResource)]

    edges = _EdgeCollector(node_ids)
    _owner_edges(unique, edges, node_ids, warnings)
    _autoscaler_edges(unique, edges, by_name)
    _service_edges(unique, pods, edges)
    _mount_edges(pods, edges, by_name)
    _route_edges(unique, edges, by_name)

    graph = TopologyGraph(
        nodes=tuple(nodes),
        edges=edges.edges(),
        warnings=tuple(warnings),
        metadata=GraphMetadata(cluster_name=cluster_name, namespace=namespace, resource_count=len(parsed)),
    )
    graph_builds_total.inc()
    _log.info(
        "graph_built",
        namespace=namespace,
        nodes=len(graph.nodes),
        edges=len(graph.edges),
        warnings=len(graph.warnings),
    )
    return graph
