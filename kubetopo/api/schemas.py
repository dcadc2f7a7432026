"""Pydantic request/response models for the kubetopo REST API."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from pydantic import BaseModel, Field, field_validator

from kubetopo.graph.models import EdgeType, GraphEdge, GraphNode, NodeStatus
from kubetopo.models.config import LayoutConfig, LayoutDirection


class ErrorResponse(BaseModel):
    error: str
    detail: str
    context: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str


class LayoutOptions(BaseModel):
    """Per-request overrides of the server's LayoutConfig."""

    strategy: str | None = None
    direction: str | None = None
    node_width: float | None = Field(default=None, gt=0)
    node_height: float | None = Field(default=None, gt=0)
    nodesep: float | None = Field(default=None, ge=0)
    ranksep: float | None = Field(default=None, ge=0)
    iterations: int | None = Field(default=None, ge=1, le=5000)

    @field_validator("direction")
    @classmethod
    def _known_direction(cls, value: str | None) -> str | None:
        if value is not None:
            LayoutDirection(value)
        return value

    def apply_to(self, base: LayoutConfig) -> LayoutConfig:
        """Overlay the fields that were set onto *base*.  Strategy is resolved by the engine."""
        overrides: dict[str, Any] = {}
        if self.direction is not None:
            overrides["direction"] = LayoutDirection(self.direction)
        for name in ("node_width", "node_height", "nodesep", "ranksep"):
            value = getattr(self, name)
            if value is not None:
                overrides[name] = value
        if self.iterations is not None:
            overrides["force"] = replace(base.force, iterations=self.iterations)
        return replace(base, **overrides)


class FilterOptions(BaseModel):
    kinds: list[str] = Field(default_factory=list)
    namespaces: list[str] = Field(default_factory=list)
    statuses: list[NodeStatus] = Field(default_factory=list)
    search: str = ""


class GraphRequest(BaseModel):
    resources: list[dict[str, Any]]
    namespace: str | None = None
    layout: LayoutOptions = Field(default_factory=LayoutOptions)
    filters: FilterOptions | None = None


class NetworkRequest(BaseModel):
    pods: list[dict[str, Any]]
    services: list[dict[str, Any]] = Field(default_factory=list)
    policies: list[dict[str, Any]] = Field(default_factory=list)
    namespaces: list[dict[str, Any]] = Field(default_factory=list)
    namespace: str | None = None
    layout: LayoutOptions = Field(default_factory=LayoutOptions)


class NodeIn(BaseModel):
    id: str = Field(min_length=1)
    kind: str
    label: str = ""
    status: NodeStatus = NodeStatus.UNKNOWN
    namespace: str = ""
    labels: dict[str, str] = Field(default_factory=dict)

    def to_node(self) -> GraphNode:
        return GraphNode(
            id=self.id,
            kind=self.kind,
            label=self.label or self.id,
            status=self.status,
            namespace=self.namespace,
            labels=self.labels,
        )


class EdgeIn(BaseModel):
    id: str
    source: str
    target: str
    kind: EdgeType
    label: str | None = None

    def to_edge(self) -> GraphEdge:
        return GraphEdge(id=self.id, source=self.source, target=self.target, kind=self.kind, label=self.label)


class LayoutRequest(BaseModel):
    nodes: list[NodeIn]
    edges: list[EdgeIn] = Field(default_factory=list)
    layout: LayoutOptions = Field(default_factory=LayoutOptions)
