"""REST route handlers.

Graph building runs on a worker thread; connectivity and layout run through
``run_in_worker`` so the configured compute timeout cancels them cleanly.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Request

from kubetopo.api.schemas import GraphRequest, HealthResponse, LayoutRequest, NetworkRequest
from kubetopo.graph.builder import build_graph
from kubetopo.graph.filters import TopologyFilters, filter_graph
from kubetopo.graph.models import GraphEdge, GraphNode
from kubetopo.layout.cache import LayoutCache
from kubetopo.models.config import LayoutConfig, TopologyConfig
from kubetopo.policy.connectivity import build_network_topology
from kubetopo.worker import run_in_worker

router = APIRouter()


def _settings(request: Request) -> tuple[TopologyConfig, LayoutCache]:
    return request.app.state.config, request.app.state.layout_cache


async def _positioned(
    request: Request,
    nodes: tuple[GraphNode, ...] | list[GraphNode],
    edges: tuple[GraphEdge, ...] | list[GraphEdge],
    strategy: str | None,
    layout: LayoutConfig,
) -> list[GraphNode]:
    config, cache = _settings(request)
    return await run_in_worker(
        cache.layout,
        nodes,
        edges,
        strategy,
        layout,
        operation="layout",
        timeout=config.api.compute_timeout_seconds,
    )


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    from kubetopo import __version__

    return HealthResponse(version=__version__)


@router.post("/topology/graph")
async def topology_graph(body: GraphRequest, request: Request) -> dict[str, Any]:
    config, _ = _settings(request)
    graph = await asyncio.to_thread(
        build_graph,
        body.resources,
        body.namespace,
        cluster_name=config.cluster_name,
    )
    if body.filters is not None:
        graph = filter_graph(
            graph,
            TopologyFilters.create(
                kinds=body.filters.kinds,
                namespaces=body.filters.namespaces,
                statuses=body.filters.statuses,
                search=body.filters.search,
            ),
        )
    layout = body.layout.apply_to(config.layout)
    nodes = await _positioned(request, graph.nodes, graph.edges, body.layout.strategy, layout)
    payload = graph.to_dict()
    payload["nodes"] = [n.to_dict() for n in nodes]
    return payload


@router.post("/topology/network")
async def topology_network(body: NetworkRequest, request: Request) -> dict[str, Any]:
    config, _ = _settings(request)
    topology = await run_in_worker(
        build_network_topology,
        body.pods,
        body.services,
        body.policies,
        body.namespace,
        namespaces=body.namespaces,
        operation="connectivity",
        timeout=config.api.compute_timeout_seconds,
    )
    layout = body.layout.apply_to(config.layout)
    nodes = await _positioned(request, topology.nodes, topology.edges, body.layout.strategy, layout)
    payload = topology.to_dict()
    payload["nodes"] = [n.to_dict() for n in nodes]
    return payload


@router.post("/topology/layout")
async def topology_layout(body: LayoutRequest, request: Request) -> dict[str, Any]:
    config, _ = _settings(request)
    layout = body.layout.apply_to(config.layout)
    nodes = await _positioned(
        request,
        [n.to_node() for n in body.nodes],
        [e.to_edge() for e in body.edges],
        body.layout.strategy,
        layout,
    )
    return {"nodes": [n.to_dict() for n in nodes]}
