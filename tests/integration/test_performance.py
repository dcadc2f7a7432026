"""Performance benchmark tests for kubetopo.

All tests are marked with @pytest.mark.performance. They enforce hard
wall-clock budgets so graph building, connectivity and layout stay
interactive for namespace-sized snapshots.
"""

from __future__ import annotations

import time
from typing import Any

import pytest

from kubetopo.cancellation import CancellationToken
from kubetopo.errors import OperationCancelled
from kubetopo.graph.builder import build_graph
from kubetopo.layout.engine import apply_layout
from kubetopo.models.config import ForceParams, LayoutConfig
from kubetopo.policy.connectivity import compute_connectivity

from conftest import deployment_stack, make_pod, make_policy

pytestmark = [pytest.mark.integration, pytest.mark.performance]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _large_snapshot(apps: int = 50, pods_per_app: int = 3) -> list[dict[str, Any]]:
    resources: list[dict[str, Any]] = []
    for i in range(apps):
        resources.extend(deployment_stack(f"ns-{i % 5}-{i}", pods=pods_per_app))
    return resources


def _pods(count: int) -> list[dict[str, Any]]:
    return [
        make_pod(f"pod-{i}", labels={"app": f"app-{i % 10}", "tier": "web" if i % 2 else "api"})
        for i in range(count)
    ]


def _policies() -> list[dict[str, Any]]:
    return [
        make_policy(
            f"app-{i}",
            pod_selector={"matchLabels": {"app": f"app-{i}"}},
            ingress=[
                {"from": [{"podSelector": {"matchLabels": {"tier": "web"}}}], "ports": [{"port": 80}, {"port": 443}]}
            ],
        )
        for i in range(10)
    ]


# ---------------------------------------------------------------------------
# Graph building
# ---------------------------------------------------------------------------


@pytest.mark.performance
class TestGraphBuildPerformance:
    def test_300_resources_under_500ms(self) -> None:
        snapshot = _large_snapshot()
        assert len(snapshot) == 300
        start = time.perf_counter()
        graph = build_graph(snapshot)
        elapsed = time.perf_counter() - start
        assert len(graph.nodes) == 300
        assert elapsed < 0.5, f"graph build took {elapsed:.3f}s"


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


@pytest.mark.performance
class TestConnectivityPerformance:
    def test_100_pods_10_policies_under_3s(self) -> None:
        start = time.perf_counter()
        result = compute_connectivity(_pods(100), [], _policies())
        elapsed = time.perf_counter() - start
        assert len({(c.source_pod_id, c.target_pod_id) for c in result.connections}) == 100 * 99
        assert elapsed < 3.0, f"connectivity took {elapsed:.3f}s"

    def test_cancellation_stops_quickly(self) -> None:
        token = CancellationToken(timeout=0.05)
        start = time.perf_counter()
        with pytest.raises(OperationCancelled):
            compute_connectivity(_pods(400), [], _policies(), cancel=token)
        assert time.perf_counter() - start < 1.0


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


@pytest.mark.performance
class TestLayoutPerformance:
    def test_hierarchical_300_nodes_under_1s(self) -> None:
        graph = build_graph(_large_snapshot())
        start = time.perf_counter()
        placed = apply_layout(graph.nodes, graph.edges, "hierarchical")
        elapsed = time.perf_counter() - start
        assert len(placed) == 300
        assert elapsed < 1.0, f"hierarchical layout took {elapsed:.3f}s"

    def test_force_100_nodes_100_iterations_under_5s(self) -> None:
        graph = build_graph(_large_snapshot(apps=17, pods_per_app=3))
        config = LayoutConfig(force=ForceParams(iterations=100))
        start = time.perf_counter()
        apply_layout(graph.nodes, graph.edges, "force", config)
        elapsed = time.perf_counter() - start
        assert elapsed < 5.0, f"force layout took {elapsed:.3f}s"
