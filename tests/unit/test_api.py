"""Tests for the kubetopo REST API."""

from __future__ import annotations

import time
from typing import Any

import pytest
from fastapi.testclient import TestClient

from kubetopo import __version__
from kubetopo.api.app import create_app
from kubetopo.cancellation import CancellationToken
from kubetopo.layout.cache import LayoutCache
from kubetopo.models.config import APIConfig, TopologyConfig

from conftest import deployment_stack, make_pod, make_policy


def _make_app(config: TopologyConfig | None = None, cache: LayoutCache | None = None) -> TestClient:
    app = create_app(config=config or TopologyConfig(cluster_name="test-cluster"), layout_cache=cache)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def client() -> TestClient:
    return _make_app()


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": __version__}

    def test_metrics_exposed(self, client: TestClient) -> None:
        client.post("/api/v1/topology/graph", json={"resources": deployment_stack()})
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "kubetopo_graph_builds_total" in resp.text


class TestGraphEndpoint:
    def test_builds_and_positions(self, client: TestClient) -> None:
        resp = client.post("/api/v1/topology/graph", json={"resources": deployment_stack()})
        assert resp.status_code == 200
        body = resp.json()
        assert len(body["nodes"]) == 6
        assert len(body["edges"]) == 7
        assert body["metadata"]["cluster_name"] == "test-cluster"
        assert all(node["position"] is not None for node in body["nodes"])

    def test_layout_overrides(self, client: TestClient) -> None:
        resp = client.post(
            "/api/v1/topology/graph",
            json={"resources": deployment_stack(), "layout": {"strategy": "grid", "nodesep": 10}},
        )
        assert resp.status_code == 200
        xs = sorted({node["position"]["x"] for node in resp.json()["nodes"]})
        assert xs[1] - xs[0] == 210

    def test_filters(self, client: TestClient) -> None:
        resp = client.post(
            "/api/v1/topology/graph",
            json={"resources": deployment_stack(), "filters": {"kinds": ["pod"]}},
        )
        body = resp.json()
        assert {node["kind"] for node in body["nodes"]} == {"Pod"}
        assert body["edges"] == []

    def test_namespace_scope(self, client: TestClient) -> None:
        resources = deployment_stack("a") + deployment_stack("b")
        resp = client.post("/api/v1/topology/graph", json={"resources": resources, "namespace": "b"})
        body = resp.json()
        assert {node["namespace"] for node in body["nodes"]} == {"b"}
        assert body["metadata"]["namespace"] == "b"

    def test_unknown_strategy_is_422(self, client: TestClient) -> None:
        resp = client.post(
            "/api/v1/topology/graph",
            json={"resources": deployment_stack(), "layout": {"strategy": "spiral"}},
        )
        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] == "UNKNOWN_LAYOUT_STRATEGY"
        assert body["context"] == {"strategy": "spiral"}

    def test_invalid_direction_is_400(self, client: TestClient) -> None:
        resp = client.post(
            "/api/v1/topology/graph",
            json={"resources": [], "layout": {"direction": "diagonal"}},
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "INVALID_REQUEST"
        assert body["context"]["field"] == "layout.direction"

    def test_missing_resources_is_400(self, client: TestClient) -> None:
        resp = client.post("/api/v1/topology/graph", json={})
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_REQUEST"

    def test_layout_cache_shared_between_requests(self) -> None:
        cache = LayoutCache()
        client = _make_app(cache=cache)
        for _ in range(2):
            assert client.post("/api/v1/topology/graph", json={"resources": deployment_stack()}).status_code == 200
        assert len(cache) == 1


class TestNetworkEndpoint:
    def test_connections(self, client: TestClient) -> None:
        pods = [make_pod("a", labels={"app": "a"}), make_pod("b", labels={"app": "b"})]
        policies = [make_policy("deny-b", pod_selector={"matchLabels": {"app": "b"}}, policy_types=["Ingress"])]
        resp = client.post("/api/v1/topology/network", json={"pods": pods, "policies": policies})
        assert resp.status_code == 200
        verdicts = {
            (c["source_pod_id"], c["target_pod_id"]): c["allowed"] for c in resp.json()["connections"]
        }
        assert verdicts == {
            ("uid-default-a", "uid-default-b"): False,
            ("uid-default-b", "uid-default-a"): True,
        }

    def test_invalid_selector_is_422(self, client: TestClient) -> None:
        pods = [make_pod("a"), make_pod("b")]
        policies = [
            make_policy(
                "broken",
                ingress=[{"from": [{"podSelector": {"matchExpressions": [{"key": "x", "operator": "Nope"}]}}]}],
            )
        ]
        resp = client.post("/api/v1/topology/network", json={"pods": pods, "policies": policies})
        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] == "INVALID_SELECTOR"
        assert body["context"]["policy"] == "broken"
        assert body["context"]["rule_index"] == 0

    def test_timeout_is_504(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def _slow(*_args: Any, cancel: CancellationToken, **_kwargs: Any) -> None:
            while True:
                cancel.raise_if_cancelled("connectivity")
                time.sleep(0.005)

        monkeypatch.setattr("kubetopo.api.routes.build_network_topology", _slow)
        config = TopologyConfig(api=APIConfig(compute_timeout_seconds=0.05))
        resp = _make_app(config).post("/api/v1/topology/network", json={"pods": []})
        assert resp.status_code == 504
        body = resp.json()
        assert body["error"] == "COMPUTATION_TIMEOUT"
        assert body["context"] == {"operation": "connectivity"}


class TestLayoutEndpoint:
    def _graph(self, edges: list[dict[str, Any]]) -> dict[str, Any]:
        return {
            "nodes": [{"id": "a", "kind": "Deployment"}, {"id": "b", "kind": "ReplicaSet"}],
            "edges": edges,
        }

    def test_positions_supplied_nodes(self, client: TestClient) -> None:
        body = self._graph([{"id": "a-b-owns", "source": "a", "target": "b", "kind": "owns"}])
        resp = client.post("/api/v1/topology/layout", json=body)
        assert resp.status_code == 200
        nodes = {n["id"]: n for n in resp.json()["nodes"]}
        assert nodes["a"]["position"]["y"] < nodes["b"]["position"]["y"]
        assert nodes["a"]["label"] == "a"

    def test_cycle_is_422(self, client: TestClient) -> None:
        body = self._graph(
            [
                {"id": "a-b-owns", "source": "a", "target": "b", "kind": "owns"},
                {"id": "b-a-owns", "source": "b", "target": "a", "kind": "owns"},
            ]
        )
        resp = client.post("/api/v1/topology/layout", json=body)
        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] == "CYCLIC_OWNERSHIP"
        assert set(body["context"]["cycle"]) == {"a", "b"}

    def test_unknown_edge_kind_is_400(self, client: TestClient) -> None:
        body = self._graph([{"id": "x", "source": "a", "target": "b", "kind": "likes"}])
        resp = client.post("/api/v1/topology/layout", json=body)
        assert resp.status_code == 400
        assert resp.json()["context"]["field"].startswith("edges")
