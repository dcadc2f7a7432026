"""Shared factories for kubetopo tests.

Builders return Kubernetes-shaped dicts, the same form ``kubectl get -o
json`` produces, so tests exercise the parsing layer as well.
"""

from __future__ import annotations

from typing import Any

import pytest

from kubetopo.models.config import LayoutConfig, TopologyConfig


def _meta(name: str, namespace: str, uid: str | None, labels: dict[str, str] | None) -> dict[str, Any]:
    meta: dict[str, Any] = {"name": name, "namespace": namespace, "uid": uid or f"uid-{namespace}-{name}"}
    if labels is not None:
        meta["labels"] = labels
    return meta


def owner(kind: str, name: str, namespace: str = "default", uid: str | None = None) -> dict[str, Any]:
    return {"kind": kind, "name": name, "uid": uid or f"uid-{namespace}-{name}", "controller": True}


def make_pod(
    name: str,
    namespace: str = "default",
    labels: dict[str, str] | None = None,
    phase: str | None = "Running",
    owners: list[dict[str, Any]] | None = None,
    volumes: list[dict[str, Any]] | None = None,
    containers: list[dict[str, Any]] | None = None,
    uid: str | None = None,
    ready: bool | None = True,
) -> dict[str, Any]:
    """Create a Pod object with sensible defaults for testing."""
    meta = _meta(name, namespace, uid, {"app": name} if labels is None else labels)
    if owners:
        meta["ownerReferences"] = owners
    pod: dict[str, Any] = {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": meta,
        "spec": {
            "containers": containers or [{"name": "main", "image": "nginx:1.25"}],
            "volumes": volumes or [],
        },
    }
    if phase is not None:
        status: dict[str, Any] = {"phase": phase}
        if ready is not None:
            status["conditions"] = [{"type": "Ready", "status": "True" if ready else "False"}]
        pod["status"] = status
    return pod


def make_deployment(
    name: str,
    namespace: str = "default",
    replicas: int = 3,
    available: int | None = None,
    uid: str | None = None,
    kind: str = "Deployment",
    with_status: bool = True,
) -> dict[str, Any]:
    obj: dict[str, Any] = {
        "apiVersion": "apps/v1",
        "kind": kind,
        "metadata": _meta(name, namespace, uid, {"app": name}),
        "spec": {"replicas": replicas, "selector": {"matchLabels": {"app": name}}},
    }
    if with_status:
        obj["status"] = {"availableReplicas": replicas if available is None else available}
    return obj


def make_replicaset(
    name: str,
    owner_name: str,
    namespace: str = "default",
    replicas: int = 3,
    available: int | None = None,
) -> dict[str, Any]:
    obj = make_deployment(name, namespace, replicas, available, kind="ReplicaSet")
    obj["metadata"]["ownerReferences"] = [owner("Deployment", owner_name, namespace)]
    return obj


def make_service(
    name: str,
    namespace: str = "default",
    selector: dict[str, str] | None = None,
    uid: str | None = None,
) -> dict[str, Any]:
    spec: dict[str, Any] = {"ports": [{"port": 80, "targetPort": 8080}]}
    if selector is not None:
        spec["selector"] = selector
    return {"apiVersion": "v1", "kind": "Service", "metadata": _meta(name, namespace, uid, None), "spec": spec}


def make_simple(kind: str, name: str, namespace: str = "default", **extra: Any) -> dict[str, Any]:
    """ConfigMap, Secret, PVC, Namespace and other kinds with no interesting spec."""
    obj: dict[str, Any] = {"kind": kind, "metadata": _meta(name, namespace, None, None)}
    obj.update(extra)
    return obj


def make_namespace(name: str, labels: dict[str, str] | None = None) -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Namespace",
        "metadata": {"name": name, "uid": f"uid-ns-{name}", "labels": labels or {}},
    }


def make_policy(
    name: str,
    namespace: str = "default",
    pod_selector: dict[str, Any] | None = None,
    ingress: list[dict[str, Any]] | None = None,
    egress: list[dict[str, Any]] | None = None,
    policy_types: list[str] | None = None,
) -> dict[str, Any]:
    spec: dict[str, Any] = {"podSelector": pod_selector or {}}
    if ingress is not None:
        spec["ingress"] = ingress
    if egress is not None:
        spec["egress"] = egress
    if policy_types is not None:
        spec["policyTypes"] = policy_types
    return {
        "apiVersion": "networking.k8s.io/v1",
        "kind": "NetworkPolicy",
        "metadata": _meta(name, namespace, None, None),
        "spec": spec,
    }


def deployment_stack(namespace: str = "default", pods: int = 3) -> list[dict[str, Any]]:
    """Deployment d -> ReplicaSet rs -> pods p1..pN, plus Service svc selecting them."""
    resources = [
        make_deployment("d", namespace, replicas=pods),
        make_replicaset("rs", "d", namespace, replicas=pods),
    ]
    for i in range(1, pods + 1):
        resources.append(
            make_pod(f"p{i}", namespace, labels={"app": "web"}, owners=[owner("ReplicaSet", "rs", namespace)])
        )
    resources.append(make_service("svc", namespace, selector={"app": "web"}))
    return resources


@pytest.fixture
def stack() -> list[dict[str, Any]]:
    return deployment_stack()


@pytest.fixture
def layout_config() -> LayoutConfig:
    return LayoutConfig()


@pytest.fixture
def topology_config() -> TopologyConfig:
    return TopologyConfig(cluster_name="test-cluster")
