"""Typed views of Kubernetes objects.

Kubernetes objects carry many optional, loosely typed fields.  The topology
core only reads a handful of them, so each kind it understands is parsed
into a small frozen variant holding exactly those fields.  Kinds without a
dedicated variant become a GenericResource (id, labels and owners only).
The original object is kept on ``raw`` as the opaque node payload.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

WORKLOAD_KINDS = frozenset({"Deployment", "ReplicaSet", "StatefulSet", "DaemonSet"})

# Kinds that have no meaningful status block; their existence is their health.
STATUSLESS_KINDS = frozenset({"Service", "Ingress", "ConfigMap", "Secret", "Namespace", "NetworkPolicy"})


@dataclass(frozen=True)
class ResourceRef:
    """Identity of a Kubernetes object within a snapshot."""

    kind: str
    name: str
    namespace: str = ""
    uid: str = ""

    @property
    def node_id(self) -> str:
        """Graph node key: the uid, or ``namespace-name`` when the uid is missing."""
        return self.uid or f"{self.namespace}-{self.name}"


@dataclass(frozen=True)
class OwnerReference:
    kind: str
    name: str
    uid: str
    controller: bool = False


@dataclass(frozen=True)
class VolumeRef:
    """A ConfigMap, Secret or PVC referenced by a pod volume or env source."""

    kind: str
    name: str
    label: str


@dataclass(frozen=True)
class IngressBackend:
    service_name: str
    path: str


@dataclass(frozen=True)
class Resource:
    """Fields shared by every variant."""

    ref: ResourceRef
    labels: Mapping[str, str] = field(default_factory=dict)
    owner_references: tuple[OwnerReference, ...] = ()
    has_status: bool = False
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def kind(self) -> str:
        return self.ref.kind

    @property
    def name(self) -> str:
        return self.ref.name

    @property
    def namespace(self) -> str:
        return self.ref.namespace

    @property
    def id(self) -> str:
        return self.ref.node_id


@dataclass(frozen=True)
class PodResource(Resource):
    phase: str | None = None
    ready: bool | None = None
    volume_refs: tuple[VolumeRef, ...] = ()


@dataclass(frozen=True)
class WorkloadResource(Resource):
    """Deployment, ReplicaSet, StatefulSet or DaemonSet."""

    desired: int = 0
    available: int = 0


@dataclass(frozen=True)
class ServiceResource(Resource):
    selector: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class IngressResource(Resource):
    backends: tuple[IngressBackend, ...] = ()


@dataclass(frozen=True)
class ClaimResource(Resource):
    """PersistentVolumeClaim."""

    phase: str | None = None


@dataclass(frozen=True)
class AutoscalerResource(Resource):
    """HorizontalPodAutoscaler; only its scale target is read."""

    target_kind: str = ""
    target_name: str = ""


@dataclass(frozen=True)
class NamespaceResource(Resource):
    pass


@dataclass(frozen=True)
class GenericResource(Resource):
    pass


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _str_map(value: Any) -> dict[str, str]:
    return {str(k): str(v) for k, v in _dict(value).items()}


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _owner_references(metadata: dict[str, Any]) -> tuple[OwnerReference, ...]:
    owners = []
    for owner in _list(metadata.get("ownerReferences")):
        owner = _dict(owner)
        uid = str(owner.get("uid") or "")
        if not uid:
            continue
        owners.append(
            OwnerReference(
                kind=str(owner.get("kind") or ""),
                name=str(owner.get("name") or ""),
                uid=uid,
                controller=bool(owner.get("controller", False)),
            )
        )
    return tuple(owners)


def _pod_volume_refs(spec: dict[str, Any]) -> tuple[VolumeRef, ...]:
    refs: list[VolumeRef] = []
    for volume in _list(spec.get("volumes")):
        volume = _dict(volume)
        label = str(volume.get("name") or "")
        if "configMap" in volume:
            refs.append(VolumeRef("ConfigMap", str(_dict(volume["configMap"]).get("name") or ""), label))
        elif "secret" in volume:
            refs.append(VolumeRef("Secret", str(_dict(volume["secret"]).get("secretName") or ""), label))
        elif "persistentVolumeClaim" in volume:
            claim = _dict(volume["persistentVolumeClaim"]).get("claimName") or ""
            refs.append(VolumeRef("PersistentVolumeClaim", str(claim), label))
        elif "projected" in volume:
            for source in _list(_dict(volume["projected"]).get("sources")):
                source = _dict(source)
                if "configMap" in source:
                    refs.append(VolumeRef("ConfigMap", str(_dict(source["configMap"]).get("name") or ""), label))
                elif "secret" in source:
                    refs.append(VolumeRef("Secret", str(_dict(source["secret"]).get("name") or ""), label))

    containers = _list(spec.get("initContainers")) + _list(spec.get("containers"))
    for container in containers:
        container = _dict(container)
        for env in _list(container.get("env")):
            env = _dict(env)
            value_from = _dict(env.get("valueFrom"))
            var = str(env.get("name") or "")
            if "configMapKeyRef" in value_from:
                refs.append(VolumeRef("ConfigMap", str(_dict(value_from["configMapKeyRef"]).get("name") or ""), var))
            elif "secretKeyRef" in value_from:
                refs.append(VolumeRef("Secret", str(_dict(value_from["secretKeyRef"]).get("name") or ""), var))
        for env_from in _list(container.get("envFrom")):
            env_from = _dict(env_from)
            if "configMapRef" in env_from:
                refs.append(VolumeRef("ConfigMap", str(_dict(env_from["configMapRef"]).get("name") or ""), "envFrom"))
            elif "secretRef" in env_from:
                refs.append(VolumeRef("Secret", str(_dict(env_from["secretRef"]).get("name") or ""), "envFrom"))

    return tuple(ref for ref in refs if ref.name)


def _pod_ready(status: dict[str, Any]) -> bool | None:
    for condition in _list(status.get("conditions")):
        condition = _dict(condition)
        if condition.get("type") == "Ready":
            return str(condition.get("status")) == "True"
    return None


def _ingress_backends(spec: dict[str, Any]) -> tuple[IngressBackend, ...]:
    backends: list[IngressBackend] = []

    def _service_name(backend: dict[str, Any]) -> str:
        # networking.k8s.io/v1 first, then the legacy extensions/v1beta1 shape
        return str(_dict(backend.get("service")).get("name") or backend.get("serviceName") or "")

    default = _dict(spec.get("defaultBackend") or spec.get("backend"))
    if name := _service_name(default):
        backends.append(IngressBackend(name, "default"))

    for rule in _list(spec.get("rules")):
        for path in _list(_dict(_dict(rule).get("http")).get("paths")):
            path = _dict(path)
            if name := _service_name(_dict(path.get("backend"))):
                backends.append(IngressBackend(name, str(path.get("path") or "/")))
    return tuple(backends)


def _workload_counts(kind: str, spec: dict[str, Any], status: dict[str, Any]) -> tuple[int, int]:
    if kind == "DaemonSet":
        return _int(status.get("desiredNumberScheduled")), _int(status.get("numberAvailable"))
    desired = _int(spec.get("replicas"))
    if kind == "StatefulSet" and "availableReplicas" not in status:
        return desired, _int(status.get("readyReplicas"))
    return desired, _int(status.get("availableReplicas"))


def parse_resource(obj: Mapping[str, Any] | Resource) -> Resource:
    """Build the typed variant for a Kubernetes-shaped object.

    Already parsed resources are returned unchanged, so callers may mix raw
    dicts and variants in one snapshot.
    """
    if isinstance(obj, Resource):
        return obj

    raw = dict(obj)
    kind = str(raw.get("kind") or "")
    metadata = _dict(raw.get("metadata"))
    spec = _dict(raw.get("spec"))
    status_block = raw.get("status")
    status = _dict(status_block)

    base: dict[str, Any] = {
        "ref": ResourceRef(
            kind=kind,
            name=str(metadata.get("name") or ""),
            namespace=str(metadata.get("namespace") or ""),
            uid=str(metadata.get("uid") or ""),
        ),
        "labels": _str_map(metadata.get("labels")),
        "owner_references": _owner_references(metadata),
        "has_status": status_block is not None,
        "raw": raw,
    }

    if kind == "Pod":
        return PodResource(
            **base,
            phase=_str_or_none(status.get("phase")),
            ready=_pod_ready(status),
            volume_refs=_pod_volume_refs(spec),
        )
    if kind in WORKLOAD_KINDS:
        desired, available = _workload_counts(kind, spec, status)
        return WorkloadResource(**base, desired=desired, available=available)
    if kind == "Service":
        return ServiceResource(**base, selector=_str_map(spec.get("selector")))
    if kind == "Ingress":
        return IngressResource(**base, backends=_ingress_backends(spec))
    if kind == "PersistentVolumeClaim":
        return ClaimResource(**base, phase=_str_or_none(status.get("phase")))
    if kind == "HorizontalPodAutoscaler":
        target = _dict(spec.get("scaleTargetRef"))
        return AutoscalerResource(
            **base,
            target_kind=str(target.get("kind") or ""),
            target_name=str(target.get("name") or ""),
        )
    if kind == "Namespace":
        return NamespaceResource(**base)
    return GenericResource(**base)
