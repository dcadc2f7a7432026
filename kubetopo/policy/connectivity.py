"""Pod-to-pod connectivity derived from NetworkPolicy rules.

For every ordered pod pair (source, target) the calculator decides whether
the target's ingress policies and the source's egress policies let the
traffic through:

* A pod selected by no policy for a direction is open in that direction.
* A pod selected by at least one policy for a direction is default-deny in
  that direction; traffic passes only if some rule of those policies
  matches both the peer and the port.
* A pair is allowed only if both directions allow it.

The pass is O(pods^2 x policies x rules) and deliberately unindexed; it is
meant for namespace-sized snapshots.  A cancellation token is checked
between pairs and nothing is returned until every pair is evaluated.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from kubetopo.cancellation import CancellationToken, check
from kubetopo.graph.models import EdgeType, GraphEdge, GraphNode, NetworkTopology, NodeStatus
from kubetopo.graph.status import infer_status
from kubetopo.models.policy import (
    ConnectionRecord,
    LabelSelector,
    NetworkPolicy,
    NetworkPolicyPeer,
    NetworkPolicyRule,
    PolicyDirection,
    PolicyPort,
    PolicyType,
)
from kubetopo.models.quality import DataQualityWarning, WarningCode
from kubetopo.models.resources import NamespaceResource, PodResource, Resource, ServiceResource, parse_resource
from kubetopo.observability.logging import get_logger, record_warning
from kubetopo.observability.metrics import connection_records_total
from kubetopo.policy.parser import parse_policy
from kubetopo.policy.selector import matches, matches_namespace

_log = get_logger("policy.connectivity")

NAMESPACE_NAME_LABEL = "kubernetes.io/metadata.name"

_DIRECTION_TYPE = {
    PolicyDirection.INGRESS: PolicyType.INGRESS,
    PolicyDirection.EGRESS: PolicyType.EGRESS,
}


@dataclass(frozen=True)
class ConnectivityResult:
    connections: tuple[ConnectionRecord, ...] = ()
    warnings: tuple[DataQualityWarning, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "connections": [c.to_dict() for c in self.connections],
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass(frozen=True)
class _Verdict:
    allowed: bool
    policies: tuple[NetworkPolicy, ...] = ()


def _peer_selects(
    peer: NetworkPolicyPeer,
    policy: NetworkPolicy,
    pod: PodResource,
    namespace_labels: Mapping[str, Mapping[str, str]],
) -> bool:
    if peer.pod_selector is None and peer.namespace_selector is None:
        # ipBlock-only peer: CIDR membership of pods is not evaluated.
        return False
    if peer.namespace_selector is None:
        if pod.namespace != policy.namespace:
            return False
    elif not matches_namespace(namespace_labels.get(pod.namespace, {}), peer.namespace_selector):
        return False
    return peer.pod_selector is None or matches(pod.labels, peer.pod_selector)


def _rule_selects(
    rule: NetworkPolicyRule,
    policy: NetworkPolicy,
    peer_pod: PodResource,
    namespace_labels: Mapping[str, Mapping[str, str]],
) -> bool:
    if not rule.peers:
        return True
    return any(_peer_selects(peer, policy, peer_pod, namespace_labels) for peer in rule.peers)


def _verdict(
    applicable: list[NetworkPolicy],
    selecting_rules: list[tuple[NetworkPolicy, NetworkPolicyRule]],
    port: PolicyPort | None,
) -> _Verdict:
    if not applicable:
        return _Verdict(allowed=True)
    allowing: dict[str, NetworkPolicy] = {}
    for policy, rule in selecting_rules:
        if not rule.ports or (port is not None and any(rp.matches(port) for rp in rule.ports)):
            allowing.setdefault(policy.id, policy)
    return _Verdict(allowed=bool(allowing), policies=tuple(allowing.values()))


class _PolicyIndex:
    """Per-call lookup of which policies select which pod, per direction."""

    def __init__(self, policies: list[NetworkPolicy], namespace_labels: Mapping[str, Mapping[str, str]]) -> None:
        self._policies = policies
        self._namespace_labels = namespace_labels
        self._applicable: dict[tuple[str, PolicyDirection], list[NetworkPolicy]] = {}

    def applicable(self, pod: PodResource, direction: PolicyDirection) -> list[NetworkPolicy]:
        key = (pod.id, direction)
        cached = self._applicable.get(key)
        if cached is None:
            policy_type = _DIRECTION_TYPE[direction]
            cached = [
                p
                for p in self._policies
                if p.namespace == pod.namespace
                and policy_type in p.policy_types
                and matches(pod.labels, p.pod_selector)
            ]
            self._applicable[key] = cached
        return cached

    def selecting_rules(
        self,
        policies: list[NetworkPolicy],
        direction: PolicyDirection,
        peer_pod: PodResource,
    ) -> list[tuple[NetworkPolicy, NetworkPolicyRule]]:
        return [
            (policy, rule)
            for policy in policies
            for rule in policy.rules_for(direction)
            if _rule_selects(rule, policy, peer_pod, self._namespace_labels)
        ]


def _unrestricted(
    applicable: list[NetworkPolicy],
    rules: list[tuple[NetworkPolicy, NetworkPolicyRule]],
) -> bool:
    """True when every port is open in one direction for this peer."""
    return not applicable or any(not rule.ports for _, rule in rules)


def _candidate_ports(rules: Iterable[tuple[NetworkPolicy, NetworkPolicyRule]]) -> list[PolicyPort]:
    ports: list[PolicyPort] = []
    for _, rule in rules:
        for port in rule.ports:
            if port not in ports:
                ports.append(port)
    return ports


def _policy_names(*groups: tuple[NetworkPolicy, ...], order: Mapping[str, int]) -> tuple[str, ...]:
    seen: dict[str, NetworkPolicy] = {}
    for group in groups:
        for policy in group:
            seen.setdefault(policy.id, policy)
    return tuple(p.name for p in sorted(seen.values(), key=lambda p: order[p.id]))


def _namespace_labels(
    pods: list[PodResource],
    namespaces: Iterable[Mapping[str, Any] | Resource] | None,
) -> dict[str, dict[str, str]]:
    labels: dict[str, dict[str, str]] = {}
    for obj in namespaces or ():
        ns = parse_resource(obj)
        if isinstance(ns, NamespaceResource) and ns.name:
            labels[ns.name] = {NAMESPACE_NAME_LABEL: ns.name, **ns.labels}
    for pod in pods:
        labels.setdefault(pod.namespace, {NAMESPACE_NAME_LABEL: pod.namespace})
    return labels


def _policy_warnings(
    policies: list[NetworkPolicy],
    known_namespaces: Mapping[str, Any],
) -> list[DataQualityWarning]:
    warnings: list[DataQualityWarning] = []
    for policy in policies:
        if policy.namespace not in known_namespaces:
            warnings.append(
                record_warning(
                    _log,
                    DataQualityWarning(
                        code=WarningCode.UNKNOWN_NAMESPACE,
                        resource_id=policy.id,
                        message=f"NetworkPolicy {policy.name} is in namespace '{policy.namespace}' "
                        "which has no pods or Namespace object in the snapshot",
                    ),
                )
            )
        if any(peer.ip_block is not None for rule in policy.rules for peer in rule.peers):
            warnings.append(
                record_warning(
                    _log,
                    DataQualityWarning(
                        code=WarningCode.UNEVALUATED_IP_BLOCK,
                        resource_id=policy.id,
                        message=f"NetworkPolicy {policy.name} has ipBlock peers; CIDR rules are not evaluated "
                        "against pods and never match",
                    ),
                )
            )
    return warnings


def _fronting_services(pod: PodResource, services: list[ServiceResource]) -> tuple[str, ...]:
    return tuple(
        svc.name
        for svc in services
        if svc.selector and svc.namespace == pod.namespace and matches(pod.labels, LabelSelector(svc.selector))
    )


def _parse_inputs(
    pods: Iterable[Mapping[str, Any] | Resource],
    services: Iterable[Mapping[str, Any] | Resource],
    policies: Iterable[Mapping[str, Any] | NetworkPolicy],
) -> tuple[list[PodResource], list[ServiceResource], list[NetworkPolicy]]:
    parsed_pods = [r for r in (parse_resource(p) for p in pods) if isinstance(r, PodResource)]
    parsed_services = [r for r in (parse_resource(s) for s in services) if isinstance(r, ServiceResource)]
    parsed_policies = [parse_policy(p) for p in policies]
    return parsed_pods, parsed_services, parsed_policies


def compute_connectivity(
    pods: Iterable[Mapping[str, Any] | Resource],
    services: Iterable[Mapping[str, Any] | Resource],
    policies: Iterable[Mapping[str, Any] | NetworkPolicy],
    namespace: str | None = None,
    *,
    namespaces: Iterable[Mapping[str, Any] | Resource] | None = None,
    cancel: CancellationToken | None = None,
) -> ConnectivityResult:
    """Classify traffic for every ordered pod pair.

    Args:
        pods:       Pod objects (raw dicts or parsed variants).
        services:   Service objects; used to annotate records with the
                    services fronting the target pod.
        policies:   NetworkPolicy objects.
        namespace:  When set, only pairs with at least one end in this
                    namespace are evaluated.
        namespaces: Optional Namespace objects supplying labels for
                    namespaceSelector evaluation.
        cancel:     Checked between pairs.

    Raises:
        InvalidSelectorError: a policy carries a malformed selector.
        OperationCancelled:   the token was cancelled or expired.
    """
    pod_list, service_list, policy_list = _parse_inputs(pods, services, policies)
    ns_labels = _namespace_labels(pod_list, namespaces)
    return _evaluate(pod_list, service_list, policy_list, ns_labels, namespace, cancel)


def _evaluate(
    pod_list: list[PodResource],
    service_list: list[ServiceResource],
    policy_list: list[NetworkPolicy],
    ns_labels: Mapping[str, Mapping[str, str]],
    namespace: str | None,
    cancel: CancellationToken | None,
) -> ConnectivityResult:
    warnings = _policy_warnings(policy_list, ns_labels)
    index = _PolicyIndex(policy_list, ns_labels)
    order = {p.id: i for i, p in enumerate(policy_list)}
    fronting = {pod.id: _fronting_services(pod, service_list) for pod in pod_list}

    records: list[ConnectionRecord] = []
    for source in pod_list:
        for target in pod_list:
            if source.id == target.id:
                continue
            if namespace and namespace not in (source.namespace, target.namespace):
                continue
            check(cancel, "connectivity")

            ingress = index.applicable(target, PolicyDirection.INGRESS)
            egress = index.applicable(source, PolicyDirection.EGRESS)
            ingress_rules = index.selecting_rules(ingress, PolicyDirection.INGRESS, source)
            egress_rules = index.selecting_rules(egress, PolicyDirection.EGRESS, target)

            candidates: list[PolicyPort | None] = []
            if not (_unrestricted(ingress, ingress_rules) and _unrestricted(egress, egress_rules)):
                candidates = list(_candidate_ports(ingress_rules + egress_rules))
            if not candidates:
                candidates = [None]
            for port in candidates:
                inbound = _verdict(ingress, ingress_rules, port)
                outbound = _verdict(egress, egress_rules, port)
                records.append(
                    ConnectionRecord(
                        source_pod_id=source.id,
                        target_pod_id=target.id,
                        allowed=inbound.allowed and outbound.allowed,
                        port=None if port is None else port.port,
                        protocol=None if port is None else port.protocol,
                        end_port=None if port is None else port.end_port,
                        matched_policies=_policy_names(inbound.policies, outbound.policies, order=order),
                        services=fronting[target.id],
                    )
                )

    allowed = sum(1 for r in records if r.allowed)
    connection_records_total.labels(verdict="allowed").inc(allowed)
    connection_records_total.labels(verdict="denied").inc(len(records) - allowed)
    _log.info(
        "connectivity_computed",
        namespace=namespace,
        pods=len(pod_list),
        policies=len(policy_list),
        records=len(records),
        allowed=allowed,
    )
    return ConnectivityResult(connections=tuple(records), warnings=tuple(warnings))


def _port_label(records: list[ConnectionRecord]) -> str | None:
    labels = []
    for record in records:
        if record.port is None and record.protocol is None:
            continue
        port = record.port if record.end_port is None else f"{record.port}-{record.end_port}"
        labels.append(f"{record.protocol}/{port}" if port is not None else f"{record.protocol}/*")
    return ", ".join(labels) or None


def _policy_node(policy: NetworkPolicy, raw: Mapping[str, Any]) -> GraphNode:
    return GraphNode(
        id=policy.id,
        kind="NetworkPolicy",
        label=policy.name or "Unnamed",
        status=NodeStatus.HEALTHY,
        namespace=policy.namespace,
        labels=dict((raw.get("metadata") or {}).get("labels") or {}),
        resource=raw,
    )


def _resource_node(resource: Resource) -> GraphNode:
    return GraphNode(
        id=resource.id,
        kind=resource.kind,
        label=resource.name or "Unnamed",
        status=infer_status(resource),
        namespace=resource.namespace,
        labels=dict(resource.labels),
        resource=resource.raw,
    )


def build_network_topology(
    pods: Iterable[Mapping[str, Any] | Resource],
    services: Iterable[Mapping[str, Any] | Resource],
    policies: Iterable[Mapping[str, Any] | NetworkPolicy],
    namespace: str | None = None,
    *,
    namespaces: Iterable[Mapping[str, Any] | Resource] | None = None,
    cancel: CancellationToken | None = None,
) -> NetworkTopology:
    """Pods, services and policies as graph nodes plus connection records.

    Edges, in order: Service -> Pod ``exposes``; policy selection
    (policy -> pod labelled Ingress, pod -> policy labelled Egress, both
    ``allows``); then one ``allows`` or ``denies`` edge per evaluated pod
    pair, allowed when any of the pair's records is allowed.
    """
    raw_policies = list(policies)
    pod_list, service_list, policy_list = _parse_inputs(pods, services, raw_policies)
    ns_labels = _namespace_labels(pod_list, namespaces)
    result = _evaluate(pod_list, service_list, policy_list, ns_labels, namespace, cancel)

    nodes = [_resource_node(p) for p in pod_list]
    nodes += [_resource_node(s) for s in service_list]
    nodes += [
        _policy_node(policy, raw if isinstance(raw, Mapping) else {})
        for policy, raw in zip(policy_list, raw_policies, strict=True)
    ]

    edges: list[GraphEdge] = []
    for svc in service_list:
        if not svc.selector:
            continue
        for pod in pod_list:
            if pod.namespace == svc.namespace and matches(pod.labels, LabelSelector(svc.selector)):
                edges.append(GraphEdge(f"{svc.id}-{pod.id}-exposes", svc.id, pod.id, EdgeType.EXPOSES))

    for policy in policy_list:
        for pod in pod_list:
            if pod.namespace != policy.namespace or not matches(pod.labels, policy.pod_selector):
                continue
            if PolicyType.INGRESS in policy.policy_types:
                edges.append(
                    GraphEdge(f"policy-{policy.id}-pod-{pod.id}-ingress", policy.id, pod.id, EdgeType.ALLOWS, "Ingress")
                )
            if PolicyType.EGRESS in policy.policy_types:
                edges.append(
                    GraphEdge(f"policy-{policy.id}-pod-{pod.id}-egress", pod.id, policy.id, EdgeType.ALLOWS, "Egress")
                )

    by_pair: dict[tuple[str, str], list[ConnectionRecord]] = {}
    for record in result.connections:
        by_pair.setdefault((record.source_pod_id, record.target_pod_id), []).append(record)
    for (source, target), records in by_pair.items():
        kind = EdgeType.ALLOWS if any(r.allowed for r in records) else EdgeType.DENIES
        edges.append(GraphEdge(f"{source}-{target}-connection", source, target, kind, _port_label(records)))

    return NetworkTopology(
        nodes=tuple(nodes),
        edges=tuple(edges),
        connections=result.connections,
        warnings=result.warnings,
    )
