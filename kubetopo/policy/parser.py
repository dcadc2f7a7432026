"""Conversion of Kubernetes NetworkPolicy objects into typed policies."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from kubetopo.models.policy import (
    IPBlock,
    NetworkPolicy,
    NetworkPolicyPeer,
    NetworkPolicyRule,
    PolicyDirection,
    PolicyPort,
    PolicyType,
)
from kubetopo.policy.selector import parse_selector

_POLICY_TYPE_VALUES = frozenset(t.value for t in PolicyType)


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _items(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _parse_port(obj: Mapping[str, Any]) -> PolicyPort:
    port = obj.get("port")
    if isinstance(port, str) and port.isdigit():
        port = int(port)
    elif not isinstance(port, int | str):
        port = None
    end_port = obj.get("endPort")
    return PolicyPort(
        port=port,
        protocol=str(obj.get("protocol") or "TCP").upper(),
        end_port=end_port if isinstance(end_port, int) and isinstance(port, int) else None,
    )


def _parse_peer(obj: Mapping[str, Any], policy: str, rule_index: int) -> NetworkPolicyPeer:
    ip_block = None
    if block := _mapping(obj.get("ipBlock")):
        ip_block = IPBlock(
            cidr=str(block.get("cidr") or ""),
            except_=tuple(str(c) for c in _items(block.get("except"))),
        )
    return NetworkPolicyPeer(
        pod_selector=(
            parse_selector(obj["podSelector"], policy=policy, rule_index=rule_index)
            if obj.get("podSelector") is not None
            else None
        ),
        namespace_selector=(
            parse_selector(obj["namespaceSelector"], policy=policy, rule_index=rule_index)
            if obj.get("namespaceSelector") is not None
            else None
        ),
        ip_block=ip_block,
    )


def _parse_rules(
    items: list[Any],
    direction: PolicyDirection,
    peer_key: str,
    policy: str,
    offset: int,
) -> list[NetworkPolicyRule]:
    rules = []
    for index, item in enumerate(items):
        item = _mapping(item)
        rule_index = offset + index
        rules.append(
            NetworkPolicyRule(
                direction=direction,
                peers=tuple(_parse_peer(_mapping(p), policy, rule_index) for p in _items(item.get(peer_key))),
                ports=tuple(_parse_port(_mapping(p)) for p in _items(item.get("ports"))),
            )
        )
    return rules


def parse_policy(obj: Mapping[str, Any] | NetworkPolicy) -> NetworkPolicy:
    """Build a NetworkPolicy from a Kubernetes object.

    Rule indexes reported in selector errors count ingress rules first, then
    egress rules, matching the order of ``NetworkPolicy.rules``.  When
    ``policyTypes`` is absent it defaults the way the API server does:
    Ingress always, Egress only if egress rules are present.
    """
    if isinstance(obj, NetworkPolicy):
        return obj

    metadata = _mapping(obj.get("metadata"))
    spec = _mapping(obj.get("spec"))
    name = str(metadata.get("name") or "")

    ingress = _items(spec.get("ingress"))
    egress = _items(spec.get("egress"))
    rules = _parse_rules(ingress, PolicyDirection.INGRESS, "from", name, 0)
    rules += _parse_rules(egress, PolicyDirection.EGRESS, "to", name, len(ingress))

    declared = _items(spec.get("policyTypes"))
    if declared:
        policy_types = frozenset(PolicyType(t) for t in declared if isinstance(t, str) and t in _POLICY_TYPE_VALUES)
    else:
        policy_types = frozenset({PolicyType.INGRESS} | ({PolicyType.EGRESS} if egress else set()))

    return NetworkPolicy(
        name=name,
        namespace=str(metadata.get("namespace") or ""),
        uid=str(metadata.get("uid") or ""),
        pod_selector=parse_selector(spec.get("podSelector"), policy=name),
        policy_types=policy_types,
        rules=tuple(rules),
    )
