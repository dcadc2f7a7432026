"""NetworkPolicy, label selector and connectivity data structures."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum

from kubetopo.errors import InvalidSelectorError


class SelectorOperator(StrEnum):
    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"


class PolicyDirection(StrEnum):
    INGRESS = "ingress"
    EGRESS = "egress"


class PolicyType(StrEnum):
    INGRESS = "Ingress"
    EGRESS = "Egress"


@dataclass(frozen=True)
class SelectorRequirement:
    """One ``matchExpressions`` entry.

    Malformed combinations are rejected here so that matching never has to
    deal with them: In/NotIn need at least one value, Exists/DoesNotExist
    take none.
    """

    key: str
    operator: SelectorOperator
    values: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.operator, SelectorOperator):
            try:
                object.__setattr__(self, "operator", SelectorOperator(self.operator))
            except ValueError:
                raise InvalidSelectorError(
                    f"unknown operator '{self.operator}' for key '{self.key}'",
                    key=self.key,
                    operator=str(self.operator),
                ) from None
        if not self.key:
            raise InvalidSelectorError("expression key must not be empty", operator=self.operator.value)
        needs_values = self.operator in (SelectorOperator.IN, SelectorOperator.NOT_IN)
        if needs_values and not self.values:
            raise InvalidSelectorError(
                f"operator {self.operator.value} on '{self.key}' requires values",
                key=self.key,
                operator=self.operator.value,
            )
        if not needs_values and self.values:
            raise InvalidSelectorError(
                f"operator {self.operator.value} on '{self.key}' must not have values",
                key=self.key,
                operator=self.operator.value,
            )


@dataclass(frozen=True)
class LabelSelector:
    """matchLabels plus matchExpressions; empty selects everything."""

    match_labels: Mapping[str, str] = field(default_factory=dict)
    match_expressions: tuple[SelectorRequirement, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.match_labels and not self.match_expressions

    def to_dict(self) -> dict[str, object]:
        return {
            "matchLabels": dict(self.match_labels),
            "matchExpressions": [
                {"key": e.key, "operator": e.operator.value, "values": list(e.values)} for e in self.match_expressions
            ],
        }


@dataclass(frozen=True)
class IPBlock:
    cidr: str
    except_: tuple[str, ...] = ()


@dataclass(frozen=True)
class NetworkPolicyPeer:
    pod_selector: LabelSelector | None = None
    namespace_selector: LabelSelector | None = None
    ip_block: IPBlock | None = None


@dataclass(frozen=True)
class PolicyPort:
    """A port clause; ``port=None`` means every port of the protocol."""

    port: int | str | None = None
    protocol: str = "TCP"
    end_port: int | None = None

    def matches(self, other: PolicyPort) -> bool:
        """Whether traffic described by *other* is covered by this clause."""
        if self.protocol != other.protocol:
            return False
        if self.port is None:
            return True
        if other.port is None:
            return False
        if isinstance(self.port, int) and isinstance(other.port, int):
            upper = self.end_port if self.end_port is not None else self.port
            other_upper = other.end_port if other.end_port is not None else other.port
            return self.port <= other.port and other_upper <= upper
        return self.port == other.port and self.end_port == other.end_port


@dataclass(frozen=True)
class NetworkPolicyRule:
    """One ingress or egress rule.  Empty peers/ports match everything."""

    direction: PolicyDirection
    peers: tuple[NetworkPolicyPeer, ...] = ()
    ports: tuple[PolicyPort, ...] = ()


@dataclass(frozen=True)
class NetworkPolicy:
    name: str
    namespace: str
    pod_selector: LabelSelector = field(default_factory=LabelSelector)
    policy_types: frozenset[PolicyType] = frozenset({PolicyType.INGRESS})
    rules: tuple[NetworkPolicyRule, ...] = ()
    uid: str = ""

    @property
    def id(self) -> str:
        return self.uid or f"{self.namespace}-{self.name}"

    def rules_for(self, direction: PolicyDirection) -> tuple[NetworkPolicyRule, ...]:
        return tuple(rule for rule in self.rules if rule.direction == direction)


@dataclass(frozen=True)
class ConnectionRecord:
    """Allow/deny verdict for one (source pod, target pod, port) tuple.

    ``port`` and ``protocol`` are both None for the wildcard record emitted
    when no rule restricts the pair to specific ports.
    """

    source_pod_id: str
    target_pod_id: str
    allowed: bool
    port: int | str | None = None
    protocol: str | None = None
    end_port: int | None = None
    matched_policies: tuple[str, ...] = ()
    services: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "source_pod_id": self.source_pod_id,
            "target_pod_id": self.target_pod_id,
            "port": self.port,
            "end_port": self.end_port,
            "protocol": self.protocol,
            "allowed": self.allowed,
            "matched_policies": list(self.matched_policies),
            "services": list(self.services),
        }
