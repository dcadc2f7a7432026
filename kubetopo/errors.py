"""Typed failures raised by the topology core.

TopologyValidationError and its subclasses are fatal input errors: the
computation that raised them returns nothing.  Each carries enough context
(offending resource ids, policy name, rule index) for the caller to render
a meaningful message via ``to_dict()``.
"""

from __future__ import annotations


class TopologyError(Exception):
    """Base class for every error raised by kubetopo."""


class TopologyValidationError(TopologyError):
    """Input could not be processed; no partial result is produced."""

    code = "INVALID_INPUT"

    def context(self) -> dict[str, object]:
        return {}

    def to_dict(self) -> dict[str, object]:
        return {"error": self.code, "detail": str(self), "context": self.context()}


class CyclicOwnershipError(TopologyValidationError):
    """The owns/manages subgraph contains a cycle."""

    code = "CYCLIC_OWNERSHIP"

    def __init__(self, cycle: list[str]) -> None:
        super().__init__(f"Ownership graph contains a cycle: {' -> '.join(cycle)}")
        self.cycle = cycle

    def context(self) -> dict[str, object]:
        return {"cycle": list(self.cycle)}


class InvalidSelectorError(TopologyValidationError):
    """A label selector expression is malformed."""

    code = "INVALID_SELECTOR"

    def __init__(
        self,
        reason: str,
        key: str = "",
        operator: str = "",
        policy: str | None = None,
        rule_index: int | None = None,
    ) -> None:
        where = ""
        if policy is not None:
            where = f" in policy '{policy}'"
            if rule_index is not None:
                where += f" rule {rule_index}"
        super().__init__(f"Invalid selector{where}: {reason}")
        self.key = key
        self.operator = operator
        self.policy = policy
        self.rule_index = rule_index

    def context(self) -> dict[str, object]:
        return {
            "key": self.key,
            "operator": self.operator,
            "policy": self.policy,
            "rule_index": self.rule_index,
        }


class UnknownLayoutStrategyError(TopologyValidationError):
    """The requested layout strategy does not exist."""

    code = "UNKNOWN_LAYOUT_STRATEGY"

    def __init__(self, strategy: str) -> None:
        super().__init__(f"Unknown layout strategy: {strategy}")
        self.strategy = strategy

    def context(self) -> dict[str, object]:
        return {"strategy": self.strategy}


class OperationCancelled(TopologyError):
    """A long-running computation was cancelled before it completed."""

    def __init__(self, operation: str, reason: str = "cancelled") -> None:
        super().__init__(f"{operation} {reason}")
        self.operation = operation
        self.reason = reason
