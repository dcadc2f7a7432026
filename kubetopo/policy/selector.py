"""Label selector evaluation.

Pure predicates over label sets.  The empty selector (no matchLabels, no
matchExpressions) selects every candidate; this is what makes
``podSelector: {}`` mean "all pods" in NetworkPolicy rules.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from kubetopo.errors import InvalidSelectorError
from kubetopo.models.policy import LabelSelector, SelectorOperator, SelectorRequirement


def _requirement_holds(labels: Mapping[str, str], requirement: SelectorRequirement) -> bool:
    present = requirement.key in labels
    match requirement.operator:
        case SelectorOperator.IN:
            return present and labels[requirement.key] in requirement.values
        case SelectorOperator.NOT_IN:
            return not present or labels[requirement.key] not in requirement.values
        case SelectorOperator.EXISTS:
            return present
        case SelectorOperator.DOES_NOT_EXIST:
            return not present
    return False


def matches(labels: Mapping[str, str], selector: LabelSelector) -> bool:
    """Return True if *labels* satisfy every clause of *selector*.

    An empty label set is matched only by the empty selector or by one made
    purely of DoesNotExist expressions; NotIn alone does not select it.
    """
    if not labels:
        return not selector.match_labels and all(
            req.operator == SelectorOperator.DOES_NOT_EXIST for req in selector.match_expressions
        )
    for key, value in selector.match_labels.items():
        if labels.get(key) != value:
            return False
    return all(_requirement_holds(labels, req) for req in selector.match_expressions)


def matches_namespace(namespace_labels: Mapping[str, str], namespace_selector: LabelSelector | None) -> bool:
    """Return True if a namespace with *namespace_labels* is selected.

    ``None`` means the peer carries no namespace constraint at all.
    """
    if namespace_selector is None:
        return True
    return matches(namespace_labels, namespace_selector)


def parse_selector(
    obj: Mapping[str, Any] | None,
    *,
    policy: str | None = None,
    rule_index: int | None = None,
) -> LabelSelector:
    """Build a LabelSelector from its Kubernetes dict form.

    Raises:
        InvalidSelectorError: an expression uses an unknown operator or an
            operator/values combination Kubernetes would reject.  The error
            names the policy and rule index when given.
    """
    if not obj:
        return LabelSelector()
    if not isinstance(obj, Mapping):
        raise InvalidSelectorError("selector must be an object", policy=policy, rule_index=rule_index)

    raw_labels = obj.get("matchLabels") or {}
    raw_expressions = obj.get("matchExpressions") or []
    if not isinstance(raw_labels, Mapping) or not isinstance(raw_expressions, list):
        raise InvalidSelectorError(
            "matchLabels must be an object and matchExpressions a list", policy=policy, rule_index=rule_index
        )

    match_labels = {str(k): str(v) for k, v in raw_labels.items()}
    expressions: list[SelectorRequirement] = []
    for expr in raw_expressions:
        if not isinstance(expr, Mapping):
            raise InvalidSelectorError("expression must be an object", policy=policy, rule_index=rule_index)
        values = expr.get("values") or []
        if not isinstance(values, list):
            raise InvalidSelectorError("expression values must be a list", policy=policy, rule_index=rule_index)
        try:
            expressions.append(
                SelectorRequirement(
                    key=str(expr.get("key") or ""),
                    operator=expr.get("operator") or "",
                    values=tuple(str(v) for v in values),
                )
            )
        except InvalidSelectorError as exc:
            if policy is None:
                raise
            raise InvalidSelectorError(
                str(exc).removeprefix("Invalid selector: "),
                key=exc.key,
                operator=exc.operator,
                policy=policy,
                rule_index=rule_index,
            ) from exc
    return LabelSelector(match_labels=match_labels, match_expressions=tuple(expressions))
