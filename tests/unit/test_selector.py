"""Tests for label selector parsing and evaluation."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from kubetopo.errors import InvalidSelectorError
from kubetopo.models.policy import LabelSelector, SelectorOperator, SelectorRequirement
from kubetopo.policy.selector import matches, matches_namespace, parse_selector

_label_key = st.text(alphabet="abcdefghijklmnopqrstuvwxyz-./", min_size=1, max_size=12)
_label_value = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789-", max_size=8)
_labels = st.dictionaries(_label_key, _label_value, max_size=6)


class TestMatches:
    def test_empty_selector_matches_everything(self) -> None:
        assert matches({}, LabelSelector())
        assert matches({"app": "web", "tier": "front"}, LabelSelector())

    def test_match_labels_all_required(self) -> None:
        selector = LabelSelector(match_labels={"app": "web", "tier": "front"})
        assert matches({"app": "web", "tier": "front", "extra": "x"}, selector)
        assert not matches({"app": "web"}, selector)
        assert not matches({"app": "web", "tier": "back"}, selector)

    def test_in_requires_present_key(self) -> None:
        selector = parse_selector({"matchExpressions": [{"key": "env", "operator": "In", "values": ["prod", "qa"]}]})
        assert matches({"env": "qa"}, selector)
        assert not matches({"env": "dev"}, selector)
        assert not matches({}, selector)

    def test_not_in_matches_absent_key(self) -> None:
        selector = parse_selector({"matchExpressions": [{"key": "env", "operator": "NotIn", "values": ["prod"]}]})
        assert matches({"app": "web"}, selector)
        assert matches({"env": "dev"}, selector)
        assert not matches({"env": "prod"}, selector)

    def test_exists_and_does_not_exist(self) -> None:
        exists = parse_selector({"matchExpressions": [{"key": "team", "operator": "Exists"}]})
        absent = parse_selector({"matchExpressions": [{"key": "team", "operator": "DoesNotExist"}]})
        assert matches({"team": ""}, exists)
        assert not matches({}, exists)
        assert matches({}, absent)
        assert not matches({"team": "a"}, absent)

    @pytest.mark.parametrize(
        ("expression", "expected"),
        [
            ({"key": "env", "operator": "NotIn", "values": ["prod"]}, False),
            ({"key": "env", "operator": "In", "values": ["prod"]}, False),
            ({"key": "env", "operator": "Exists"}, False),
            ({"key": "env", "operator": "DoesNotExist"}, True),
        ],
    )
    def test_unlabelled_candidate_only_matched_by_does_not_exist(
        self, expression: dict[str, object], expected: bool
    ) -> None:
        assert matches({}, parse_selector({"matchExpressions": [expression]})) is expected

    def test_unlabelled_candidate_rejects_mixed_expressions(self) -> None:
        selector = parse_selector(
            {
                "matchExpressions": [
                    {"key": "env", "operator": "DoesNotExist"},
                    {"key": "tier", "operator": "NotIn", "values": ["db"]},
                ]
            }
        )
        assert not matches({}, selector)
        assert not matches({}, LabelSelector(match_labels={"app": "web"}))

    def test_labels_and_expressions_are_anded(self) -> None:
        selector = parse_selector(
            {
                "matchLabels": {"app": "web"},
                "matchExpressions": [{"key": "env", "operator": "In", "values": ["prod"]}],
            }
        )
        assert matches({"app": "web", "env": "prod"}, selector)
        assert not matches({"app": "web", "env": "dev"}, selector)
        assert not matches({"app": "api", "env": "prod"}, selector)

    @given(labels=_labels)
    def test_empty_selector_matches_any_label_set(self, labels: dict[str, str]) -> None:
        assert matches(labels, LabelSelector())

    @given(labels=_labels, key=_label_key)
    def test_exists_and_does_not_exist_are_complementary(self, labels: dict[str, str], key: str) -> None:
        exists = LabelSelector(match_expressions=(SelectorRequirement(key, SelectorOperator.EXISTS),))
        absent = LabelSelector(match_expressions=(SelectorRequirement(key, SelectorOperator.DOES_NOT_EXIST),))
        assert matches(labels, exists) != matches(labels, absent)

    @given(labels=_labels)
    def test_selector_built_from_labels_matches_them(self, labels: dict[str, str]) -> None:
        assert matches(labels, LabelSelector(match_labels=labels))


class TestMatchesNamespace:
    def test_none_means_unconstrained(self) -> None:
        assert matches_namespace({}, None)

    def test_empty_selector_matches_all_namespaces(self) -> None:
        assert matches_namespace({"kubernetes.io/metadata.name": "prod"}, LabelSelector())

    def test_selector_evaluated_against_namespace_labels(self) -> None:
        selector = LabelSelector(match_labels={"team": "payments"})
        assert matches_namespace({"team": "payments"}, selector)
        assert not matches_namespace({"team": "search"}, selector)


class TestParseSelector:
    def test_none_and_empty_are_empty_selectors(self) -> None:
        assert parse_selector(None).empty
        assert parse_selector({}).empty

    def test_values_are_stringified(self) -> None:
        selector = parse_selector({"matchLabels": {"version": 2}})
        assert selector.match_labels == {"version": "2"}

    def test_unknown_operator_rejected(self) -> None:
        with pytest.raises(InvalidSelectorError) as exc_info:
            parse_selector({"matchExpressions": [{"key": "env", "operator": "Like", "values": ["p"]}]})
        assert exc_info.value.operator == "Like"
        assert exc_info.value.key == "env"

    @pytest.mark.parametrize(
        "expression",
        [
            {"key": "env", "operator": "In"},
            {"key": "env", "operator": "NotIn", "values": []},
            {"key": "env", "operator": "Exists", "values": ["x"]},
            {"key": "env", "operator": "DoesNotExist", "values": ["x"]},
            {"key": "", "operator": "Exists"},
        ],
    )
    def test_malformed_expressions_rejected(self, expression: dict[str, object]) -> None:
        with pytest.raises(InvalidSelectorError):
            parse_selector({"matchExpressions": [expression]})

    def test_error_names_policy_and_rule(self) -> None:
        with pytest.raises(InvalidSelectorError) as exc_info:
            parse_selector(
                {"matchExpressions": [{"key": "env", "operator": "In"}]},
                policy="deny-db",
                rule_index=2,
            )
        err = exc_info.value
        assert err.policy == "deny-db"
        assert err.rule_index == 2
        assert "deny-db" in str(err)
        assert "rule 2" in str(err)
        assert err.to_dict()["error"] == "INVALID_SELECTOR"
