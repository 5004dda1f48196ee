"""Tests for the built-in catalog and the rule registry."""

from __future__ import annotations

import pytest

from code_scan.errors import DuplicateRuleIdError
from code_scan.model import RuleKind
from code_scan.model.rule import Rule
from code_scan.rules import CoreRule, RuleRegistry


def _external(n: int, provider: str = "acme/lint") -> Rule:
    return Rule.create(n, f"external rule {n}", RuleKind.BUG, provider)


class TestCoreRule:
    def test_ids_are_contiguous_from_one(self) -> None:
        assert [r.numeric_id for r in CoreRule.rules()] == list(range(1, 13))

    def test_qualified_ids_use_builtin_namespace(self) -> None:
        assert [r.id for r in CoreRule.rules()][:3] == ["python:1", "python:2", "python:3"]
        assert all(r.is_built_in for r in CoreRule.rules())

    def test_all_rules_are_code_smells(self) -> None:
        assert {r.kind for r in CoreRule.rules()} == {RuleKind.CODE_SMELL}

    def test_descriptions_are_stable(self) -> None:
        assert CoreRule.SELF_ASSIGNMENT.rule.description == "This variable is assigned to itself"
        assert CoreRule.INVALID_RANGE_EXPRESSION.rule.id == "python:12"


class TestRuleCreate:
    def test_namespaced_id(self) -> None:
        rule = _external(3)
        assert rule.id == "acme/lint:3"
        assert rule.provider == "acme/lint"
        assert not rule.is_built_in

    @pytest.mark.parametrize("numeric_id", [0, -1, True])
    def test_rejects_bad_numeric_id(self, numeric_id) -> None:
        with pytest.raises(ValueError):
            Rule.create(numeric_id, "bad", RuleKind.BUG)

    @pytest.mark.parametrize("provider", ["", "a/b/c", "has space", "1org/x"])
    def test_rejects_bad_provider(self, provider: str) -> None:
        with pytest.raises(ValueError):
            Rule.create(1, "bad", RuleKind.BUG, provider)


class TestRuleRegistry:
    def test_starts_with_builtins(self) -> None:
        registry = RuleRegistry()
        assert len(registry) == 12
        assert "python:7" in registry
        assert registry.providers() == []

    def test_all_lists_builtins_then_externals_in_registration_order(self) -> None:
        registry = RuleRegistry()
        registry.register("zeta/rules", [_external(2, "zeta/rules"), _external(1, "zeta/rules")])
        registry.register("acme/lint", [_external(1)])
        ids = [r.id for r in registry.all()]
        assert ids[:12] == [f"python:{n}" for n in range(1, 13)]
        assert ids[12:] == ["zeta/rules:2", "zeta/rules:1", "acme/lint:1"]
        assert registry.providers() == ["zeta/rules", "acme/lint"]

    def test_resolve_exact_match(self) -> None:
        registry = RuleRegistry()
        registry.register("acme/lint", [_external(1)])
        assert registry.resolve("acme/lint:1") == _external(1)
        assert registry.resolve("python:10") == CoreRule.SELF_ASSIGNMENT.rule
        assert registry.resolve("acme/lint:2") is None
        assert registry.resolve("10") is None

    def test_duplicate_leaves_registry_unchanged(self) -> None:
        registry = RuleRegistry()
        registry.register("acme/lint", [_external(1)])
        with pytest.raises(DuplicateRuleIdError, match="acme/lint:1"):
            registry.register("acme/lint", [_external(2), _external(1)])
        assert "acme/lint:2" not in registry
        assert len(registry) == 13

    def test_rule_outside_provider_namespace_rejected(self) -> None:
        registry = RuleRegistry()
        with pytest.raises(ValueError, match="not namespaced"):
            registry.register("acme/lint", [_external(1, "other/pkg")])

    def test_provider_must_be_org_module(self) -> None:
        with pytest.raises(ValueError):
            RuleRegistry().register("python", [CoreRule.SELF_ASSIGNMENT.rule])
