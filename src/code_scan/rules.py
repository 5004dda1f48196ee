"""Canonical rule registry.

Built-in rules live in ``CoreRule``. Their numeric ids are a public
compatibility contract: downstream filters and reports refer to them as
``python:<n>``, so an id is never reassigned or reused.

Structure:
  CoreRule      - closed catalog of built-in rules (ids 1-12)
  RuleRegistry  - built-ins plus rules contributed by external analyzers,
                  namespaced ``<org>/<module>:<n>``
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from code_scan.errors import DuplicateRuleIdError
from code_scan.model import RuleKind
from code_scan.model.rule import BUILT_IN_PROVIDER, Rule

# ── Built-in catalog ────────────────────────────────────────────────


class CoreRule(Enum):
    """Built-in rules; each member carries its immutable ``Rule``."""

    AVOID_EXIT_ON_ERROR = Rule.create(
        1, "Avoid terminating the process while handling an error", RuleKind.CODE_SMELL
    )
    UNUSED_FUNCTION_PARAMETER = Rule.create(
        2, "Unused function parameter", RuleKind.CODE_SMELL
    )
    PUBLIC_NON_ISOLATED_FUNCTION = Rule.create(
        3, "Non isolated public function", RuleKind.CODE_SMELL
    )
    PUBLIC_NON_ISOLATED_METHOD = Rule.create(
        4, "Non isolated public method", RuleKind.CODE_SMELL
    )
    PUBLIC_NON_ISOLATED_CLASS = Rule.create(
        5, "Non isolated public class", RuleKind.CODE_SMELL
    )
    PUBLIC_NON_ISOLATED_OBJECT = Rule.create(
        6, "Non isolated public object", RuleKind.CODE_SMELL
    )
    OPERATION_ALWAYS_EVALUATES_TO_TRUE = Rule.create(
        7, "This operation always evaluates to true", RuleKind.CODE_SMELL
    )
    OPERATION_ALWAYS_EVALUATES_TO_FALSE = Rule.create(
        8, "This operation always evaluates to false", RuleKind.CODE_SMELL
    )
    OPERATION_ALWAYS_EVALUATES_TO_SELF_VALUE = Rule.create(
        9, "This operation always evaluates to the same value", RuleKind.CODE_SMELL
    )
    SELF_ASSIGNMENT = Rule.create(
        10, "This variable is assigned to itself", RuleKind.CODE_SMELL
    )
    UNUSED_PRIVATE_CLASS_FIELD = Rule.create(
        11, "Unused class private fields", RuleKind.CODE_SMELL
    )
    INVALID_RANGE_EXPRESSION = Rule.create(
        12, "Invalid range expression", RuleKind.CODE_SMELL
    )

    @property
    def rule(self) -> Rule:
        return self.value

    @classmethod
    def rules(cls) -> list[Rule]:
        return sorted((member.value for member in cls), key=lambda r: r.numeric_id)


def _assert_core_rule_invariants() -> None:
    """Fail fast on invariant violations.

    Called at import time so CI and local runs catch issues immediately.
    """
    ids = [rule.numeric_id for rule in CoreRule.rules()]
    if len(ids) != len(set(ids)):
        raise AssertionError("CoreRule numeric ids must be unique")
    if ids != list(range(1, len(ids) + 1)):
        raise AssertionError(f"CoreRule numeric ids must be contiguous from 1, got {ids}")
    bad = [rule.id for rule in CoreRule.rules() if rule.provider != BUILT_IN_PROVIDER]
    if bad:
        raise AssertionError(f"CoreRule contains foreign rule ids: {bad}")


_assert_core_rule_invariants()


# ── Registry ────────────────────────────────────────────────────────


class RuleRegistry:
    """Built-in catalog plus externally contributed rules.

    Read-only once the run's analyzers are registered, so it can be shared
    between documents analysed concurrently.
    """

    def __init__(self) -> None:
        self._rules: dict[str, Rule] = {rule.id: rule for rule in CoreRule.rules()}
        self._providers: list[str] = []

    def register(self, provider: str, rules: Iterable[Rule]) -> None:
        """Add a provider's rules; nothing is added if any id collides."""
        if "/" not in provider or provider.count("/") != 1:
            raise ValueError(
                f"external provider must be named '<org>/<module>', got {provider!r}"
            )
        incoming: dict[str, Rule] = {}
        for rule in rules:
            if rule.provider != provider:
                raise ValueError(
                    f"rule '{rule.id}' is not namespaced with provider '{provider}'"
                )
            if rule.id in self._rules or rule.id in incoming:
                raise DuplicateRuleIdError(rule.id)
            incoming[rule.id] = rule
        self._rules.update(incoming)
        if provider not in self._providers:
            self._providers.append(provider)

    def resolve(self, qualified_id: str) -> Rule | None:
        return self._rules.get(qualified_id)

    def all(self) -> list[Rule]:
        """Built-ins by numeric id, then external rules in registration order."""
        built_in = sorted(
            (r for r in self._rules.values() if r.is_built_in),
            key=lambda r: r.numeric_id,
        )
        external = [r for r in self._rules.values() if not r.is_built_in]
        return built_in + external

    def providers(self) -> list[str]:
        return list(self._providers)

    def __contains__(self, qualified_id: object) -> bool:
        return qualified_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)
