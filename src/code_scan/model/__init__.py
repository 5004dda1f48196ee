"""Enums shared across the registry, the analyzers and the issue model."""

from __future__ import annotations

from enum import Enum


class RuleKind(str, Enum):
    """Category of a rule, as shown to report consumers."""

    CODE_SMELL = "CODE_SMELL"
    BUG = "BUG"
    VULNERABILITY = "VULNERABILITY"


class Source(str, Enum):
    """Where the rule behind an issue came from."""

    BUILT_IN = "BUILT_IN"
    EXTERNAL = "EXTERNAL"
