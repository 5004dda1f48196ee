"""Rule: immutable metadata for one diagnostic rule."""

from __future__ import annotations

import re
from dataclasses import dataclass

from . import RuleKind

BUILT_IN_PROVIDER = "python"

# ``python`` for the core catalog, ``org/module`` for contributed analyzers.
_PROVIDER_RE = re.compile(r"^[A-Za-z_][\w.-]*(/[A-Za-z_][\w.-]*)?$")


def is_valid_provider(provider: str) -> bool:
    return bool(_PROVIDER_RE.match(provider))


@dataclass(frozen=True, slots=True)
class Rule:
    """A rule in the registry.

    ``id`` is the qualified id used in filters and reports:
    ``<provider>:<numeric_id>``.
    """

    numeric_id: int
    id: str
    description: str
    kind: RuleKind

    @classmethod
    def create(
        cls,
        numeric_id: int,
        description: str,
        kind: RuleKind,
        provider: str = BUILT_IN_PROVIDER,
    ) -> Rule:
        if isinstance(numeric_id, bool) or not isinstance(numeric_id, int) or numeric_id < 1:
            raise ValueError(f"numeric rule id must be an integer >= 1, got {numeric_id!r}")
        if not is_valid_provider(provider):
            raise ValueError(f"invalid rule provider {provider!r}")
        return cls(numeric_id, f"{provider}:{numeric_id}", description, kind)

    @property
    def provider(self) -> str:
        return self.id.rpartition(":")[0]

    @property
    def is_built_in(self) -> bool:
        return self.provider == BUILT_IN_PROVIDER

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "numeric_id": self.numeric_id,
            "description": self.description,
            "kind": self.kind.value,
        }
