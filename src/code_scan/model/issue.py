"""Issue: one located violation of a rule."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from . import Source
from .rule import Rule


@dataclass(frozen=True, slots=True)
class Location:
    """Half-open textual span; lines and offsets are 0-indexed."""

    file_name: str
    start_line: int
    start_offset: int
    end_line: int
    end_offset: int

    def __post_init__(self) -> None:
        if min(self.start_line, self.start_offset, self.end_line, self.end_offset) < 0:
            raise ValueError(f"negative position in {self!r}")
        if self.start_line > self.end_line or (
            self.start_line == self.end_line and self.start_offset > self.end_offset
        ):
            raise ValueError(f"location ends before it starts: {self!r}")

    @property
    def start(self) -> tuple[int, int]:
        return (self.start_line, self.start_offset)

    def to_dict(self) -> dict:
        return {
            "file_name": self.file_name,
            "start_line": self.start_line,
            "start_offset": self.start_offset,
            "end_line": self.end_line,
            "end_offset": self.end_offset,
        }


@dataclass(frozen=True, slots=True)
class Issue:
    """Immutable issue record handed to reporting collaborators."""

    rule: Rule
    location: Location
    source: Source

    @property
    def fingerprint(self) -> str:
        return make_fingerprint(self.rule.id, self.location)

    # ── serialisation ───────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "rule": self.rule.to_dict(),
            "location": self.location.to_dict(),
            "source": self.source.value,
            "fingerprint": self.fingerprint,
        }


def make_fingerprint(rule_id: str, location: Location) -> str:
    """Deterministic issue fingerprint: sha256(rule|file|span)."""
    file_name = location.file_name.replace("\\", "/")
    span = (
        f"{location.start_line}:{location.start_offset}-"
        f"{location.end_line}:{location.end_offset}"
    )
    payload = "|".join([rule_id, file_name, span])
    return "sha256:" + hashlib.sha256(payload.encode()).hexdigest()
