"""In-memory model of a Scan.toml declaration file.

Three repeatable sections::

    [[analyzer]]            org, name, optional version / repository
    [rule]                  include / exclude lists of qualified rule ids
    [[platform]]            name plus arbitrary string arguments

and an optional ``[scan] configPath`` pointing at an external file that
replaces the local declarations.
"""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, TypeVar

import jsonschema

from code_scan.contracts.load import schema_errors
from code_scan.errors import (
    ConfigurationFetchError,
    MalformedConfigurationError,
    MissingConfigFieldError,
)

SCHEMA_NAME = "scan_toml.schema.json"

_T = TypeVar("_T")


@dataclass(frozen=True)
class Analyzer:
    """One external rule-provider package to load."""

    org: str
    name: str
    version: str | None = None
    repository: str | None = None

    @property
    def provider(self) -> str:
        return f"{self.org}/{self.name}"

    def to_dict(self) -> dict[str, str]:
        d = {"org": self.org, "name": self.name}
        if self.version is not None:
            d["version"] = self.version
        if self.repository is not None:
            d["repository"] = self.repository
        return d


@dataclass(frozen=True)
class RuleToFilter:
    """One include/exclude entry; ``id`` is a qualified rule id."""

    id: str


@dataclass(frozen=True)
class Platform:
    """A platform plugin declaration with its opaque argument map."""

    name: str
    args: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", MappingProxyType(dict(self.args)))

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, **self.args}


def _unique(items: Iterable[_T]) -> tuple[_T, ...]:
    # Set semantics for identity, declaration order for iteration.
    return tuple(dict.fromkeys(items))


@dataclass(frozen=True)
class ScanTomlFile:
    analyzers: tuple[Analyzer, ...] = ()
    rules_to_include: tuple[RuleToFilter, ...] = ()
    rules_to_exclude: tuple[RuleToFilter, ...] = ()
    platforms: tuple[Platform, ...] = ()
    config_path: str | None = None

    def __post_init__(self) -> None:
        for name in ("analyzers", "rules_to_include", "rules_to_exclude", "platforms"):
            object.__setattr__(self, name, _unique(getattr(self, name)))

    # ── parsing ─────────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, source: str = "") -> ScanTomlFile:
        """Build the model from a decoded TOML document.

        Raises ``MissingConfigFieldError`` when a required field is absent and
        ``MalformedConfigurationError`` for any other structural problem.
        """
        errors = schema_errors(dict(data), SCHEMA_NAME)
        if errors:
            raise _config_error(errors[0], source)

        rule = data.get("rule", {})
        return cls(
            analyzers=tuple(
                Analyzer(
                    org=entry["org"],
                    name=entry["name"],
                    version=entry.get("version"),
                    repository=entry.get("repository"),
                )
                for entry in data.get("analyzer", [])
            ),
            rules_to_include=tuple(RuleToFilter(i) for i in rule.get("include", [])),
            rules_to_exclude=tuple(RuleToFilter(i) for i in rule.get("exclude", [])),
            platforms=tuple(
                Platform(
                    name=entry["name"],
                    args={k: _stringify(v) for k, v in entry.items() if k != "name"},
                )
                for entry in data.get("platform", [])
            ),
            config_path=data.get("scan", {}).get("configPath"),
        )

    @classmethod
    def loads(cls, text: str, *, source: str = "") -> ScanTomlFile:
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise MalformedConfigurationError(f"invalid TOML: {exc}", source=source) from exc
        return cls.from_dict(data, source=source)

    @classmethod
    def load(cls, path: Path) -> ScanTomlFile:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationFetchError(str(path), str(exc)) from exc
        return cls.loads(text, source=str(path))

    # ── serialisation ───────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        if self.config_path is not None:
            d["scan"] = {"configPath": self.config_path}
        if self.analyzers:
            d["analyzer"] = [a.to_dict() for a in self.analyzers]
        if self.rules_to_include or self.rules_to_exclude:
            d["rule"] = {
                "include": [r.id for r in self.rules_to_include],
                "exclude": [r.id for r in self.rules_to_exclude],
            }
        if self.platforms:
            d["platform"] = [p.to_dict() for p in self.platforms]
        return d

    def to_toml(self) -> str:
        """Render the declarations in the format ``loads`` accepts."""
        blocks: list[list[str]] = []
        if self.config_path is not None:
            blocks.append(["[scan]", f"configPath = {_toml_string(self.config_path)}"])
        for analyzer in self.analyzers:
            blocks.append(["[[analyzer]]", *_toml_pairs(analyzer.to_dict())])
        if self.rules_to_include or self.rules_to_exclude:
            blocks.append(
                [
                    "[rule]",
                    f"include = {_toml_array(r.id for r in self.rules_to_include)}",
                    f"exclude = {_toml_array(r.id for r in self.rules_to_exclude)}",
                ]
            )
        for platform in self.platforms:
            blocks.append(["[[platform]]", *_toml_pairs(platform.to_dict())])
        return "\n\n".join("\n".join(block) for block in blocks) + ("\n" if blocks else "")


def _config_error(error: jsonschema.ValidationError, source: str) -> MalformedConfigurationError:
    path = ".".join(str(p) for p in error.absolute_path)
    if error.validator == "required" and isinstance(error.instance, dict):
        missing = next(
            (f for f in error.validator_value if f not in error.instance),
            str(error.validator_value),
        )
        return MissingConfigFieldError(missing, path=path, source=source)
    return MalformedConfigurationError(f"{path or '<root>'}: {error.message}", source=source)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ── TOML rendering ──────────────────────────────────────────────────

_BARE_KEY_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
}


def _toml_string(value: str) -> str:
    out = []
    for ch in value:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{ord(ch):04X}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def _toml_key(key: str) -> str:
    return key if _BARE_KEY_RE.match(key) else _toml_string(key)


def _toml_array(values: Iterable[str]) -> str:
    return "[" + ", ".join(_toml_string(v) for v in values) + "]"


def _toml_pairs(pairs: Mapping[str, str]) -> list[str]:
    return [f"{_toml_key(k)} = {_toml_string(v)}" for k, v in pairs.items()]
