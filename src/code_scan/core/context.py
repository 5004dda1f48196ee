"""Per-document scan state: the parsed document, the reporter and the context.

A ``ScannerContext`` and its ``Reporter`` belong to one document analysis.
They are not thread-safe; documents analysed in parallel each get their own.
"""

from __future__ import annotations

import ast
import re
import tokenize
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Iterable, Union

from code_scan.model import Source
from code_scan.model.issue import Issue, Location
from code_scan.model.rule import Rule
from code_scan.rules import CoreRule

_NEWLINE_RE = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class Document:
    """One parsed source document, borrowed read-only by the analyzers."""

    name: str
    tree: ast.Module
    source: str = ""

    @classmethod
    def parse(cls, source: str, name: str = "<unknown>") -> Document:
        """Parse *source*; ``SyntaxError`` propagates to the caller."""
        return cls(name=name, tree=ast.parse(source, filename=name), source=source)

    @classmethod
    def from_path(cls, path: Path, root: Path | None = None) -> Document:
        # Honours a BOM or a PEP 263 coding line.
        with tokenize.open(path) as fh:
            source = fh.read()
        name = path.relative_to(root).as_posix() if root else path.name
        return cls.parse(source, name)

    def location(self, node: ast.AST) -> Location:
        """Location of *node* with 0-indexed lines and character offsets."""
        start_line = node.lineno - 1
        end_line = (node.end_lineno or node.lineno) - 1
        end_col = node.end_col_offset if node.end_col_offset is not None else node.col_offset
        return Location(
            file_name=self.name,
            start_line=start_line,
            start_offset=self._char_offset(start_line, node.col_offset),
            end_line=end_line,
            end_offset=self._char_offset(end_line, end_col),
        )

    @cached_property
    def _lines(self) -> list[str]:
        return _NEWLINE_RE.split(self.source)

    def _char_offset(self, line: int, byte_offset: int) -> int:
        # ``ast`` columns are UTF-8 byte offsets.
        if not self.source or line >= len(self._lines):
            return byte_offset
        prefix = self._lines[line].encode("utf-8")[:byte_offset]
        return len(prefix.decode("utf-8", errors="ignore"))


class Reporter:
    """Append-only issue list; insertion order is detection order."""

    def __init__(self) -> None:
        self._issues: list[Issue] = []

    def report(self, issue: Issue) -> None:
        self._issues.append(issue)

    @property
    def issues(self) -> list[Issue]:
        return list(self._issues)

    def __len__(self) -> int:
        return len(self._issues)


RuleRef = Union[Rule, CoreRule, int]


class ScannerContext:
    """Enabled-rule set plus reporter, passed to every analyzer invocation.

    ``provider`` scopes numeric rule references: an external analyzer gets a
    view bound to its own ``org/module`` namespace via ``for_provider``.
    """

    def __init__(
        self,
        enabled_rules: Iterable[Rule],
        reporter: Reporter | None = None,
        *,
        provider: str | None = None,
    ) -> None:
        self._enabled = {rule.id: rule for rule in enabled_rules}
        self._reporter = reporter if reporter is not None else Reporter()
        self._provider = provider

    @property
    def reporter(self) -> Reporter:
        return self._reporter

    @property
    def provider(self) -> str | None:
        return self._provider

    @property
    def enabled_rules(self) -> frozenset[Rule]:
        return frozenset(self._enabled.values())

    def for_provider(self, provider: str) -> ScannerContext:
        view = ScannerContext((), self._reporter, provider=provider)
        view._enabled = self._enabled
        return view

    def is_enabled(self, rule: RuleRef) -> bool:
        if isinstance(rule, int):
            return self._qualify(rule) in self._enabled
        return _as_rule(rule).id in self._enabled

    def report_issue(
        self,
        document: Document,
        where: ast.AST | Location,
        rule: RuleRef,
    ) -> Issue | None:
        """Record an issue for *rule*; disabled rules are dropped (returns None)."""
        if isinstance(rule, int):
            qualified = self._qualify(rule)
            resolved = self._enabled.get(qualified)
            if resolved is None:
                return None
        else:
            resolved = _as_rule(rule)
            if resolved.id not in self._enabled:
                return None
        location = where if isinstance(where, Location) else document.location(where)
        issue = Issue(
            rule=resolved,
            location=location,
            source=Source.BUILT_IN if resolved.is_built_in else Source.EXTERNAL,
        )
        self._reporter.report(issue)
        return issue

    def _qualify(self, numeric_id: int) -> str:
        if self._provider is None:
            raise KeyError(f"numeric rule id {numeric_id} used without a provider")
        return f"{self._provider}:{numeric_id}"


def _as_rule(rule: Rule | CoreRule) -> Rule:
    return rule.rule if isinstance(rule, CoreRule) else rule
