"""Tests for Document locations and ScannerContext reporting."""

from __future__ import annotations

import textwrap

import pytest

from code_scan.core.context import Document, Reporter, ScannerContext
from code_scan.model import RuleKind, Source
from code_scan.model.issue import Location
from code_scan.model.rule import Rule
from code_scan.rules import CoreRule

_EXTERNAL = Rule.create(1, "No print calls", RuleKind.CODE_SMELL, "acme/lint")


@pytest.fixture()
def document() -> Document:
    return Document.parse(textwrap.dedent("""\
        def f():
            print("hi")
    """), "pkg/mod.py")


class TestDocument:
    def test_location_is_zero_indexed(self, document: Document) -> None:
        call = document.tree.body[0].body[0].value
        assert document.location(call) == Location("pkg/mod.py", 1, 4, 1, 15)

    def test_syntax_error_propagates(self) -> None:
        with pytest.raises(SyntaxError):
            Document.parse("def broken(:\n", "bad.py")

    def test_from_path_uses_relative_posix_name(self, tmp_path) -> None:
        target = tmp_path / "pkg" / "mod.py"
        target.parent.mkdir()
        target.write_text("x = 1\n", encoding="utf-8")
        assert Document.from_path(target, tmp_path).name == "pkg/mod.py"
        assert Document.from_path(target).name == "mod.py"

    def test_from_path_strips_byte_order_mark(self, tmp_path) -> None:
        target = tmp_path / "bom.py"
        target.write_bytes(b"\xef\xbb\xbfx = x\n")
        document = Document.from_path(target)
        assert document.source == "x = x\n"
        assert document.location(document.tree.body[0].value) == Location("bom.py", 0, 4, 0, 5)

    def test_from_path_honours_coding_line(self, tmp_path) -> None:
        target = tmp_path / "legacy.py"
        target.write_bytes(b'# -*- coding: latin-1 -*-\nname = "caf\xe9"\n')
        document = Document.from_path(target)
        assert "café" in document.source
        assert document.tree.body[0].value.value == "café"


class TestScannerContext:
    def test_reports_enabled_builtin(self, document: Document) -> None:
        context = ScannerContext(CoreRule.rules())
        issue = context.report_issue(document, document.tree.body[0], CoreRule.PUBLIC_NON_ISOLATED_FUNCTION)
        assert issue is not None
        assert issue.source == Source.BUILT_IN
        assert context.reporter.issues == [issue]

    def test_disabled_rule_dropped(self, document: Document) -> None:
        context = ScannerContext([CoreRule.SELF_ASSIGNMENT.rule])
        assert context.report_issue(document, document.tree.body[0], CoreRule.AVOID_EXIT_ON_ERROR) is None
        assert len(context.reporter) == 0

    def test_numeric_id_within_provider(self, document: Document) -> None:
        context = ScannerContext([*CoreRule.rules(), _EXTERNAL])
        view = context.for_provider("acme/lint")
        location = Location("pkg/mod.py", 1, 4, 1, 15)
        issue = view.report_issue(document, location, 1)
        assert issue is not None
        assert issue.rule == _EXTERNAL
        assert issue.source == Source.EXTERNAL
        assert context.reporter.issues == [issue]
        assert view.report_issue(document, location, 2) is None

    def test_numeric_id_without_provider(self, document: Document) -> None:
        context = ScannerContext(CoreRule.rules())
        with pytest.raises(KeyError):
            context.report_issue(document, document.tree.body[0], 1)

    def test_is_enabled(self) -> None:
        context = ScannerContext([_EXTERNAL], provider="acme/lint")
        assert context.is_enabled(1)
        assert context.is_enabled(_EXTERNAL)
        assert not context.is_enabled(CoreRule.SELF_ASSIGNMENT)
        assert context.enabled_rules == frozenset({_EXTERNAL})


def test_reporter_returns_copy() -> None:
    reporter = Reporter()
    reporter.issues.append("x")  # type: ignore[arg-type]
    assert len(reporter) == 0
