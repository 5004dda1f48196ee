"""Integration tests for run_scan: built-in and external analyzers, platforms."""

from __future__ import annotations

import ast
import json
import logging
import textwrap

import pytest

from code_scan.config.load import LoadedAnalyzer, ScanConfiguration
from code_scan.config.scan_toml import Analyzer, Platform, RuleToFilter, ScanTomlFile
from code_scan.core.context import Document, ScannerContext
from code_scan.core.runner import run_scan
from code_scan.model import RuleKind, Source
from code_scan.model.rule import Rule
from code_scan.plugins import PlatformPlugin, PlatformPluginContext


class NoPrintAnalyzer:
    """Reports every ``print(...)`` call as ``acme/lint:1``."""

    def rules(self) -> list[Rule]:
        return [Rule.create(1, "Avoid print calls", RuleKind.CODE_SMELL, "acme/lint")]

    def analyze(self, document: Document, context: ScannerContext) -> None:
        for node in ast.walk(document.tree):
            if isinstance(node, ast.Call) and getattr(node.func, "id", None) == "print":
                context.report_issue(document, node, 1)


class CrashingAnalyzer:
    def rules(self) -> list[Rule]:
        return [Rule.create(1, "Never reported", RuleKind.BUG, "acme/crash")]

    def analyze(self, document: Document, context: ScannerContext) -> None:
        raise RuntimeError("boom")


class RecordingPlatform:
    def __init__(self, name: str = "dashboard") -> None:
        self._name = name
        self.context: PlatformPluginContext | None = None
        self.received: list = []

    def platform(self) -> str:
        return self._name

    def init(self, context: PlatformPluginContext) -> None:
        self.context = context

    def on_scan(self, issues) -> None:
        self.received = list(issues)


def _doc(code: str, name: str = "app.py") -> Document:
    return Document.parse(textwrap.dedent(code), name)


def _config(*loaded: LoadedAnalyzer, **scan_toml) -> ScanConfiguration:
    return ScanConfiguration(scan_toml=ScanTomlFile(**scan_toml), analyzers=loaded)


_LINT = LoadedAnalyzer(Analyzer("acme", "lint"), NoPrintAnalyzer())
_CRASH = LoadedAnalyzer(Analyzer("acme", "crash"), CrashingAnalyzer())

_SOURCE = """\
def _show(value):
    value = value
    print(value)
"""


class TestRunScan:
    def test_default_configuration_runs_builtins(self) -> None:
        result = run_scan([_doc(_SOURCE)])
        assert [i.rule.id for i in result.issues] == ["python:10"]
        assert len(result.enabled_rules) == 12

    def test_external_issues_follow_builtins_per_document(self) -> None:
        docs = [_doc(_SOURCE, "a.py"), _doc("print(1)\n", "b.py")]
        result = run_scan(docs, _config(_LINT))
        assert [(i.location.file_name, i.rule.id) for i in result.issues] == [
            ("a.py", "python:10"),
            ("a.py", "acme/lint:1"),
            ("b.py", "acme/lint:1"),
        ]
        external = result.issues[1]
        assert external.source == Source.EXTERNAL
        assert external.location.start == (2, 4)

    def test_excluded_external_rule_not_reported(self) -> None:
        config = _config(_LINT, rules_to_exclude=(RuleToFilter("acme/lint:1"),))
        result = run_scan([_doc(_SOURCE)], config)
        assert [i.rule.id for i in result.issues] == ["python:10"]

    def test_include_only_external(self) -> None:
        config = _config(_LINT, rules_to_include=(RuleToFilter("acme/lint:1"),))
        result = run_scan([_doc(_SOURCE)], config)
        assert [i.rule.id for i in result.issues] == ["acme/lint:1"]
        assert [r.id for r in result.enabled_rules] == ["acme/lint:1"]

    def test_crashing_analyzer_is_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR, logger="code_scan.core.runner"):
            result = run_scan([_doc(_SOURCE)], _config(_CRASH, _LINT))
        assert [i.rule.id for i in result.issues] == ["python:10", "acme/lint:1"]
        assert "acme/crash" in caplog.text

    def test_unknown_filters_surface_in_result(self) -> None:
        config = _config(rules_to_exclude=(RuleToFilter("python:42"),))
        result = run_scan([], config)
        assert result.unknown_filter_ids == ("python:42",)
        assert result.issues == ()

    def test_result_json_is_stable(self) -> None:
        docs = [_doc(_SOURCE)]
        first = run_scan(docs, _config(_LINT)).to_json()
        second = run_scan(docs, _config(_LINT)).to_json()
        assert first == second
        payload = json.loads(first)
        assert payload["issues"][0]["rule"]["id"] == "python:10"
        assert payload["enabled_rules"][-1] == "acme/lint:1"


class TestPlatforms:
    def test_declared_platform_receives_args_and_issues(self) -> None:
        plugin = RecordingPlatform()
        assert isinstance(plugin, PlatformPlugin)
        config = _config(platforms=(Platform("dashboard", {"url": "https://dash"}),))
        result = run_scan(
            [_doc(_SOURCE)], config, platform_plugins=[plugin], initiated_by_platform=True
        )
        assert plugin.context is not None
        assert dict(plugin.context.platform_args) == {"url": "https://dash"}
        assert plugin.context.initiated_by_platform is True
        assert plugin.received == list(result.issues)

    def test_undeclared_platform_not_notified(self) -> None:
        plugin = RecordingPlatform()
        run_scan([_doc(_SOURCE)], _config(), platform_plugins=[plugin])
        assert plugin.context is None

    def test_declared_platform_without_plugin_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        config = _config(platforms=(Platform("sonarqube"),))
        with caplog.at_level(logging.WARNING, logger="code_scan.core.runner"):
            run_scan([_doc(_SOURCE)], config, platform_plugins=[RecordingPlatform()])
        assert "sonarqube" in caplog.text

    def test_context_args_read_only(self) -> None:
        context = PlatformPluginContext({"k": "v"})
        with pytest.raises(TypeError):
            context.platform_args["k"] = "w"  # type: ignore[index]
        assert context.initiated_by_platform is False
