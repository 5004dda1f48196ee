"""Runner: resolves the enabled rules, analyses documents, notifies platforms."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from code_scan.analyzers.static_code import StaticCodeAnalyzer
from code_scan.config.load import ScanConfiguration, compute_enabled_rules
from code_scan.core.context import Document, ScannerContext
from code_scan.model.issue import Issue
from code_scan.model.rule import Rule
from code_scan.plugins import PlatformPlugin, PlatformPluginContext
from code_scan.utils.json_norm import stable_json_dumps

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    issues: tuple[Issue, ...]
    enabled_rules: tuple[Rule, ...]
    unknown_filter_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled_rules": [rule.id for rule in self.enabled_rules],
            "unknown_filter_ids": list(self.unknown_filter_ids),
            "issues": [issue.to_dict() for issue in self.issues],
        }

    def to_json(self) -> str:
        return stable_json_dumps(self.to_dict())


def analyze_document(
    document: Document,
    configuration: ScanConfiguration,
    enabled_rules: Iterable[Rule],
) -> list[Issue]:
    """Issues for one document: built-in first, then each external analyzer."""
    context = ScannerContext(enabled_rules)
    StaticCodeAnalyzer(document, context).analyze()

    for loaded in configuration.analyzers:
        try:
            loaded.plugin.analyze(document, context.for_provider(loaded.provider))
        except Exception:
            _logger.exception(
                "Analyzer '%s' raised an exception on %s; skipped",
                loaded.provider,
                document.name,
            )
    return context.reporter.issues


def run_scan(
    documents: Iterable[Document],
    configuration: ScanConfiguration | None = None,
    *,
    platform_plugins: Sequence[PlatformPlugin] = (),
    initiated_by_platform: bool = False,
) -> ScanResult:
    """Analyse *documents* in order and hand the issues to declared platforms.

    The enabled-rule set is computed once and is read-only for the run.
    """
    configuration = configuration if configuration is not None else ScanConfiguration()
    registry = configuration.build_registry()
    effective = compute_enabled_rules(registry, configuration.scan_toml)
    _logger.debug("%d of %d rules enabled", len(effective.enabled), len(registry))

    # ── 1. analyse every document ───────────────────────────────────
    issues: list[Issue] = []
    for document in documents:
        issues.extend(analyze_document(document, configuration, effective.enabled))

    result = ScanResult(
        issues=tuple(issues),
        enabled_rules=effective.enabled,
        unknown_filter_ids=effective.unknown_filter_ids,
    )

    # ── 2. notify declared platforms ────────────────────────────────
    _notify_platforms(result, configuration, platform_plugins, initiated_by_platform)
    return result


def _notify_platforms(
    result: ScanResult,
    configuration: ScanConfiguration,
    platform_plugins: Sequence[PlatformPlugin],
    initiated_by_platform: bool,
) -> None:
    by_name: dict[str, PlatformPlugin] = {}
    for plugin in platform_plugins:
        by_name.setdefault(plugin.platform(), plugin)

    for platform in configuration.scan_toml.platforms:
        plugin = by_name.get(platform.name)
        if plugin is None:
            _logger.warning("No plugin available for platform '%s'", platform.name)
            continue
        try:
            plugin.init(
                PlatformPluginContext(
                    platform_args=platform.args,
                    initiated_by_platform=initiated_by_platform,
                )
            )
            plugin.on_scan(result.issues)
        except Exception:
            _logger.exception("Platform plugin '%s' raised an exception; skipped", platform.name)
