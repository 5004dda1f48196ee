"""Errors raised while building the registry or loading configuration.

Detector-level anomalies are never raised; these cover the fatal paths
(registry collisions, configuration that cannot be loaded).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from code_scan.config.scan_toml import Analyzer


class ScanError(Exception):
    """Base class for fatal scan setup errors."""


class DuplicateRuleIdError(ScanError):
    def __init__(self, rule_id: str) -> None:
        super().__init__(f"duplicate rule id '{rule_id}'")
        self.rule_id = rule_id


class UnresolvableAnalyzerError(ScanError):
    """A declared analyzer could not be turned into a loaded provider.

    ``reason`` is one of ``missing``, ``version``, ``malformed`` or ``load``.
    """

    MISSING = "missing"
    VERSION = "version"
    MALFORMED = "malformed"
    LOAD = "load"

    def __init__(self, analyzer: Analyzer, reason: str, detail: str = "") -> None:
        message = f"unable to load analyzer '{analyzer.provider}'"
        if analyzer.version:
            message += f" (version {analyzer.version})"
        message += f": {detail or reason}"
        super().__init__(message)
        self.analyzer = analyzer
        self.reason = reason
        self.detail = detail


class MalformedConfigurationError(ScanError):
    def __init__(self, message: str, *, source: str = "") -> None:
        super().__init__(f"{source}: {message}" if source else message)
        self.source = source


class MissingConfigFieldError(MalformedConfigurationError):
    def __init__(self, field: str, *, path: str = "", source: str = "") -> None:
        where = f" in '{path}'" if path else ""
        super().__init__(f"missing required field '{field}'{where}", source=source)
        self.field = field
        self.path = path


class ConfigurationFetchError(ScanError):
    """The override reference could not be read; ``cause`` is kept verbatim."""

    def __init__(self, reference: str, cause: str) -> None:
        super().__init__(f"failed to load configuration file '{reference}': {cause}")
        self.reference = reference
        self.cause = cause
