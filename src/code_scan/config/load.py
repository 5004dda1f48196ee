"""Resolve the run's configuration and its effective rule set.

Loading order:
  1. the local Scan.toml (absent file -> empty declaration);
  2. the override reference (explicit argument, else ``[scan] configPath``)
     is fetched and *replaces* the local declarations entirely;
  3. every declared analyzer is resolved; the first failure aborts the load.

No partially loaded configuration is ever returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlsplit
from urllib.request import url2pathname

import httpx

from code_scan.analyzers import StaticCodeAnalyzerPlugin
from code_scan.config.scan_toml import Analyzer, ScanTomlFile
from code_scan.errors import ConfigurationFetchError, MalformedConfigurationError
from code_scan.model.rule import Rule
from code_scan.plugins import EntryPointResolver, ProviderResolver
from code_scan.rules import RuleRegistry

_logger = logging.getLogger(__name__)

SCAN_TOML = "Scan.toml"

# Seconds; remote configuration is fetched once per run.
_FETCH_TIMEOUT = 30.0


@dataclass(frozen=True)
class LoadedAnalyzer:
    declaration: Analyzer
    plugin: StaticCodeAnalyzerPlugin

    @property
    def provider(self) -> str:
        return self.declaration.provider


@dataclass(frozen=True)
class ScanConfiguration:
    """Resolved, read-only configuration for one run."""

    scan_toml: ScanTomlFile = field(default_factory=ScanTomlFile)
    analyzers: tuple[LoadedAnalyzer, ...] = ()

    def build_registry(self) -> RuleRegistry:
        """Built-in catalog plus every loaded analyzer's rules."""
        registry = RuleRegistry()
        for loaded in self.analyzers:
            registry.register(loaded.provider, loaded.plugin.rules())
        return registry


@dataclass(frozen=True)
class EffectiveRules:
    enabled: tuple[Rule, ...]
    unknown_filter_ids: tuple[str, ...] = ()

    @property
    def ids(self) -> list[str]:
        return [rule.id for rule in self.enabled]


def compute_enabled_rules(registry: RuleRegistry, scan_toml: ScanTomlFile) -> EffectiveRules:
    """Apply include then exclude filters to the full catalog.

    A non-empty include list restricts the catalog to the named rules;
    excluded rules are removed regardless of inclusion. Filter ids that match
    no rule are logged and ignored.
    """
    unknown: list[str] = []

    def _known(filters) -> set[str]:
        ids: set[str] = set()
        for rule_filter in filters:
            if rule_filter.id in registry:
                ids.add(rule_filter.id)
            elif rule_filter.id not in unknown:
                unknown.append(rule_filter.id)
                _logger.warning(
                    "rule filter '%s' does not match any known rule and is ignored",
                    rule_filter.id,
                )
        return ids

    include = _known(scan_toml.rules_to_include)
    exclude = _known(scan_toml.rules_to_exclude)
    restrict = bool(scan_toml.rules_to_include)

    enabled = tuple(
        rule
        for rule in registry.all()
        if (not restrict or rule.id in include) and rule.id not in exclude
    )
    return EffectiveRules(enabled=enabled, unknown_filter_ids=tuple(unknown))


def fetch_config_text(
    reference: str,
    base_dir: Path | None = None,
    *,
    client: httpx.Client | None = None,
) -> str:
    """Read an external configuration from a URL or a local path.

    Relative paths resolve against *base_dir*. Raises
    ``ConfigurationFetchError`` carrying the underlying cause.
    """
    parts = urlsplit(reference)
    scheme = parts.scheme.lower()

    if scheme in ("http", "https"):
        _logger.debug("fetching remote configuration %s", reference)
        try:
            if client is None:
                with httpx.Client(timeout=_FETCH_TIMEOUT, follow_redirects=True) as owned:
                    response = owned.get(reference)
            else:
                response = client.get(reference)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ConfigurationFetchError(reference, str(exc)) from exc
        return response.text

    if scheme == "file":
        path = Path(url2pathname(parts.path))
    elif scheme and len(scheme) > 1:
        raise ConfigurationFetchError(reference, f"unknown protocol: {scheme}")
    else:
        path = Path(reference)
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        if not path.is_file():
            raise ConfigurationFetchError(reference, f"no protocol: {reference}")

    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationFetchError(reference, str(exc)) from exc


def load_scan_config(
    primary: Path | None = None,
    external: str | None = None,
    *,
    resolver: ProviderResolver | None = None,
    client: httpx.Client | None = None,
) -> ScanConfiguration:
    """Load, override and resolve the run's configuration.

    *primary* is the local Scan.toml (a directory means ``<dir>/Scan.toml``).
    *external* overrides any ``[scan] configPath`` declared locally.
    """
    scan_toml = ScanTomlFile()
    base_dir: Path | None = None
    if primary is not None:
        if primary.is_dir():
            primary = primary / SCAN_TOML
        base_dir = primary.parent
        if primary.is_file():
            scan_toml = ScanTomlFile.load(primary)
        else:
            _logger.debug("no configuration file at %s; using defaults", primary)

    reference = external or scan_toml.config_path
    if reference:
        text = fetch_config_text(reference, base_dir, client=client)
        scan_toml = ScanTomlFile.loads(text, source=reference)
        _logger.info("using external configuration %s", reference)

    source = reference or (str(primary) if primary is not None else "")
    seen: set[str] = set()
    for analyzer in scan_toml.analyzers:
        if analyzer.provider in seen:
            raise MalformedConfigurationError(
                f"analyzer '{analyzer.provider}' is declared more than once", source=source
            )
        seen.add(analyzer.provider)

    resolver = resolver if resolver is not None else EntryPointResolver()
    loaded = tuple(
        LoadedAnalyzer(declaration=analyzer, plugin=resolver.resolve(analyzer))
        for analyzer in scan_toml.analyzers
    )
    configuration = ScanConfiguration(scan_toml=scan_toml, analyzers=loaded)
    # Rule id collisions between providers fail the load, not the run.
    configuration.build_registry()
    return configuration
