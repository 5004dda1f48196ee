"""Extension contract for platform plugins and externally contributed analyzers.

Platform plugins (``[[platform]]`` in Scan.toml) receive a
``PlatformPluginContext`` and consume the scan results. Analyzer providers
(``[[analyzer]]``) are resolved through a ``ProviderResolver``; the default
one looks them up among installed entry points.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from importlib.metadata import entry_points
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping, Protocol, Sequence, runtime_checkable

from code_scan.analyzers import StaticCodeAnalyzerPlugin
from code_scan.errors import UnresolvableAnalyzerError

if TYPE_CHECKING:
    from code_scan.config.scan_toml import Analyzer
    from code_scan.model.issue import Issue

_logger = logging.getLogger(__name__)

ANALYZER_ENTRY_POINT_GROUP = "code_scan.analyzers"


@dataclass(frozen=True)
class PlatformPluginContext:
    """Read-only context handed to a platform plugin for one run.

    ``platform_args`` holds the arguments declared under the platform's
    ``[[platform]]`` entry. ``initiated_by_platform`` is True when the hosting
    platform's own workflow triggered the scan; plugins use it to skip side
    effects such as uploading results.
    """

    platform_args: Mapping[str, str] = field(default_factory=dict)
    initiated_by_platform: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "platform_args", MappingProxyType(dict(self.platform_args))
        )


@runtime_checkable
class PlatformPlugin(Protocol):
    """Consumer of scan results for one named platform."""

    def platform(self) -> str:
        ...

    def init(self, context: PlatformPluginContext) -> None:
        ...

    def on_scan(self, issues: Sequence[Issue]) -> None:
        ...


class ProviderResolver(Protocol):
    def resolve(self, analyzer: Analyzer) -> StaticCodeAnalyzerPlugin:
        """Return the loaded provider or raise ``UnresolvableAnalyzerError``."""
        ...


class ProviderMapResolver:
    """Resolves analyzers from providers supplied by the embedding program."""

    def __init__(self, providers: Mapping[str, StaticCodeAnalyzerPlugin]) -> None:
        self._providers = dict(providers)

    def resolve(self, analyzer: Analyzer) -> StaticCodeAnalyzerPlugin:
        plugin = self._providers.get(analyzer.provider)
        if plugin is None:
            raise UnresolvableAnalyzerError(
                analyzer,
                UnresolvableAnalyzerError.MISSING,
                f"package '{analyzer.provider}' not found",
            )
        return plugin


class EntryPointResolver:
    """Resolves analyzers from installed distributions.

    A provider package advertises itself with an entry point named
    ``<org>/<name>`` in the ``code_scan.analyzers`` group; the target is a
    plugin instance or a zero-argument plugin class.
    """

    def __init__(self, group: str = ANALYZER_ENTRY_POINT_GROUP) -> None:
        self._group = group

    def resolve(self, analyzer: Analyzer) -> StaticCodeAnalyzerPlugin:
        matches = list(entry_points(group=self._group, name=analyzer.provider))
        if not matches:
            raise UnresolvableAnalyzerError(
                analyzer,
                UnresolvableAnalyzerError.MISSING,
                f"package '{analyzer.provider}' not found in entry point group '{self._group}'",
            )
        entry = matches[0]

        if analyzer.version is not None:
            installed = entry.dist.version if entry.dist is not None else None
            if installed != analyzer.version:
                raise UnresolvableAnalyzerError(
                    analyzer,
                    UnresolvableAnalyzerError.VERSION,
                    f"installed version {installed or 'unknown'} does not match "
                    f"declared version {analyzer.version}",
                )
        if analyzer.repository:
            _logger.debug(
                "analyzer '%s' declares repository '%s'", analyzer.provider, analyzer.repository
            )

        try:
            target = entry.load()
            plugin = target() if isinstance(target, type) else target
        except Exception as exc:
            raise UnresolvableAnalyzerError(
                analyzer,
                UnresolvableAnalyzerError.LOAD,
                f"{type(exc).__name__}: {exc}",
            ) from exc

        if not isinstance(plugin, StaticCodeAnalyzerPlugin):
            raise UnresolvableAnalyzerError(
                analyzer,
                UnresolvableAnalyzerError.MALFORMED,
                f"entry point '{entry.value}' does not provide rules() and analyze()",
            )
        _logger.debug("loaded analyzer '%s' from %s", analyzer.provider, entry.value)
        return plugin
