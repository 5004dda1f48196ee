"""Analyzers report issues for one parsed document.

Two kinds participate in a scan:

1. **Built-in**: ``StaticCodeAnalyzer`` walks the document once and applies
   every enabled ``CoreRule``.

2. **External**: providers declared under ``[[analyzer]]`` in Scan.toml.
   Each one satisfies ``StaticCodeAnalyzerPlugin``: it declares its rules
   (namespaced ``<org>/<module>:<n>``) and reports issues through the
   ``ScannerContext`` it is handed, addressing its rules by numeric id.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from code_scan.core.context import Document, ScannerContext
    from code_scan.model.rule import Rule


@runtime_checkable
class StaticCodeAnalyzerPlugin(Protocol):
    """Contract for externally contributed analyzers."""

    def rules(self) -> list[Rule]:
        """Rules this provider contributes, namespaced with its provider id."""
        ...

    def analyze(self, document: Document, context: ScannerContext) -> None:
        """Report issues for *document* through *context*."""
        ...


# Lazy imports to avoid circular dependencies
def __getattr__(name: str):
    if name == "StaticCodeAnalyzer":
        from .static_code import StaticCodeAnalyzer
        return StaticCodeAnalyzer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
