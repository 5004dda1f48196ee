"""code_scan: rule registry, single-pass static analyzer and Scan.toml configuration."""

__all__ = [
    "__version__",
    # Registry and model
    "CoreRule",
    "RuleRegistry",
    "Rule",
    "RuleKind",
    "Source",
    "Issue",
    "Location",
    # Analysis
    "Document",
    "ScannerContext",
    "StaticCodeAnalyzer",
    "run_scan",
    "ScanResult",
    # Configuration
    "ScanTomlFile",
    "load_scan_config",
    "compute_enabled_rules",
]
__version__ = "0.1.0"

from code_scan.model import RuleKind, Source  # noqa: E402
from code_scan.model.issue import Issue, Location  # noqa: E402
from code_scan.model.rule import Rule  # noqa: E402
from code_scan.rules import CoreRule, RuleRegistry  # noqa: E402
from code_scan.core.context import Document, ScannerContext  # noqa: E402
from code_scan.analyzers.static_code import StaticCodeAnalyzer  # noqa: E402
from code_scan.config.scan_toml import ScanTomlFile  # noqa: E402
from code_scan.config.load import compute_enabled_rules, load_scan_config  # noqa: E402
from code_scan.core.runner import ScanResult, run_scan  # noqa: E402
