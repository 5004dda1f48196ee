"""Scan.toml model and configuration loading."""

from code_scan.config.load import (  # noqa: F401
    EffectiveRules,
    LoadedAnalyzer,
    ScanConfiguration,
    compute_enabled_rules,
    fetch_config_text,
    load_scan_config,
)
from code_scan.config.scan_toml import (  # noqa: F401
    Analyzer,
    Platform,
    RuleToFilter,
    ScanTomlFile,
)
