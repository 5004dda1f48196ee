"""Shared utilities for code_scan."""

from code_scan.utils.json_norm import stable_json_dumps

__all__ = ["stable_json_dumps"]
