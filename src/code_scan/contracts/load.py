"""Load bundled JSON schemas and validate instances against them.

Usage::

    from code_scan.contracts.load import schema_errors

    errors = schema_errors(scan_toml_dict, "scan_toml.schema.json")
"""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import jsonschema

SCHEMA_DIR = "data/schemas"


def _schema_path(name: str) -> Path:
    """Resolve a bundled schema.

    Priority:
    1. Canonical ``src/code_scan/data/schemas/`` (relative to this file)
    2. pip-installed package data via importlib.resources
    """
    canonical = Path(__file__).resolve().parents[1] / SCHEMA_DIR / name
    if canonical.exists():
        return canonical
    with resources.as_file(resources.files("code_scan") / SCHEMA_DIR / name) as p:
        return p


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict[str, Any]:
    """Load a bundled JSON schema by filename."""
    path = _schema_path(name)
    return json.loads(path.read_text(encoding="utf-8"))


def schema_errors(instance: Any, schema_name: str) -> list[jsonschema.ValidationError]:
    """All validation errors for *instance*, ordered by location in the document."""
    schema = load_schema(schema_name)
    validator_cls = jsonschema.validators.validator_for(schema)
    validator = validator_cls(schema)
    return sorted(validator.iter_errors(instance), key=lambda e: list(map(str, e.absolute_path)))

