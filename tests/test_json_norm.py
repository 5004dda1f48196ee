"""Tests for the canonical JSON normalization layer."""

import json
from pathlib import Path

from code_scan.model import Source
from code_scan.model.issue import Location
from code_scan.utils.json_norm import stable_json_dumps


def test_stable_json_dumps_sorts_keys_and_adds_newline():
    s = stable_json_dumps({"b": 1, "a": 2})
    assert s.endswith("\n")
    # Keys should be sorted in the serialized output
    assert s.index('"a"') < s.index('"b"')


def test_stable_json_dumps_normalizes_paths():
    s = stable_json_dumps({"p": Path("a") / "b"})
    obj = json.loads(s)
    assert obj["p"] == "a/b"


def test_stable_json_dumps_converts_enums_and_dataclasses():
    obj = json.loads(stable_json_dumps({"source": Source.EXTERNAL, "loc": Location("a.py", 0, 1, 0, 2)}))
    assert obj["source"] == "EXTERNAL"
    assert obj["loc"]["end_offset"] == 2


def test_stable_json_dumps_keeps_non_ascii():
    assert "é" in stable_json_dumps({"name": "é"})
