"""Tests for the Scan.toml model: parsing, validation and rendering."""

from __future__ import annotations

import textwrap

import pytest

from code_scan.config.scan_toml import Analyzer, Platform, RuleToFilter, ScanTomlFile
from code_scan.errors import MalformedConfigurationError, MissingConfigFieldError

_FULL = textwrap.dedent("""\
    [scan]
    configPath = "https://example.com/Scan.toml"

    [[analyzer]]
    org = "acme"
    name = "lint"
    version = "1.2.0"
    repository = "https://pkgs.example.com/simple"

    [[analyzer]]
    org = "acme"
    name = "extra"

    [rule]
    include = ["python:1", "acme/lint:3"]
    exclude = ["python:2"]

    [[platform]]
    name = "sonarqube"
    token = "s3cr3t"
    port = 9000
    verbose = true
""")


class TestParse:
    def test_full_document(self) -> None:
        scan = ScanTomlFile.loads(_FULL)
        assert scan.config_path == "https://example.com/Scan.toml"
        assert scan.analyzers == (
            Analyzer("acme", "lint", "1.2.0", "https://pkgs.example.com/simple"),
            Analyzer("acme", "extra"),
        )
        assert scan.analyzers[0].provider == "acme/lint"
        assert scan.rules_to_include == (RuleToFilter("python:1"), RuleToFilter("acme/lint:3"))
        assert scan.rules_to_exclude == (RuleToFilter("python:2"),)
        assert scan.platforms[0].name == "sonarqube"
        assert dict(scan.platforms[0].args) == {"token": "s3cr3t", "port": "9000", "verbose": "true"}

    def test_empty_document(self) -> None:
        scan = ScanTomlFile.loads("")
        assert scan == ScanTomlFile()
        assert scan.config_path is None

    def test_duplicates_collapse_in_declaration_order(self) -> None:
        scan = ScanTomlFile.loads(textwrap.dedent("""\
            [rule]
            include = ["python:3", "python:1", "python:3"]

            [[analyzer]]
            org = "acme"
            name = "lint"

            [[analyzer]]
            org = "acme"
            name = "lint"
        """))
        assert [r.id for r in scan.rules_to_include] == ["python:3", "python:1"]
        assert len(scan.analyzers) == 1

    def test_platform_args_are_read_only(self) -> None:
        platform = Platform("ci", {"a": "1"})
        with pytest.raises(TypeError):
            platform.args["a"] = "2"  # type: ignore[index]


class TestValidation:
    def test_missing_analyzer_field(self) -> None:
        with pytest.raises(MissingConfigFieldError) as excinfo:
            ScanTomlFile.loads('[[analyzer]]\nname = "lint"\n', source="Scan.toml")
        assert excinfo.value.field == "org"
        assert excinfo.value.path == "analyzer.0"
        assert "Scan.toml" in str(excinfo.value)

    def test_missing_platform_name(self) -> None:
        with pytest.raises(MissingConfigFieldError, match="'name'"):
            ScanTomlFile.loads('[[platform]]\ntoken = "x"\n')

    def test_invalid_toml(self) -> None:
        with pytest.raises(MalformedConfigurationError, match="invalid TOML"):
            ScanTomlFile.loads("[rule\ninclude = ")

    @pytest.mark.parametrize(
        "text",
        [
            '[rule]\ninclude = "python:1"\n',
            '[rules]\ninclude = ["python:1"]\n',
            '[[analyzer]]\norg = "acme"\nname = "lint"\nversion = 1\n',
            '[[analyzer]]\norg = "a b"\nname = "lint"\n',
        ],
    )
    def test_wrong_shapes_rejected(self, text: str) -> None:
        with pytest.raises(MalformedConfigurationError):
            ScanTomlFile.loads(text)


class TestRender:
    def test_round_trip(self) -> None:
        scan = ScanTomlFile.loads(_FULL)
        assert ScanTomlFile.loads(scan.to_toml()) == scan

    def test_round_trip_escapes_strings(self) -> None:
        scan = ScanTomlFile(
            platforms=(Platform("ci", {"quote": 'say "hi"\n', "odd key": "back\\slash"}),),
        )
        assert ScanTomlFile.loads(scan.to_toml()) == scan

    def test_empty_renders_empty(self) -> None:
        assert ScanTomlFile().to_toml() == ""

    def test_to_dict(self) -> None:
        d = ScanTomlFile.loads(_FULL).to_dict()
        assert d["rule"] == {"include": ["python:1", "acme/lint:3"], "exclude": ["python:2"]}
        assert d["analyzer"][1] == {"org": "acme", "name": "extra"}
        assert d["platform"][0]["port"] == "9000"
