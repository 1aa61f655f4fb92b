"""Tests for the apicize-extract CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from apicize_extract.cli.app import app

runner = CliRunner()


@pytest.fixture
def spec_file(tmp_path: Path, sample_spec: str) -> Path:
    path = tmp_path / "users.spec.ts"
    path.write_text(sample_spec, encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "args",
    [
        [],
        ["extract"],
        ["metadata"],
        ["stats"],
    ],
    ids=["root", "extract", "metadata", "stats"],
)
def test_short_help_flag(args: list[str]) -> None:
    result = runner.invoke(app, [*args, "-h"])
    assert result.exit_code == 0
    assert "Usage" in result.output


def test_extract_prints_tree(spec_file: Path) -> None:
    result = runner.invoke(app, ["extract", str(spec_file)])
    assert result.exit_code == 0
    assert "'Demo'" in result.output
    assert "'returns 200'" in result.output
    assert "before" in result.output


def test_extract_json(spec_file: Path) -> None:
    result = runner.invoke(app, ["extract", "--json", str(spec_file)])
    assert result.exit_code == 0
    data = json.loads(result.output)
    extracted = data[str(spec_file)]
    assert extracted["root_blocks"][0]["name"] == "Demo"
    assert extracted["request_metadata"][0]["id"] == "req-1"
    assert extracted["errors"] == []


def test_extract_strict_failure_exits_nonzero(tmp_path: Path) -> None:
    path = tmp_path / "empty.spec.ts"
    path.write_text("const a = 1;\n", encoding="utf-8")
    result = runner.invoke(app, ["extract", "--strict", str(path)])
    assert result.exit_code == 1
    assert "No test blocks found in strict mode" in result.output


def test_extract_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["extract", str(tmp_path / "missing.spec.ts")])
    assert result.exit_code == 1
    assert "File not found" in result.output


def test_metadata_table(spec_file: Path) -> None:
    result = runner.invoke(app, ["metadata", str(spec_file)])
    assert result.exit_code == 0
    assert "req-1" in result.output
    assert "group-1" in result.output
    assert "(3 rows)" in result.output


def test_metadata_json(spec_file: Path) -> None:
    result = runner.invoke(app, ["metadata", "--json", str(spec_file)])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["file_metadata"]["payload"]["source"] == "demo.apicize"
    assert data["request_metadata"][0]["test_code"].startswith("it('returns 200'")


def test_metadata_rejects_non_utf8_file(tmp_path: Path) -> None:
    path = tmp_path / "latin1.spec.ts"
    path.write_bytes(b"// caf\xe9\n")
    result = runner.invoke(app, ["metadata", str(path)])
    assert result.exit_code == 1
    assert "Failed to read file" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)


def test_stats_table(spec_file: Path) -> None:
    result = runner.invoke(app, ["stats", str(spec_file)])
    assert result.exit_code == 0
    assert "Extraction statistics" in result.output
    assert "(1 rows)" in result.output
