"""Tests for the quicksheets command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from quicksheets.cli import main


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def restore_sink():
    import quicksheets.logging.events as mod

    old_sink = mod._sink
    yield
    mod._sink = old_sink


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Directory with a config that logs events to ``logs/``."""
    (tmp_path / "quicksheets.yaml").write_text("log_dir: logs\n")
    return tmp_path


@pytest.fixture
def sheet_file(tmp_path: Path) -> Path:
    path = tmp_path / "sheet.yaml"
    path.write_text(
        "cells:\n"
        "  A1: 10\n"
        "  A2: 32\n"
        '  A3: "=A1 + A2"\n'
        '  B1: "=1/0"\n'
    )
    return path


def _run(config_dir: Path, *args: str):
    return CliRunner().invoke(main, ["--config-dir", str(config_dir), *args])


def _events(config_dir: Path) -> list[dict]:
    path = config_dir / "logs" / "events.ndjson"
    return [json.loads(line) for line in path.read_text().splitlines()]


# ---------------------------------------------------------------------------
# eval
# ---------------------------------------------------------------------------


class TestEvalCommand:
    def test_arithmetic(self, tmp_path: Path) -> None:
        result = _run(tmp_path, "eval", "=1 + 2 * 3")
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "7"

    def test_float_display(self, tmp_path: Path) -> None:
        result = _run(tmp_path, "eval", "7 / 2")
        assert result.output.strip() == "3.5"

    def test_builtin_function(self, tmp_path: Path) -> None:
        result = _run(tmp_path, "eval", "SUM(1, 2, 3) / 2")
        assert result.output.strip() == "3"

    def test_against_sheet(self, tmp_path: Path, sheet_file: Path) -> None:
        result = _run(tmp_path, "eval", "A3 * 2", "--sheet", str(sheet_file))
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "84"

    def test_json_output(self, tmp_path: Path) -> None:
        result = _run(tmp_path, "eval", "CONCAT(\"a\", \"b\")", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output) == {"formula": 'CONCAT("a", "b")', "result": "ab"}

    def test_error_exit_code(self, tmp_path: Path) -> None:
        result = _run(tmp_path, "eval", "1/0")
        assert result.exit_code == 1
        assert "Cannot divide by 0" in result.output

    def test_json_error(self, tmp_path: Path, sheet_file: Path) -> None:
        result = _run(tmp_path, "eval", "B1 + 1", "--sheet", str(sheet_file), "--json")
        assert result.exit_code == 1
        payload = json.loads(result.output)
        assert payload["error_type"] == "DependentCellError"
        assert "B1" in payload["error"]

    def test_parse_error(self, tmp_path: Path) -> None:
        result = _run(tmp_path, "eval", "1 +")
        assert result.exit_code == 1
        assert "Unexpected end of input" in result.output

    def test_events_logged(self, config_dir: Path) -> None:
        _run(config_dir, "eval", "1 + 1")
        _run(config_dir, "eval", "1 + ")
        _run(config_dir, "eval", "FOO(1)")

        events = _events(config_dir)
        assert [e["event_type"] for e in events] == [
            "formula_evaluated",
            "formula_failed",
            "formula_failed",
        ]
        assert events[0]["context"] == {"formula": "1 + 1", "result": 2}
        assert events[1]["error_code"] == "formula_parse_error"
        assert events[2]["error_code"] == "formula_eval_error"

    def test_circular_event(self, config_dir: Path) -> None:
        sheet = config_dir / "loop.yaml"
        sheet.write_text('cells:\n  A1: "=B1"\n  B1: "=A1"\n')
        result = _run(config_dir, "eval", "A1", "--sheet", str(sheet))
        assert result.exit_code == 1
        assert "Circular cell reference" in result.output
        assert _events(config_dir)[0]["error_code"] == "circular_reference"

    def test_bad_config(self, tmp_path: Path) -> None:
        (tmp_path / "quicksheets.yaml").write_text("colour: blue\n")
        result = _run(tmp_path, "eval", "1")
        assert result.exit_code == 1
        assert "unknown config keys" in result.output


# ---------------------------------------------------------------------------
# sheet
# ---------------------------------------------------------------------------


class TestSheetCommand:
    def test_table_output(self, tmp_path: Path, sheet_file: Path) -> None:
        result = _run(tmp_path, "sheet", str(sheet_file))
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "A1  10"
        assert lines[1] == "B1  #ERR!  (Cannot divide by 0)"
        assert lines[3] == "A3  42"

    def test_json_output(self, tmp_path: Path, sheet_file: Path) -> None:
        result = _run(tmp_path, "sheet", str(sheet_file), "--json")
        report = json.loads(result.output)
        assert report["A3"] == {"value": 42, "error": None, "display": "42"}
        assert report["B1"]["error"] == "Cannot divide by 0"

    def test_empty_sheet(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.yaml"
        empty.write_text("cells: {}\n")
        result = _run(tmp_path, "sheet", str(empty))
        assert result.output.strip() == "No cells."

    def test_invalid_sheet(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("cells:\n  1A: 3\n")
        result = _run(tmp_path, "sheet", str(bad))
        assert result.exit_code == 1
        assert "Invalid cell address" in result.output

    def test_sheet_events(self, config_dir: Path, sheet_file: Path) -> None:
        _run(config_dir, "sheet", str(sheet_file))
        types = [e["event_type"] for e in _events(config_dir)]
        assert types == ["cell_error", "sheet_evaluated"]


# ---------------------------------------------------------------------------
# Inspection: tokens / tree / refs
# ---------------------------------------------------------------------------


class TestInspectionCommands:
    def test_tokens(self, tmp_path: Path) -> None:
        result = _run(tmp_path, "tokens", "=A1+2")
        assert result.exit_code == 0
        assert result.output.splitlines() == [
            "   0  CELL_LITERAL    A1",
            "   2  OPERATOR        +",
            "   3  NUMBER_LITERAL  2",
        ]

    def test_tokens_lex_error(self, tmp_path: Path) -> None:
        result = _run(tmp_path, "tokens", "1 & 2")
        assert result.exit_code == 1
        assert "Unexpected character '&'" in result.output

    def test_tree(self, tmp_path: Path) -> None:
        result = _run(tmp_path, "tree", "1+2*3")
        assert result.exit_code == 0
        assert result.output.splitlines() == [
            "(1 + (2 * 3))",
            "binaryOperator '+'",
            "  number '1'",
            "  binaryOperator '*'",
            "    number '2'",
            "    number '3'",
        ]

    def test_tree_json(self, tmp_path: Path) -> None:
        result = _run(tmp_path, "tree", "SUM(A1:B2)", "--json")
        tree = json.loads(result.output)
        assert tree["type"] == "functionCall"
        assert tree["value"] == "SUM"
        assert tree["children"][0] == {"type": "cellRange", "value": ["A1", "B2"], "children": []}

    def test_tree_parse_error(self, tmp_path: Path) -> None:
        result = _run(tmp_path, "tree", "(1 + 2")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_refs(self, tmp_path: Path) -> None:
        result = _run(tmp_path, "refs", "SUM(B2, A1:A2) + b2")
        assert result.output.splitlines() == ["A1", "A2", "B2"]

    def test_refs_no_expand(self, tmp_path: Path) -> None:
        result = _run(tmp_path, "refs", "SUM(B2, A1:A2)", "--no-expand")
        assert result.output.splitlines() == ["A1:A2", "B2"]


# ---------------------------------------------------------------------------
# init / events
# ---------------------------------------------------------------------------


class TestInitCommand:
    def test_creates_config(self, tmp_path: Path) -> None:
        target = tmp_path / "proj"
        result = _run(tmp_path, "init", str(target))
        assert result.exit_code == 0, result.output
        assert (target / "quicksheets.yaml").exists()
        assert "Created" in result.output

    def test_refuses_existing(self, tmp_path: Path) -> None:
        _run(tmp_path, "init", str(tmp_path))
        result = _run(tmp_path, "init", str(tmp_path))
        assert result.exit_code == 1
        assert "already exists" in result.output


class TestEventsCommand:
    def test_lists_events(self, config_dir: Path) -> None:
        _run(config_dir, "eval", "1 + 1")
        _run(config_dir, "eval", "1/0")

        result = _run(config_dir, "events", str(config_dir / "logs"))
        lines = result.output.splitlines()
        assert len(lines) == 2
        assert "ERROR" in lines[0]
        assert "formula_failed: Cannot divide by 0  (formula_eval_error)" in lines[0]
        assert "INFO" in lines[1]

    def test_level_filter(self, config_dir: Path) -> None:
        _run(config_dir, "eval", "1 + 1")
        _run(config_dir, "eval", "1/0")

        result = _run(config_dir, "events", str(config_dir / "logs"), "--level", "info")
        assert len(result.output.splitlines()) == 1
        assert "formula_evaluated" in result.output

    def test_no_events(self, tmp_path: Path) -> None:
        empty = tmp_path / "logs"
        empty.mkdir()
        result = _run(tmp_path, "events", str(empty))
        assert result.output.strip() == "No events found."


class TestVersion:
    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output
