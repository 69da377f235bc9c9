"""Tests for sheet files and whole-sheet evaluation reports."""

from __future__ import annotations

from pathlib import Path

import pytest

from quicksheets.config import context_from_config
from quicksheets.coords import alpha_to_index_coord
from quicksheets.functions import default_functions
from quicksheets.grid import Cell
from quicksheets.sheet import evaluate_sheet, load_sheet


SHEET_TEXT = """\
cells:
  A1: 10
  A2: {value: 32}
  A3: "=A1 + A2"
  B1: {formula: "=SUM(A1:A3)"}
  C1: "plain text"
"""


# ────────────────────────────────────────────────────────────────
# Fixtures
# ────────────────────────────────────────────────────────────────


@pytest.fixture
def sheet_path(tmp_path: Path) -> Path:
    path = tmp_path / "sheet.yaml"
    path.write_text(SHEET_TEXT)
    return path


@pytest.fixture
def events_log(tmp_path: Path):
    """Route emitted events into a temporary log and read them back."""
    import quicksheets.logging.events as mod
    from quicksheets.logging.sink import EventSink

    old_sink = mod._sink
    log_dir = tmp_path / "logs"
    mod.set_log_dir(log_dir)
    try:
        yield EventSink(log_dir)
    finally:
        mod._sink = old_sink


def _report(cells_text: str, tmp_path: Path) -> dict:
    path = tmp_path / "s.yaml"
    path.write_text(cells_text)
    context = context_from_config(load_sheet(path), default_functions())
    return evaluate_sheet(context, source=str(path))


# ────────────────────────────────────────────────────────────────
# load_sheet
# ────────────────────────────────────────────────────────────────


class TestLoadSheet:
    def test_cell_forms(self, sheet_path: Path) -> None:
        grid = load_sheet(sheet_path)
        assert grid[alpha_to_index_coord("A1")] == Cell(value=10)
        assert grid[alpha_to_index_coord("A2")] == Cell(value=32)
        assert grid[alpha_to_index_coord("A3")] == Cell(formula="=A1 + A2")
        assert grid[alpha_to_index_coord("B1")] == Cell(formula="=SUM(A1:A3)")
        assert grid[alpha_to_index_coord("C1")] == Cell(value="plain text")

    def test_empty_document(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_sheet(path) == {}

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping at top level"):
            load_sheet(path)

    def test_cells_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("cells: [1, 2]\n")
        with pytest.raises(ValueError, match="'cells' must be a mapping"):
            load_sheet(path)

    def test_bad_address(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("cells:\n  A0: 1\n")
        with pytest.raises(ValueError, match="Invalid cell address"):
            load_sheet(path)

    def test_unknown_cell_key(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("cells:\n  A1: {valu: 1}\n")
        with pytest.raises(ValueError, match="Unknown cell keys"):
            load_sheet(path)


# ────────────────────────────────────────────────────────────────
# evaluate_sheet
# ────────────────────────────────────────────────────────────────


class TestEvaluateSheet:
    def test_report_values(self, sheet_path: Path) -> None:
        context = context_from_config(load_sheet(sheet_path), default_functions())
        report = evaluate_sheet(context)
        assert report["A3"] == {"value": 42, "error": None, "display": "42"}
        assert report["B1"]["value"] == 84
        assert report["C1"]["display"] == "plain text"

    def test_report_row_major_order(self, sheet_path: Path) -> None:
        context = context_from_config(load_sheet(sheet_path), default_functions())
        report = evaluate_sheet(context)
        assert list(report) == ["A1", "B1", "C1", "A2", "A3"]

    def test_errors_reported(self, tmp_path: Path) -> None:
        report = _report(
            'cells:\n  A1: "=1/0"\n  A2: "=A1 + 1"\n  B1: "=B1"\n',
            tmp_path,
        )
        assert report["A1"]["error"] == "Cannot divide by 0"
        assert report["A1"]["display"] == "#ERR!"
        assert "dependent cell 'A1'" in report["A2"]["error"]
        assert report["B1"]["display"] == "#CIRC!"

    def test_events_for_clean_sheet(self, sheet_path: Path, events_log) -> None:
        context = context_from_config(load_sheet(sheet_path), default_functions())
        evaluate_sheet(context, source="sheet.yaml")

        events = events_log.read_events()
        assert len(events) == 1
        assert events[0]["event_type"] == "sheet_evaluated"
        assert events[0]["level"] == "info"
        assert events[0]["context"]["n_cells"] == 5
        assert events[0]["context"]["n_errors"] == 0
        assert events[0]["context"]["source"] == "sheet.yaml"

    def test_events_for_failing_cells(self, tmp_path: Path, events_log) -> None:
        _report('cells:\n  A1: "=1/0"\n  B1: "=B1"\n', tmp_path)

        summary = events_log.read_events(event_type="sheet_evaluated")
        assert len(summary) == 1
        assert summary[0]["level"] == "warning"
        assert summary[0]["error_code"] == "sheet_has_errors"
        assert summary[0]["context"]["n_errors"] == 2

        cell_errors = events_log.read_events(event_type="cell_error")
        assert len(cell_errors) == 1
        assert cell_errors[0]["context"]["address"] == "A1"
        assert cell_errors[0]["error_code"] == "formula_eval_error"

        circular = events_log.read_events(event_type="circular_reference")
        assert len(circular) == 1
        assert circular[0]["context"]["address"] == "B1"
        assert circular[0]["error_code"] == "circular_reference"
