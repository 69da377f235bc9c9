"""Sheet files: YAML documents holding a single grid of cells.

Format::

    cells:
      A1: 10
      A2: {value: 32}
      A3: "=A1 + A2"
      B1: {formula: "=SUM(A1:A3)"}
      C1: "plain text"
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any

import yaml

from quicksheets.cell_graph import CellGraph, format_display_value, is_circular_error
from quicksheets.coords import Coordinate, index_coord_to_alpha
from quicksheets.grid import Cell, EvaluationContext, grid_from_cells
from quicksheets.logging.events import (
    CIRCULAR_REFERENCE,
    FORMULA_EVAL_ERROR,
    SHEET_HAS_ERRORS,
    EventType,
    emit_info,
    emit_warning,
)


def load_sheet(path: Path) -> dict[Coordinate, Cell]:
    """Load a sheet file into a grid.

    Raises:
        ValueError: If the document is not a mapping with a ``cells`` mapping,
            or holds an invalid address.
    """
    data = yaml.safe_load(Path(path).read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")
    cells = data.get("cells", {}) or {}
    if not isinstance(cells, dict):
        raise ValueError(f"{path}: 'cells' must be a mapping of address -> cell")
    return grid_from_cells({str(addr): raw for addr, raw in cells.items()})


def evaluate_sheet(context: EvaluationContext, *, source: str | None = None) -> dict[str, dict[str, Any]]:
    """Evaluate every cell of a grid once and report the results.

    Emits one ``cell_error`` / ``circular_reference`` event per failing
    cell and a closing ``sheet_evaluated`` event.

    Returns:
        Dict of address -> ``{"value", "error", "display"}``, in row-major
        address order.
    """
    t0 = time.monotonic()
    results = CellGraph(context).evaluate_all()

    report: dict[str, dict[str, Any]] = {}
    n_errors = 0
    for coord in sorted(results):
        cell = results[coord]
        addr = index_coord_to_alpha(coord)
        report[addr] = {
            "value": cell.value,
            "error": cell.error,
            "display": format_display_value(cell),
        }
        if cell.error is not None:
            n_errors += 1
            if is_circular_error(cell):
                event_type, error_code = EventType.circular_reference, CIRCULAR_REFERENCE
            else:
                event_type, error_code = EventType.cell_error, FORMULA_EVAL_ERROR
            emit_warning(
                event_type,
                cell.error,
                {"address": addr, "formula": cell.formula, "source": source},
                error_code=error_code,
            )

    duration_ms = round((time.monotonic() - t0) * 1000, 3)
    context_info = {
        "source": source,
        "n_cells": len(report),
        "n_errors": n_errors,
        "duration_ms": duration_ms,
    }
    if n_errors:
        emit_warning(
            EventType.sheet_evaluated,
            f"Evaluated {len(report)} cells with {n_errors} error(s)",
            context_info,
            error_code=SHEET_HAS_ERRORS,
        )
    else:
        emit_info(EventType.sheet_evaluated, f"Evaluated {len(report)} cells", context_info)
    return report
