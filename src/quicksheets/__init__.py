"""quicksheets -- formula engine for spreadsheet cells."""

__version__ = "0.1.0"

from quicksheets.formulas import (  # noqa: E402
    CircularReferenceError,
    FormulaError,
    evaluate_cell_at,
    evaluate_formula,
    parse_formula,
)
from quicksheets.grid import Cell, EvaluationContext, grid_from_cells  # noqa: E402

__all__ = [
    "Cell",
    "CircularReferenceError",
    "EvaluationContext",
    "FormulaError",
    "__version__",
    "evaluate_cell_at",
    "evaluate_formula",
    "grid_from_cells",
    "parse_formula",
]
