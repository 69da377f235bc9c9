"""Top-level evaluation entry points.

Each call builds a fresh :class:`~quicksheets.cell_graph.CellGraph`, so
no state survives between calls: evaluating the same formula against an
unchanged grid always gives the same result.
"""

from __future__ import annotations

from typing import Any

from quicksheets.cell_graph import CellGraph
from quicksheets.coords import Coordinate
from quicksheets.formulas.nodes import ParseNode
from quicksheets.formulas.parser import parse_formula
from quicksheets.grid import Cell, EvaluationContext


def evaluate_formula(formula: str | ParseNode, context: EvaluationContext) -> Any:
    """Evaluate a formula against a grid snapshot.

    Args:
        formula: Formula text (leading ``=`` optional) or a tree from
            ``parse_formula()``.
        context: Grid, function registry and limits for this call.

    Returns:
        A number, string, list (range result) or None (empty cell).

    Raises:
        FormulaError: Any lexing, parsing or evaluation fault, including
            ``CircularReferenceError``.
    """
    tree = parse_formula(formula) if isinstance(formula, str) else formula
    return CellGraph(context).evaluate(tree)


def evaluate_cell_at(coord: Coordinate | tuple[int, int], context: EvaluationContext) -> Cell | None:
    """Resolve the cell at *coord*, evaluating its formula if it has one.

    Returns:
        None for an absent cell; otherwise a cell whose ``value`` or
        ``error`` is set.

    Raises:
        CircularReferenceError: If the cell's formula depends on itself.
    """
    return CellGraph(context).evaluate_cell(Coordinate(*coord))


def evaluate_all(context: EvaluationContext) -> dict[Coordinate, Cell]:
    """Resolve every cell in ``context.grid`` in one pass."""
    return CellGraph(context).evaluate_all()
