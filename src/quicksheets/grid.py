"""Cell and grid model shared by the resolver and host-side helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from pydantic import BaseModel, ConfigDict

from quicksheets.coords import Coordinate, alpha_to_index_coord


class Cell(BaseModel):
    """One grid position.

    A cell is either a literal (``value``), a formula awaiting evaluation
    (``formula``), or a settled fault (``error``).  A cell with none of
    them is empty.
    """

    model_config = ConfigDict(frozen=True)

    value: Any = None
    error: str | None = None
    formula: str | None = None


Grid = Mapping[Coordinate, Cell]
FunctionRegistry = Mapping[str, Callable[..., Any]]


@dataclass(frozen=True)
class EvaluationContext:
    """Inputs for one top-level evaluation.

    Attributes:
        grid: Coordinate -> cell lookup.  Must not change during a call.
        functions: Lower-cased function name -> callable.
        max_range_cells: Largest range a formula may reference, or None.
        memoize: Cache resolved cells for the duration of one call.
    """

    grid: Grid = field(default_factory=dict)
    functions: FunctionRegistry = field(default_factory=dict)
    max_range_cells: int | None = None
    memoize: bool = True


def make_cell(raw: Any) -> Cell:
    """Build a :class:`Cell` from a raw host value.

    Accepts an existing ``Cell``, a ``{value|formula|error}`` dict, a
    string (``"=..."`` marks a formula), or any other literal value.
    """
    if isinstance(raw, Cell):
        return raw
    if isinstance(raw, dict):
        unknown = set(raw) - {"value", "formula", "error"}
        if unknown:
            raise ValueError(f"Unknown cell keys: {sorted(unknown)}")
        return Cell(**raw)
    if isinstance(raw, str) and raw.startswith("="):
        return Cell(formula=raw)
    return Cell(value=raw)


def grid_from_cells(cells: Mapping[str, Any]) -> dict[Coordinate, Cell]:
    """Build a grid from ``{address: raw}``.

    Example::

        grid_from_cells({"A1": 1, "A2": "=A1*2", "B1": {"error": "#REF!"}})
    """
    return {alpha_to_index_coord(addr): make_cell(raw) for addr, raw in cells.items()}
