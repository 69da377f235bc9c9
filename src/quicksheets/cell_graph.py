"""On-demand memoized cell formula evaluator.

Evaluates cell formulas lazily: a cell is computed only when referenced,
and (unless disabled) the result is cached for the duration of one
evaluation pass.  Uncached dependencies are resolved deepest first from an
explicit work stack, so long reference chains do not nest evaluation.
Detects cycles across cells and raises a clear error showing the cycle path.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Mapping

from quicksheets.coords import (
    Coordinate,
    alpha_to_index_coord,
    get_coords_in_range,
    index_coord_to_alpha,
    range_size,
)
from quicksheets.formulas.errors import EvaluationDepthError, FormulaError, MalformedAddressError
from quicksheets.formulas.nodes import CellNode, CellRangeNode, ParseNode
from quicksheets.formulas.parser import parse_formula
from quicksheets.grid import Cell, EvaluationContext

logger = logging.getLogger(__name__)

_CIRCULAR_PREFIX = "Circular cell reference"


class CircularReferenceError(FormulaError):
    """Raised when a cell is revisited while it is still being resolved.

    Attributes:
        cycle_path: Coordinates forming the cycle, first == last.
    """

    def __init__(self, cycle_path: list[Coordinate]) -> None:
        self.cycle_path = cycle_path
        parts = [index_coord_to_alpha(c) for c in cycle_path]
        super().__init__(f"{_CIRCULAR_PREFIX}: {' -> '.join(parts)}")

    @property
    def addresses(self) -> list[str]:
        return [index_coord_to_alpha(c) for c in self.cycle_path]


class CellGraph:
    """Resolver for one top-level evaluation.

    Usage::

        cg = CellGraph(EvaluationContext(grid=grid, functions=fns))
        cell = cg.evaluate_cell(Coordinate(0, 0))
        value = cg.evaluate(parse_formula("=A1 + 1"))

    A ``CellGraph`` holds per-call state (cache, in-progress stack) and
    should be discarded once the call returns.
    """

    def __init__(self, context: EvaluationContext) -> None:
        self._context = context
        self._cache: dict[Coordinate, Cell | None] = {}
        self._in_progress: set[Coordinate] = set()
        self._eval_stack: list[Coordinate] = []

    # ------------------------------------------------------------------
    # CellResolver protocol implementation
    # ------------------------------------------------------------------

    @property
    def functions(self) -> Mapping[str, Callable[..., Any]]:
        return self._context.functions

    @property
    def max_range_cells(self) -> int | None:
        return self._context.max_range_cells

    def resolve_cell(self, coord: Coordinate) -> Cell | None:
        """Resolve a cell, triggering recursive evaluation if needed."""
        return self._resolve(Coordinate(*coord))

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def evaluate(self, tree: ParseNode) -> Any:
        """Evaluate a parsed formula against this graph's grid.

        Raises:
            CircularReferenceError: If a referenced cell depends on itself.
            EvaluationDepthError: If references nest deeper than the
                interpreter stack allows.
        """
        self._resolve_dependencies(self._references(tree))
        try:
            return tree.evaluate(self)
        except RecursionError:
            raise EvaluationDepthError() from None

    def evaluate_cell(self, coord: Coordinate) -> Cell | None:
        """Resolve a single cell, with memoization and cycle detection.

        Args:
            coord: Zero-based coordinate.

        Returns:
            ``None`` for an absent cell, the cell itself for a literal or
            settled error, or a new cell with ``value`` or ``error`` set
            for a formula cell.

        Raises:
            CircularReferenceError: If a circular reference is detected.
            EvaluationDepthError: If references nest deeper than the
                interpreter stack allows.
        """
        coord = Coordinate(*coord)
        self._resolve_dependencies([coord])
        try:
            return self._resolve(coord)
        except RecursionError:
            raise EvaluationDepthError(index_coord_to_alpha(coord)) from None

    def evaluate_all(self) -> dict[Coordinate, Cell]:
        """Resolve every cell in the grid.

        A cell on a cycle is reported with its ``error`` set to the
        circular-reference message instead of aborting the pass.

        Returns:
            Dict of coordinate -> resolved cell for every grid cell.
        """
        results: dict[Coordinate, Cell] = {}
        for coord in self._context.grid:
            try:
                cell = self.evaluate_cell(coord)
            except (CircularReferenceError, EvaluationDepthError) as exc:
                source = self._context.grid[coord]
                cell = Cell(formula=source.formula, error=str(exc))
            if cell is not None:
                results[Coordinate(*coord)] = cell
        return results

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _resolve(self, coord: Coordinate) -> Cell | None:
        if coord in self._cache:
            return self._cache[coord]

        if coord in self._in_progress:
            cycle_start = self._eval_stack.index(coord)
            cycle_path = self._eval_stack[cycle_start:] + [coord]
            raise CircularReferenceError(cycle_path)

        result = self._compute(coord, self._context.grid.get(coord))
        if self._context.memoize:
            self._cache[coord] = result
        return result

    def _compute(self, coord: Coordinate, cell: Cell | None, tree: ParseNode | None = None) -> Cell | None:
        if cell is None or cell.formula is None:
            return cell
        self._in_progress.add(coord)
        self._eval_stack.append(coord)
        try:
            return self._evaluate_formula_cell(coord, cell.formula, tree)
        finally:
            self._in_progress.discard(coord)
            if self._eval_stack and self._eval_stack[-1] == coord:
                self._eval_stack.pop()

    def _evaluate_formula_cell(self, coord: Coordinate, formula: str, tree: ParseNode | None) -> Cell:
        try:
            if tree is None:
                tree = parse_formula(formula)
            value = tree.evaluate(self)
        except CircularReferenceError:
            raise
        except FormulaError as exc:
            logger.debug(
                "Formula in %s failed: %s", index_coord_to_alpha(coord), exc
            )
            return Cell(formula=formula, error=str(exc))
        return Cell(formula=formula, value=value)

    def _resolve_dependencies(self, roots: list[Coordinate]) -> None:
        """Resolve uncached formula cells reachable from *roots*, deepest first.

        References are walked with an explicit stack, so a long chain of
        formula cells never nests evaluation calls.  A cell is computed
        here only once every cell it references is cached; cells on or
        above a cycle are left to :meth:`_resolve`, which reports the
        cycle path.  Does nothing when memoization is off.
        """
        if not self._context.memoize:
            return

        visited: set[Coordinate] = set()
        # (coord, cell, tree, references, unvisited references)
        frames: list[tuple[Coordinate, Cell, ParseNode | None, list[Coordinate], Iterator[Coordinate]]] = []

        def enter(coord: Coordinate) -> None:
            if coord in self._cache or coord in visited or coord in self._in_progress:
                return
            visited.add(coord)
            cell = self._context.grid.get(coord)
            if cell is None or cell.formula is None:
                self._cache[coord] = cell
                return
            try:
                tree = parse_formula(cell.formula)
            except FormulaError:
                tree = None
            refs = self._references(tree) if tree is not None else []
            frames.append((coord, cell, tree, refs, iter(refs)))

        for root in roots:
            enter(root)
            while frames:
                coord, cell, tree, refs, pending = frames[-1]
                ref = next(pending, None)
                if ref is not None:
                    enter(ref)
                    continue
                frames.pop()
                if all(r in self._cache for r in refs):
                    self._cache[coord] = self._compute(coord, cell, tree)

    def _references(self, tree: ParseNode) -> list[Coordinate]:
        """Coordinates *tree* refers to, in evaluation order.

        Malformed addresses and ranges over ``max_range_cells`` are
        skipped; evaluating the tree reports them.
        """
        refs: list[Coordinate] = []
        nodes = [tree]
        while nodes:
            node = nodes.pop()
            try:
                if isinstance(node, CellNode):
                    refs.append(alpha_to_index_coord(node.value))
                elif isinstance(node, CellRangeNode):
                    start, end = (alpha_to_index_coord(a) for a in node.value)
                    limit = self.max_range_cells
                    if limit is None or range_size(start, end) <= limit:
                        refs.extend(get_coords_in_range(start, end))
            except MalformedAddressError:
                continue
            nodes.extend(reversed(node.children))
        return refs



def format_display_value(cell: Cell | None) -> str:
    """Get a display-friendly string for a resolved cell."""
    if cell is None:
        return ""
    if cell.error is not None:
        if is_circular_error(cell):
            return "#CIRC!"
        return "#ERR!"
    val = cell.value
    if val is None:
        return ""
    if isinstance(val, bool):
        return "TRUE" if val else "FALSE"
    if isinstance(val, float):
        if val.is_integer():
            return str(int(val))
        return f"{val:.10g}"
    if isinstance(val, list):
        return ", ".join(format_display_value(Cell(value=v)) for v in val)
    return str(val)


def is_circular_error(cell: Cell | None) -> bool:
    """True if *cell* failed because it sits on (or depends on) a cycle."""
    return cell is not None and cell.error is not None and cell.error.startswith(_CIRCULAR_PREFIX)
