"""Parse tree node classes.

Every node is immutable and knows how to evaluate itself against a
:class:`CellResolver`.  Variants:

- ``StringNode`` / ``NumberNode``: literals
- ``CellNode`` / ``CellRangeNode``: references (``A1``, ``A1:B3``)
- ``NegativeNode``: unary minus
- ``FunctionCallNode``: ``NAME(arg, ...)``
- ``AdditionNode``, ``SubtractionNode``, ``MultiplicationNode``,
  ``DivisionNode``: binary arithmetic
"""

from __future__ import annotations

import abc
from typing import Any, Callable, Mapping, Protocol

from quicksheets.coords import (
    Coordinate,
    alpha_to_index_coord,
    get_coords_in_range,
    index_coord_to_alpha,
    range_size,
)
from quicksheets.formulas.errors import (
    DependentCellError,
    DivisionByZeroError,
    FormulaError,
    FormulaFunctionError,
    MalformedExpressionError,
    NonNumericOperandError,
    RangeTooLargeError,
    UnknownFunctionError,
)


class CellResolver(Protocol):
    """What a node needs from its evaluation environment."""

    functions: Mapping[str, Callable[..., Any]]
    max_range_cells: int | None

    def resolve_cell(self, coord: Coordinate) -> Any:
        """Return the resolved cell at *coord* (may trigger recursive evaluation), or None."""
        ...


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ParseNode(abc.ABC):
    """Base class for all parse tree nodes."""

    __slots__ = ("_value", "_children")

    type: str = ""

    def __init__(self, value: Any, children: tuple[ParseNode, ...] = ()) -> None:
        self._value = value
        self._children = tuple(children)

    @property
    def value(self) -> Any:
        return self._value

    @property
    def children(self) -> tuple[ParseNode, ...]:
        return self._children

    @abc.abstractmethod
    def evaluate(self, resolver: CellResolver) -> Any:
        """Compute this node's value."""

    @abc.abstractmethod
    def to_formula(self) -> str:
        """Render the node back to formula text."""

    def to_dict(self) -> dict[str, Any]:
        value = list(self._value) if isinstance(self._value, tuple) else self._value
        return {
            "type": self.type,
            "value": value,
            "children": [child.to_dict() for child in self._children],
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParseNode):
            return NotImplemented
        return (
            type(self) is type(other)
            and self._value == other._value
            and self._children == other._children
        )

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._value, self._children))

    def __repr__(self) -> str:
        if self._children:
            inner = ", ".join(repr(c) for c in self._children)
            return f"{type(self).__name__}({self._value!r}, [{inner}])"
        return f"{type(self).__name__}({self._value!r})"


# ---------------------------------------------------------------------------
# Literals
# ---------------------------------------------------------------------------


class StringNode(ParseNode):
    type = "string"

    def evaluate(self, resolver: CellResolver) -> str:
        return self._value[1:-1]

    def to_formula(self) -> str:
        return self._value


class NumberNode(ParseNode):
    type = "number"

    def evaluate(self, resolver: CellResolver) -> int | float:
        s = self._value
        if "." in s:
            return float(s)
        return int(s)

    def to_formula(self) -> str:
        return self._value


# ---------------------------------------------------------------------------
# References
# ---------------------------------------------------------------------------


class CellNode(ParseNode):
    type = "cell"

    def evaluate(self, resolver: CellResolver) -> Any:
        coord = alpha_to_index_coord(self._value)
        cell = resolver.resolve_cell(coord)
        if cell is None:
            return None
        if cell.error is not None:
            raise DependentCellError(self._value.upper(), cause=cell.error)
        return cell.value

    def to_formula(self) -> str:
        return self._value.upper()


class CellRangeNode(ParseNode):
    """``A1:B3``.  The value is the ``(start, end)`` address pair."""

    type = "cellRange"

    def evaluate(self, resolver: CellResolver) -> list[Any]:
        start, end = (alpha_to_index_coord(addr) for addr in self._value)
        limit = resolver.max_range_cells
        if limit is not None:
            size = range_size(start, end)
            if size > limit:
                raise RangeTooLargeError(self.to_formula(), size, limit)

        values: list[Any] = []
        for coord in get_coords_in_range(start, end):
            cell = resolver.resolve_cell(coord)
            if cell is None:
                continue
            if cell.error is not None:
                raise DependentCellError(index_coord_to_alpha(coord), cause=cell.error)
            if cell.value is not None:
                values.append(cell.value)
        return values

    def to_formula(self) -> str:
        return f"{self._value[0].upper()}:{self._value[1].upper()}"


# ---------------------------------------------------------------------------
# Unary minus and function calls
# ---------------------------------------------------------------------------


class NegativeNode(ParseNode):
    type = "negative"

    def __init__(self, child: ParseNode) -> None:
        super().__init__("-", (child,))

    def evaluate(self, resolver: CellResolver) -> int | float:
        operand = self._children[0].evaluate(resolver)
        if not _is_number(operand):
            raise NonNumericOperandError("-", operand, unary=True)
        return -operand

    def to_formula(self) -> str:
        return f"(-{self._children[0].to_formula()})"


class FunctionCallNode(ParseNode):
    type = "functionCall"

    def __init__(self, name: str, args: tuple[ParseNode, ...] | list[ParseNode]) -> None:
        super().__init__(name, tuple(args))

    def evaluate(self, resolver: CellResolver) -> Any:
        fn = resolver.functions.get(self._value.lower())
        if fn is None:
            raise UnknownFunctionError(self._value, available=sorted(resolver.functions))
        args = [child.evaluate(resolver) for child in self._children]
        try:
            return fn(*args)
        except FormulaError:
            raise
        except Exception as exc:
            raise FormulaFunctionError(self._value, f"{self._value}: {exc}") from exc

    def to_formula(self) -> str:
        args = ", ".join(child.to_formula() for child in self._children)
        return f"{self._value}({args})"


# ---------------------------------------------------------------------------
# Binary arithmetic
# ---------------------------------------------------------------------------


class BinaryOperatorNode(ParseNode):
    type = "binaryOperator"
    symbol: str = ""

    def __init__(self, left: ParseNode, right: ParseNode) -> None:
        super().__init__(self.symbol, (left, right))

    def get_operands(self, resolver: CellResolver) -> tuple[int | float, int | float]:
        left_child, right_child = self._children
        left = left_child.evaluate(resolver)
        if not _is_number(left):
            raise NonNumericOperandError(self.symbol, left)
        right = right_child.evaluate(resolver)
        if not _is_number(right):
            raise NonNumericOperandError(self.symbol, right)
        return left, right

    def evaluate(self, resolver: CellResolver) -> int | float:
        left, right = self.get_operands(resolver)
        return self.apply(left, right)

    @abc.abstractmethod
    def apply(self, left: int | float, right: int | float) -> int | float:
        """Combine two numeric operands."""

    def to_formula(self) -> str:
        left, right = self._children
        return f"({left.to_formula()} {self.symbol} {right.to_formula()})"


class AdditionNode(BinaryOperatorNode):
    symbol = "+"

    def apply(self, left: int | float, right: int | float) -> int | float:
        return left + right


class SubtractionNode(BinaryOperatorNode):
    symbol = "-"

    def apply(self, left: int | float, right: int | float) -> int | float:
        return left - right


class MultiplicationNode(BinaryOperatorNode):
    symbol = "*"

    def apply(self, left: int | float, right: int | float) -> int | float:
        return left * right


class DivisionNode(BinaryOperatorNode):
    symbol = "/"

    def apply(self, left: int | float, right: int | float) -> float:
        if right == 0:
            raise DivisionByZeroError()
        return left / right


_BINARY_OPERATORS: dict[str, type[BinaryOperatorNode]] = {
    "+": AdditionNode,
    "-": SubtractionNode,
    "*": MultiplicationNode,
    "/": DivisionNode,
}


def create_binary_operator(symbol: str, left: ParseNode, right: ParseNode) -> BinaryOperatorNode:
    """Build the binary operator node for *symbol*."""
    node_cls = _BINARY_OPERATORS.get(symbol)
    if node_cls is None:
        raise MalformedExpressionError(f"Unknown binary operator {symbol!r}")
    return node_cls(left, right)
