"""Error types for formula lexing, parsing and evaluation."""

from __future__ import annotations

from typing import Any


class FormulaError(Exception):
    """Base class for all formula-related errors."""


class MalformedAddressError(FormulaError, ValueError):
    """Cell address text outside the ``<letters><digits>`` shape.

    Attributes:
        address: The offending address (or coordinate repr).
    """

    def __init__(self, address: str, message: str | None = None) -> None:
        self.address = address
        super().__init__(message or f"Invalid cell address: {address!r}")


class FormulaParseError(FormulaError):
    """Syntax error in a formula expression.

    Attributes:
        position: Character position where the error was detected.
        message: Human-readable description.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        self.message = message
        full = f"Formula parse error: {message}"
        if position is not None:
            full += f" (at position {position})"
        super().__init__(full)


class LexError(FormulaParseError):
    """Unrecognised character in formula source."""

    def __init__(self, char: str, position: int | None = None) -> None:
        self.char = char
        super().__init__(f"Unexpected character {char!r}", position=position)


class UnexpectedEndOfInputError(FormulaParseError):
    """The token stream ran out while a construct was still open."""

    def __init__(self, position: int | None = None) -> None:
        super().__init__("Unexpected end of input", position=position)


class UnexpectedTokenError(FormulaParseError):
    """A token other than the expected one was found.

    Attributes:
        expected: Description of what the parser wanted.
        found: The value of the token actually seen.
    """

    def __init__(
        self,
        expected: str | None,
        found: str,
        position: int | None = None,
        message: str | None = None,
    ) -> None:
        self.expected = expected
        self.found = found
        if message is None:
            message = f"Expected {expected} but found {found!r}"
        super().__init__(message, position=position)


class MalformedExpressionError(FormulaParseError):
    """Postfix reduction ran out of operands."""

    def __init__(self, message: str = "Unexpected end of expression") -> None:
        super().__init__(message)


class FormulaFunctionError(FormulaError):
    """Unknown function or a failure raised by a function.

    Attributes:
        func_name: The function that caused the error.
    """

    def __init__(self, func_name: str, message: str | None = None) -> None:
        self.func_name = func_name
        msg = message or f"Unknown function: {func_name!r}"
        super().__init__(msg)


class UnknownFunctionError(FormulaFunctionError):
    """Function name not present in the registry."""

    def __init__(self, func_name: str, available: list[str] | None = None) -> None:
        self.available = available or []
        super().__init__(func_name, f"Unknown function {func_name!r}")


class NonNumericOperandError(FormulaError, TypeError):
    """Arithmetic or negation applied to a value that is not a number.

    Attributes:
        operator: The operator symbol (``-`` for negation).
        operand: The offending value.
    """

    def __init__(self, operator: str, operand: Any, *, unary: bool = False) -> None:
        self.operator = operator
        self.operand = operand
        if unary:
            msg = f"Cannot get negative of non-number {operand!r}"
        else:
            msg = f"Invalid argument for operator {operator}: {operand!r}"
        super().__init__(msg)


class DivisionByZeroError(FormulaError, ZeroDivisionError):
    """Right operand of ``/`` is exactly zero."""

    def __init__(self) -> None:
        super().__init__("Cannot divide by 0")


class DependentCellError(FormulaError):
    """A referenced cell, directly or as a range member, carries an error.

    Attributes:
        address: Address of the failing cell.
        cause: The dependent cell's own error message, if known.
    """

    def __init__(self, address: str, cause: str | None = None) -> None:
        self.address = address
        self.cause = cause
        super().__init__(f"Error found in dependent cell {address!r}")


class RangeTooLargeError(FormulaError):
    """A range spans more cells than the configured limit."""

    def __init__(self, range_text: str, size: int, limit: int) -> None:
        self.range_text = range_text
        self.size = size
        self.limit = limit
        super().__init__(
            f"Range {range_text} spans {size} cells (limit {limit})"
        )


class EvaluationDepthError(FormulaError):
    """Cell references nested deeper than the interpreter stack allows."""

    def __init__(self, address: str | None = None) -> None:
        self.address = address
        msg = "Formula evaluation nested too deeply"
        if address is not None:
            msg += f" (resolving {address})"
        super().__init__(msg)
