"""Operator-precedence parser for cell formulas.

Grammar::

    expression   := operand (binary_op operand)*
    operand      := function_call | negative | "(" expression ")" | term
    term         := NUMBER | STRING | CELL | CELL ":" CELL
    function_call:= IDENTIFIER "(" (expression ("," expression)*)? ")"
    negative     := "-" expression

Binary operators are resolved with a two-stack (shunting-yard) pass into
postfix order and then reduced into a tree.  Precedence (lowest to
highest):

    1. Addition/subtraction: + -
    2. Multiplication/division: * /

Operators of equal precedence group left to right (``8-3-1`` is
``(8-3)-1``).  A leading ``-`` negates the whole expression that follows
it, so ``-2+3`` is ``-(2+3)``.
"""

from __future__ import annotations

from typing import Sequence, Union

from quicksheets.coords import get_coords_in_range, alpha_to_index_coord, index_coord_to_alpha
from quicksheets.formulas.errors import (
    MalformedExpressionError,
    UnexpectedEndOfInputError,
    UnexpectedTokenError,
)
from quicksheets.formulas.lexer import Token, TokenType, lex
from quicksheets.formulas.nodes import (
    CellNode,
    CellRangeNode,
    FunctionCallNode,
    NegativeNode,
    NumberNode,
    ParseNode,
    StringNode,
    create_binary_operator,
)

PRECEDENCE: dict[str, int] = {
    "*": 2,
    "/": 2,
    "+": 1,
    "-": 1,
}

_PostfixItem = Union[ParseNode, Token]


class Parser:
    """Recursive-descent parser over an immutable token sequence.

    The parser advances an index instead of removing tokens, so the
    same instance can be rewound with :meth:`reset`.
    """

    def __init__(self, tokens: Sequence[Token]) -> None:
        self._tokens: tuple[Token, ...] = tuple(tokens)
        self._pos = 0

    # ------------------------------------------------------------------
    # Cursor primitives
    # ------------------------------------------------------------------

    @property
    def position(self) -> int:
        return self._pos

    def reset(self, position: int = 0) -> None:
        self._pos = position

    def at_end(self) -> bool:
        return self._pos >= len(self._tokens)

    def _peek(self, offset: int = 0) -> Token | None:
        idx = self._pos + offset
        if idx < len(self._tokens):
            return self._tokens[idx]
        return None

    def is_next_value(self, *expected_values: str) -> bool:
        token = self._peek()
        return token is not None and token.value in expected_values

    def is_next_type(self, expected_type: TokenType) -> bool:
        token = self._peek()
        return token is not None and token.type == expected_type

    def is_value_after_next(self, expected_value: str) -> bool:
        token = self._peek(1)
        return token is not None and token.value == expected_value

    def is_type_after_next(self, expected_type: TokenType) -> bool:
        token = self._peek(1)
        return token is not None and token.type == expected_type

    def is_next_binary_operator(self) -> bool:
        return self.is_next_type(TokenType.OPERATOR) and self.is_next_value(*PRECEDENCE)

    def consume_next(self) -> Token:
        token = self._peek()
        if token is None:
            raise UnexpectedEndOfInputError(position=self._source_end())
        self._pos += 1
        return token

    def consume_value(self, *expected_values: str) -> Token:
        token = self.consume_next()
        if token.value not in expected_values:
            expected = " or ".join(repr(v) for v in expected_values)
            raise UnexpectedTokenError(expected, token.value, position=token.position)
        return token

    def consume_type(self, expected_type: TokenType) -> Token:
        token = self.consume_next()
        if token.type != expected_type:
            raise UnexpectedTokenError(
                expected_type.value,
                token.value,
                position=token.position,
                message=f"Expected {expected_type.value} but found {token.type.value} {token.value!r}",
            )
        return token

    def consume_binary_operator(self) -> Token:
        return self.consume_value(*PRECEDENCE)

    def _source_end(self) -> int | None:
        if not self._tokens:
            return 0
        last = self._tokens[-1]
        return last.position + len(last.value)

    # ------------------------------------------------------------------
    # Grammar rules
    # ------------------------------------------------------------------

    def parse_term(self) -> ParseNode:
        token = self.consume_next()
        if token.type == TokenType.CELL_LITERAL and self.is_next_value(":"):
            self.consume_value(":")
            end = self.consume_type(TokenType.CELL_LITERAL)
            return CellRangeNode((token.value, end.value))

        if token.type == TokenType.NUMBER_LITERAL:
            return NumberNode(token.value)
        if token.type == TokenType.STRING_LITERAL:
            return StringNode(token.value)
        if token.type == TokenType.CELL_LITERAL:
            return CellNode(token.value)
        raise UnexpectedTokenError(
            None,
            token.value,
            position=token.position,
            message=f"Unexpected {token.type.value} {token.value!r}",
        )

    def parse_function_call(self) -> FunctionCallNode:
        name = self.consume_type(TokenType.IDENTIFIER)
        self.consume_value("(")
        if self.is_next_value(")"):
            self.consume_value(")")
            return FunctionCallNode(name.value, ())

        args = [self.parse_expression()]
        token = self.consume_value(",", ")")
        while token.value == ",":
            args.append(self.parse_expression())
            token = self.consume_value(",", ")")
        return FunctionCallNode(name.value, args)

    def parse_negative_expression(self) -> NegativeNode:
        self.consume_value("-")
        return NegativeNode(self.parse_expression())

    def parse_paren_expression(self) -> ParseNode:
        self.consume_value("(")
        expr = self.parse_expression()
        self.consume_value(")")
        return expr

    def parse_operand_expression(self) -> ParseNode:
        if self.is_next_type(TokenType.IDENTIFIER):
            return self.parse_function_call()
        if self.is_next_value("-"):
            return self.parse_negative_expression()
        if self.is_next_value("("):
            return self.parse_paren_expression()
        return self.parse_term()

    def parse_expression(self) -> ParseNode:
        stack: list[Token] = []
        postfix: list[_PostfixItem] = [self.parse_operand_expression()]

        while self.is_next_binary_operator():
            operator = self.consume_binary_operator()
            while stack and _has_higher_or_equal_precedence(stack[-1], operator):
                postfix.append(stack.pop())
            stack.append(operator)
            postfix.append(self.parse_operand_expression())

        while stack:
            postfix.append(stack.pop())
        return reduce_postfix_expression(postfix)

    def parse(self) -> ParseNode:
        """Parse one complete expression; trailing tokens are an error."""
        tree = self.parse_expression()
        token = self._peek()
        if token is not None:
            raise UnexpectedTokenError("end of input", token.value, position=token.position)
        return tree


def _has_higher_or_equal_precedence(left: Token, right: Token) -> bool:
    return PRECEDENCE[left.value] >= PRECEDENCE[right.value]


def reduce_postfix_expression(postfix: list[_PostfixItem]) -> ParseNode:
    """Reduce a postfix operand/operator list into a tree.

    Consumes *postfix* from the end.  An operator takes the next reduced
    item as its right operand and the one after that as its left.

    Raises:
        MalformedExpressionError: If the list runs out mid-reduction.
    """
    if not postfix:
        raise MalformedExpressionError()
    item = postfix.pop()
    if isinstance(item, Token):
        right = reduce_postfix_expression(postfix)
        left = reduce_postfix_expression(postfix)
        return create_binary_operator(item.value, left, right)
    return item


def parse_tokens(tokens: Sequence[Token]) -> ParseNode:
    """Parse a token sequence into a tree."""
    return Parser(tokens).parse()


def parse_formula(text: str) -> ParseNode:
    """Parse formula text into a tree.

    Args:
        text: The formula, with or without a leading ``=``,
            e.g. ``"=SUM(A1:A3) * 2"``.

    Returns:
        The root node.

    Raises:
        FormulaParseError: If the formula has invalid syntax.  Reported
            positions are offsets into the text after the ``=``.
    """
    text = text.strip()
    if text.startswith("="):
        text = text[1:]
    return parse_tokens(lex(text))


class _RefCollector:
    """Walks a parse tree collecting referenced cell addresses."""

    def __init__(self, expand_ranges: bool) -> None:
        self.expand_ranges = expand_ranges
        self.refs: set[str] = set()

    def visit(self, node: ParseNode) -> None:
        if isinstance(node, CellNode):
            self.refs.add(node.value.upper())
        elif isinstance(node, CellRangeNode):
            start, end = node.value
            if self.expand_ranges:
                coords = get_coords_in_range(alpha_to_index_coord(start), alpha_to_index_coord(end))
                self.refs.update(index_coord_to_alpha(c) for c in coords)
            else:
                self.refs.add(node.to_formula())
        for child in node.children:
            self.visit(child)


def extract_refs(tree: ParseNode, *, expand_ranges: bool = True) -> set[str]:
    """Extract all referenced cell addresses from a parsed formula tree.

    Args:
        tree: A tree from ``parse_formula()``.
        expand_ranges: Expand ``A1:B2`` into its member addresses.  When
            false, ranges are reported as ``"A1:B2"``.

    Returns:
        Set of upper-case addresses.
    """
    collector = _RefCollector(expand_ranges)
    collector.visit(tree)
    return collector.refs
