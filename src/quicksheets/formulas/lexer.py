"""Lark-based tokenizer for cell formulas.

Only the lark lexer is used: the grammar below exists to declare the
terminals, and parsing proper is done by :mod:`quicksheets.formulas.parser`.

Token classes (highest priority first):
- ``CELL_LITERAL``: letters immediately followed by digits (``A1``, ``ab12``)
- ``IDENTIFIER``: letters not followed by digits (function names)
- ``NUMBER_LITERAL``: digits with at most one decimal point
- ``STRING_LITERAL``: single- or double-quoted run, quotes retained
- ``OPERATOR``: ``+ - * /``
- ``PUNCTUATION``: ``( ) , :``
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from lark import Lark
from lark.exceptions import UnexpectedCharacters

from quicksheets.formulas.errors import LexError


class TokenType(str, Enum):
    NUMBER_LITERAL = "NUMBER_LITERAL"
    STRING_LITERAL = "STRING_LITERAL"
    CELL_LITERAL = "CELL_LITERAL"
    IDENTIFIER = "IDENTIFIER"
    OPERATOR = "OPERATOR"
    PUNCTUATION = "PUNCTUATION"


@dataclass(frozen=True)
class Token:
    """A classified lexical unit.

    Attributes:
        type: Token class.
        value: Source text of the token.
        position: 0-based character offset in the source.
    """

    type: TokenType
    value: str
    position: int = 0

    def __str__(self) -> str:
        return f"{self.type.value}({self.value!r})"


# The start rule references every terminal so lark keeps them all.
GRAMMAR = r"""
start: _token*

_token: CELL_LITERAL
    | IDENTIFIER
    | NUMBER_LITERAL
    | STRING_LITERAL
    | OPERATOR
    | PUNCTUATION

CELL_LITERAL.3: /[A-Za-z]+[0-9]+/
IDENTIFIER.2: /[A-Za-z]+/
NUMBER_LITERAL.1: /[0-9]+(\.[0-9]*)?|\.[0-9]+/
STRING_LITERAL: /"[^"]*"|'[^']*'/
OPERATOR: /[-+*\/]/
PUNCTUATION: /[(),:]/

%import common.WS
%ignore WS
"""

_lexer = Lark(GRAMMAR, parser="lalr", lexer="basic", start="start")


def lex(source: str) -> list[Token]:
    """Split formula source into tokens.

    Args:
        source: Formula text without the leading ``=``, e.g. ``"SUM(A1:A3) * 2"``.

    Returns:
        Tokens in source order.  Empty for an empty or blank source.

    Raises:
        LexError: If a character cannot start any token.
    """
    tokens: list[Token] = []
    try:
        for tok in _lexer.lex(source):
            tokens.append(Token(TokenType(tok.type), str(tok), tok.start_pos or 0))
    except UnexpectedCharacters as exc:
        char = source[exc.pos_in_stream] if exc.pos_in_stream < len(source) else ""
        raise LexError(char, position=exc.pos_in_stream) from exc
    return tokens
