"""Spreadsheet formula lexing, parsing and evaluation.

Public API::

    from quicksheets.formulas import parse_formula, evaluate_formula, evaluate_cell_at
"""

from quicksheets.formulas.errors import (
    DependentCellError,
    DivisionByZeroError,
    EvaluationDepthError,
    FormulaError,
    FormulaFunctionError,
    FormulaParseError,
    LexError,
    MalformedAddressError,
    MalformedExpressionError,
    NonNumericOperandError,
    RangeTooLargeError,
    UnexpectedEndOfInputError,
    UnexpectedTokenError,
    UnknownFunctionError,
)
from quicksheets.formulas.lexer import Token, TokenType, lex
from quicksheets.formulas.nodes import ParseNode
from quicksheets.formulas.parser import Parser, extract_refs, parse_formula, parse_tokens
from quicksheets.formulas.evaluator import evaluate_all, evaluate_cell_at, evaluate_formula
from quicksheets.cell_graph import CircularReferenceError

__all__ = [
    "CircularReferenceError",
    "DependentCellError",
    "DivisionByZeroError",
    "EvaluationDepthError",
    "FormulaError",
    "FormulaFunctionError",
    "FormulaParseError",
    "LexError",
    "MalformedAddressError",
    "MalformedExpressionError",
    "NonNumericOperandError",
    "ParseNode",
    "Parser",
    "RangeTooLargeError",
    "Token",
    "TokenType",
    "UnexpectedEndOfInputError",
    "UnexpectedTokenError",
    "UnknownFunctionError",
    "evaluate_all",
    "evaluate_cell_at",
    "evaluate_formula",
    "extract_refs",
    "lex",
    "parse_formula",
    "parse_tokens",
]
