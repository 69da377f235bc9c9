"""Built-in formula functions.

Range arguments arrive as lists and are flattened one level, so
``SUM(A1:A3, 10)`` sums four values.
"""

from __future__ import annotations

from typing import Any

from quicksheets.formulas.errors import FormulaFunctionError
from quicksheets.functions.registry import register_function


def _flatten_args(args: tuple[Any, ...]) -> list[Any]:
    """Flatten one level of lists in argument list."""
    result = []
    for a in args:
        if isinstance(a, list):
            result.extend(a)
        else:
            result.append(a)
    return result


def _numbers(name: str, args: tuple[Any, ...]) -> list[int | float]:
    values = [v for v in _flatten_args(args) if v is not None]
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise FormulaFunctionError(name, f"{name}: expected numbers, got {v!r}")
    return values


@register_function("sum")
def fn_sum(*args: Any) -> int | float:
    """SUM(value, ...) -- total of all numeric arguments."""
    return sum(_numbers("SUM", args))


@register_function("average")
def fn_average(*args: Any) -> float:
    """AVERAGE(value, ...) -- arithmetic mean."""
    values = _numbers("AVERAGE", args)
    if not values:
        raise FormulaFunctionError("AVERAGE", "AVERAGE requires at least 1 value")
    return sum(values) / len(values)


@register_function("min")
def fn_min(*args: Any) -> int | float:
    values = _numbers("MIN", args)
    if not values:
        raise FormulaFunctionError("MIN", "MIN requires at least 1 value")
    return min(values)


@register_function("max")
def fn_max(*args: Any) -> int | float:
    values = _numbers("MAX", args)
    if not values:
        raise FormulaFunctionError("MAX", "MAX requires at least 1 value")
    return max(values)


@register_function("count")
def fn_count(*args: Any) -> int:
    """COUNT(value, ...) -- number of numeric values."""
    return sum(
        1
        for v in _flatten_args(args)
        if isinstance(v, (int, float)) and not isinstance(v, bool)
    )


@register_function("abs")
def fn_abs(*args: Any) -> int | float:
    if len(args) != 1:
        raise FormulaFunctionError("ABS", "ABS requires exactly 1 argument")
    return abs(_numbers("ABS", args)[0])


@register_function("round")
def fn_round(*args: Any) -> int | float:
    if len(args) < 1 or len(args) > 2:
        raise FormulaFunctionError("ROUND", "ROUND requires 1-2 arguments")
    values = _numbers("ROUND", args)
    digits = int(values[1]) if len(values) == 2 else 0
    return round(values[0], digits)


@register_function("concat")
def fn_concat(*args: Any) -> str:
    """CONCAT(value, ...) -- join the text of every argument."""
    parts = []
    for v in _flatten_args(args):
        if v is None:
            continue
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        parts.append(str(v))
    return "".join(parts)
