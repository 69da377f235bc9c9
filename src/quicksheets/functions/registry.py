"""Central registry for formula functions.

Formulas look functions up by lower-cased name, so names are normalised
on registration.
"""

from __future__ import annotations

from typing import Any, Callable


_FUNCTIONS: dict[str, Callable[..., Any]] = {}


def register_function(name: str) -> Callable:
    """Decorator that registers a formula function by name.

    Args:
        name: The lookup name for this function (case-insensitive).

    Returns:
        The original function, unmodified.
    """

    def decorator(fn: Callable) -> Callable:
        _FUNCTIONS[name.lower()] = fn
        return fn

    return decorator


def get_function(name: str) -> Callable:
    """Look up a registered function.

    Raises:
        KeyError: If no function is registered under *name*.
    """
    key = name.lower()
    if key not in _FUNCTIONS:
        raise KeyError(f"Unknown function: {name!r}")
    return _FUNCTIONS[key]


def default_functions() -> dict[str, Callable[..., Any]]:
    """Return a copy of the registry, suitable for ``EvaluationContext.functions``."""
    # Importing registers the built-ins.
    import quicksheets.functions.builtins  # noqa: F401

    return dict(_FUNCTIONS)
