"""Host-side function registry and built-in functions."""

from quicksheets.functions.registry import default_functions, get_function, register_function

__all__ = ["default_functions", "get_function", "register_function"]
