"""Cell address helpers.

Converts between A1-style addresses and zero-based ``(row, column)``
coordinates, and enumerates rectangular ranges.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from quicksheets.formulas.errors import MalformedAddressError

_ADDR_RE = re.compile(r"([A-Za-z]+)([0-9]+)")


class Coordinate(NamedTuple):
    """Zero-based grid position."""

    row: int
    column: int


def col_letter_to_index(letters: str) -> int:
    """Convert column letter(s) to 0-based index.  A=0, B=1, ..., Z=25, AA=26."""
    idx = 0
    for ch in letters.upper():
        idx = idx * 26 + (ord(ch) - ord("A") + 1)
    return idx - 1


def index_to_col_letter(idx: int) -> str:
    """Convert 0-based column index to letter(s).  0=A, 25=Z, 26=AA."""
    result = ""
    n = idx + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        result = chr(65 + rem) + result
    return result


def alpha_to_index_coord(address: str) -> Coordinate:
    """Parse ``'B3'`` -> ``Coordinate(row=2, column=1)``.

    Letters are case-insensitive.  No surrounding whitespace is allowed.

    Raises:
        MalformedAddressError: On missing letters or digits, extra
            characters, or a row number of zero.
    """
    m = _ADDR_RE.fullmatch(address) if isinstance(address, str) else None
    if not m:
        raise MalformedAddressError(str(address))
    row = int(m.group(2)) - 1
    if row < 0:
        raise MalformedAddressError(address, f"Invalid cell address: {address!r} (rows start at 1)")
    return Coordinate(row, col_letter_to_index(m.group(1)))


def index_coord_to_alpha(coord: tuple[int, int]) -> str:
    """Build an address from a 0-based coordinate.  ``(2, 1)`` -> ``'B3'``."""
    row, col = coord
    if row < 0 or col < 0:
        raise MalformedAddressError(repr(tuple(coord)), f"Invalid coordinate: {tuple(coord)!r}")
    return f"{index_to_col_letter(col)}{row + 1}"


def _normalise(start: tuple[int, int], end: tuple[int, int]) -> tuple[int, int, int, int]:
    r0, c0 = start
    r1, c1 = end
    if r0 > r1:
        r0, r1 = r1, r0
    if c0 > c1:
        c0, c1 = c1, c0
    return r0, c0, r1, c1


def get_coords_in_range(start: tuple[int, int], end: tuple[int, int]) -> list[Coordinate]:
    """Expand the closed rectangle between two corners, row-major.

    The corners may be given in any order.

    Args:
        start: One corner, e.g. ``Coordinate(0, 0)``.
        end: The opposite corner, e.g. ``Coordinate(2, 2)``.

    Returns:
        Every coordinate in the rectangle: all columns of the top row,
        then the next row, and so on.
    """
    r0, c0, r1, c1 = _normalise(start, end)
    coords: list[Coordinate] = []
    for r in range(r0, r1 + 1):
        for c in range(c0, c1 + 1):
            coords.append(Coordinate(r, c))
    return coords


def range_size(start: tuple[int, int], end: tuple[int, int]) -> int:
    """Number of cells in the rectangle spanned by two corners."""
    r0, c0, r1, c1 = _normalise(start, end)
    return (r1 - r0 + 1) * (c1 - c0 + 1)
