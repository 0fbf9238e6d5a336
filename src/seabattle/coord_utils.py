import re
from typing import Tuple

# Regex for valid coordinates A1-J10 (row letter, column number)
COORD_RE = re.compile(r"^[A-J](10|[1-9])$")


class CoordinateError(ValueError):
    """Raised for console input that is not a coordinate like 'B7'."""


def coord_to_xy(coord: str) -> Tuple[int, int]:
    """
    Convert a coordinate like 'A1' through 'J10' to zero-based (x, y).
    The letter selects the row (y), the number the column (x).
    """
    text = coord.strip().upper()
    if not COORD_RE.match(text):
        raise CoordinateError(f"Invalid coordinate: {coord!r}")
    return int(text[1:]) - 1, ord(text[0]) - ord("A")


def format_coord(x: int, y: int) -> str:
    """
    Convert zero-based (x, y) to coordinate string like 'A1'.
    """
    return f"{chr(ord('A') + y)}{x + 1}"
