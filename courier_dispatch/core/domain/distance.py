"""Grid distance helpers.

Distance is the Manhattan metric on an integer grid. There is no real-world
routing behind it.
"""

from __future__ import annotations

from typing import Any

from courier_dispatch.core.domain.errors import InvalidPointError

# Default "has arrived" radius. Coordinates are integers, so this is exact equality.
ARRIVAL_THRESHOLD: float = 0.5


def _coords(point: Any) -> tuple[int, int]:
    x = getattr(point, "x", None)
    y = getattr(point, "y", None)
    for value in (x, y):
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidPointError(f"Invalid point provided for distance calculation: {point!r}")
    return x, y


def manhattan_distance(a: Any, b: Any) -> int:
    """Return ``|a.x - b.x| + |a.y - b.y|``."""
    ax, ay = _coords(a)
    bx, by = _coords(b)
    return abs(ax - bx) + abs(ay - by)


def within_threshold(a: Any, b: Any, threshold: float = ARRIVAL_THRESHOLD) -> bool:
    """Return True if the two points are at most ``threshold`` apart."""
    return manhattan_distance(a, b) <= threshold
