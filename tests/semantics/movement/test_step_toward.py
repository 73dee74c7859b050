"""
Semantic test: single-step movement rule.

Invariant:
Each step changes exactly one coordinate by one unit. The courier moves
horizontally when |dx| > |dy|, vertically otherwise, and stays put at the
target.
"""

from __future__ import annotations

import pytest

from courier_dispatch.core.domain.distance import manhattan_distance
from courier_dispatch.core.domain.types import Point
from courier_dispatch.simulation.movement import step_toward


@pytest.mark.parametrize(
    ("current", "target", "expected"),
    [
        ((0, 0), (3, 1), (1, 0)),
        ((0, 0), (-3, 1), (-1, 0)),
        ((0, 0), (1, 3), (0, 1)),
        ((0, 0), (1, -3), (0, -1)),
        # tie goes vertical
        ((0, 0), (2, 2), (0, 1)),
        ((0, 0), (4, 0), (1, 0)),
        ((0, 0), (0, -4), (0, -1)),
    ],
)
def test_step_direction(current, target, expected) -> None:
    nxt = step_toward(Point(x=current[0], y=current[1]), Point(x=target[0], y=target[1]))

    assert (nxt.x, nxt.y) == expected


def test_step_at_target_is_noop() -> None:
    here = Point(x=7, y=-2)

    assert step_toward(here, Point(x=7, y=-2)) == here


def test_walk_reaches_target_in_manhattan_steps() -> None:
    current = Point(x=-4, y=9)
    target = Point(x=6, y=2)
    expected_steps = manhattan_distance(current, target)

    steps = 0
    while current != target:
        nxt = step_toward(current, target)
        assert manhattan_distance(current, nxt) == 1
        assert manhattan_distance(nxt, target) == manhattan_distance(current, target) - 1
        current = nxt
        steps += 1

    assert steps == expected_steps
