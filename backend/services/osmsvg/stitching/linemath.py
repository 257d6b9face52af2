"""
Line stitching: deduplicate, connect and close line fragments.

Coastlines and multipolygon parks arrive as many open fragments, often
repeated (a way listed by several relations). Stitching turns them into
fewer closed shapes the renderer can fill:

1. dedup()      - drop fragments identical to an already-kept one
2. connect()    - join fragments where one starts at another's end
3. close_ring() - force each result into a ring

Every operation works on a copy, so a failing call leaves the caller's data
untouched. Points compare exactly (no epsilon).
"""

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.errors import GeometryError, NonFiniteCoordinateError
from ..core.types import Coordinate, Polyline


def _swap_remove(items: list, index: int):
    """Remove items[index] by moving the last element into its slot."""
    last = items.pop()
    if index == len(items):
        return last
    removed = items[index]
    items[index] = last
    return removed


def _check_key(point: Coordinate) -> Coordinate:
    if not (math.isfinite(point[0]) and math.isfinite(point[1])):
        raise NonFiniteCoordinateError(f"Cannot order non-finite start point: {point}")
    return tuple(point)


def dedup(polylines: Iterable[Sequence[Coordinate]]) -> List[Polyline]:
    """
    Remove exact duplicate polylines.

    Polylines are grouped by their first point; inside a group a polyline is
    dropped only if its whole point sequence equals one already kept. Empty
    polylines are dropped too.

    Args:
        polylines: Fragments in file order

    Returns:
        Surviving fragments. Removal swaps the last element into the removed
        slot, so the order of the tail is not preserved.

    Raises:
        NonFiniteCoordinateError: If a start point contains NaN/Inf

    Example:
        >>> dedup([[(0.0, 0.0), (1.0, 1.0)], [(2.0, 3.0), (4.0, 5.0)], [(0.0, 0.0), (1.0, 1.0)]])
        [[(0.0, 0.0), (1.0, 1.0)], [(2.0, 3.0), (4.0, 5.0)]]
    """
    lines: List[Polyline] = [list(line) for line in polylines]
    start_points: Dict[Coordinate, List[int]] = {}
    should_remove: List[int] = []

    for i, line in enumerate(lines):
        if not line:
            should_remove.append(i)
            continue
        kept = start_points.setdefault(_check_key(line[0]), [])
        if any(lines[idx] == line for idx in kept):
            should_remove.append(i)
        else:
            kept.append(i)

    for idx in sorted(should_remove, reverse=True):
        _swap_remove(lines, idx)
    return lines


def _find_merge(lines: List[Polyline]) -> Optional[Tuple[int, int]]:
    """
    First (i, j), i != j, with first(i) == last(j), scanning i then j ascending.

    Equivalent to the quadratic double loop; the end-point index only avoids
    rescanning every j for every i.
    """
    ends: Dict[Coordinate, List[int]] = defaultdict(list)
    for j, line in enumerate(lines):
        if line:
            ends[tuple(line[-1])].append(j)

    for i, line in enumerate(lines):
        if not line:
            continue
        for j in ends.get(tuple(line[0]), ()):
            if j != i:
                return i, j
    return None


def connect(polylines: Iterable[Sequence[Coordinate]]) -> List[Polyline]:
    """
    Join fragments whose first point equals another fragment's last point.

    Repeats until no pair matches. Each step takes the first matching pair
    (i ascending, then j ascending, i != j), removes both (swap-with-last,
    higher index first) and appends j's points followed by i's points to the
    end of the collection. The junction point is written once. Every merge
    removes one polyline, so the loop terminates.

    Args:
        polylines: Deduplicated fragments

    Returns:
        Connected polylines; positional order is not the input order

    Example:
        >>> connect([[(0.0, 0.0), (1.0, 1.0)], [(1.0, 1.0), (2.0, 2.0)]])
        [[(0.0, 0.0), (1.0, 1.0), (2.0, 2.0)]]
    """
    lines: List[Polyline] = [list(line) for line in polylines]

    while True:
        pair = _find_merge(lines)
        if pair is None:
            return lines
        i, j = pair
        if i > j:
            i_points = _swap_remove(lines, i)
            j_points = _swap_remove(lines, j)
        else:
            j_points = _swap_remove(lines, j)
            i_points = _swap_remove(lines, i)
        lines.append(j_points + i_points[1:])


def close_ring(polyline: Sequence[Coordinate]) -> Polyline:
    """
    Force a polyline into a ring by appending two points.

    Appends (first.x, last.y) and then the first point. This is not a
    topological closure: when the ends are far apart the added corner can
    cut across the map. Downstream styling relies on this exact pattern.

    Raises:
        GeometryError: If the polyline is empty

    Example:
        >>> close_ring([(3.0, 4.0), (5.0, 6.0)])
        [(3.0, 4.0), (5.0, 6.0), (3.0, 6.0), (3.0, 4.0)]
    """
    if not polyline:
        raise GeometryError("Cannot close an empty polyline")
    sx, sy = polyline[0]
    _, ey = polyline[-1]
    return list(polyline) + [(sx, ey), (sx, sy)]


def stitch(polylines: Iterable[Sequence[Coordinate]]) -> List[Tuple[Coordinate, ...]]:
    """
    Full stitching pass: dedup, connect, then close every result.

    Returns:
        Immutable point tuples, ready for ProcessedFeature
    """
    connected = connect(dedup(polylines))
    return [tuple(close_ring(line)) for line in connected]
