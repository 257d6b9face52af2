"""
Flat coordinate storage for map features.

All feature points live in one shared (N, 2) float64 numpy buffer; each
feature keeps only a RangeRef into it. Resolving a feature is a slice of that
buffer (a view, no copy).

Lifecycle:
1. append() points while loading (lon/lat)
2. apply_projection() once, replacing the buffer with planar coordinates
3. freeze(); from here on the buffer is read-only and resolved views stay valid
"""

from typing import Iterable, List, Sequence

import numpy as np

from ..core.errors import InvalidRangeError, NonFiniteCoordinateError
from ..core.types import Coordinate, Projector, RangeRef

_INITIAL_CAPACITY = 1024


def _as_points(points) -> np.ndarray:
    arr = np.asarray(points, dtype=np.float64)
    if arr.size == 0:
        return np.empty((0, 2), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"Expected (N, 2) coordinates, got shape {arr.shape}")
    return arr


def _check_finite(arr: np.ndarray, what: str) -> None:
    bad = ~np.isfinite(arr).all(axis=1)
    if bad.any():
        idx = int(np.argmax(bad))
        raise NonFiniteCoordinateError(f"{what}: {tuple(arr[idx].tolist())}")


class GeometryStore:
    """Shared coordinate buffer plus the ranges handed out for it."""

    def __init__(self):
        # Grows by doubling; rows past _size are unused capacity
        self._buf = np.empty((_INITIAL_CAPACITY, 2), dtype=np.float64)
        self._size = 0
        self._ranges: List[RangeRef] = []
        self._frozen = False

    def __len__(self) -> int:
        return len(self._ranges)

    @property
    def point_count(self) -> int:
        return self._size

    @property
    def coords(self) -> np.ndarray:
        """The live (point_count, 2) buffer as a view."""
        return self._buf[:self._size]

    @property
    def ranges(self) -> Sequence[RangeRef]:
        return tuple(self._ranges)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def next_range(self, count: int) -> RangeRef:
        """Range the next append() of `count` points will occupy."""
        return RangeRef(self._size, self._size + count)

    def _reserve(self, extra: int) -> None:
        needed = self._size + extra
        if needed <= len(self._buf):
            return
        capacity = max(len(self._buf) * 2, needed)
        grown = np.empty((capacity, 2), dtype=np.float64)
        grown[:self._size] = self._buf[:self._size]
        self._buf = grown

    def append(self, points: Iterable[Coordinate]) -> RangeRef:
        """
        Append points to the buffer and return the span they occupy.

        Args:
            points: Coordinates to store (any (N, 2)-shaped sequence or array)

        Returns:
            RangeRef covering exactly the appended points

        Raises:
            NonFiniteCoordinateError: If any component is NaN or infinite
            RuntimeError: If the store is frozen
        """
        self._check_mutable()
        if not isinstance(points, np.ndarray):
            points = list(points)
        new_points = _as_points(points)
        _check_finite(new_points, "Non-finite coordinate")

        ref = self.next_range(len(new_points))
        self._reserve(len(new_points))
        self._buf[ref.start:ref.stop] = new_points
        self._size = ref.stop
        self._ranges.append(ref)
        return ref

    def resolve(self, ref: RangeRef) -> np.ndarray:
        """
        Return the points of a range as a (k, 2) view into the buffer.

        Views taken before freeze() may be invalidated by later appends;
        views taken after freeze() are read-only and stable.

        Raises:
            InvalidRangeError: If the range does not lie inside the buffer
        """
        if not (0 <= ref.start <= ref.stop <= self._size):
            raise InvalidRangeError(
                f"Range [{ref.start}, {ref.stop}) outside buffer of {self._size} points"
            )
        return self._buf[ref.start:ref.stop]

    def copy_points(self, ref: RangeRef) -> List[Coordinate]:
        """Owned list of (x, y) tuples for a range, for code that edits polylines."""
        return [(x, y) for x, y in self.resolve(ref).tolist()]

    def apply_projection(self, project: Projector) -> None:
        """
        Replace every stored point by its projection.

        The projector receives the (N, 2) buffer and must preserve order and
        length; ranges stay valid.

        Raises:
            InvariantViolation subclasses: If the projector changes the length
                or yields non-finite coordinates
        """
        self._check_mutable()
        if self._size == 0:
            return
        projected = _as_points(project(self.coords))
        if len(projected) != self._size:
            raise InvalidRangeError(
                f"Projection returned {len(projected)} points for {self._size}"
            )
        _check_finite(projected, "Projection produced non-finite coordinate")
        self._buf[:self._size] = projected

    def freeze(self) -> None:
        """End the build phase: trim spare capacity and make the buffer read-only."""
        if self._frozen:
            return
        self._buf = self._buf[:self._size]
        self._buf.flags.writeable = False
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError("GeometryStore is frozen; build phase is over")
