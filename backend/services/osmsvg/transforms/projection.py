"""
Coordinate projection functions using pyproj.

This module turns (longitude, latitude) pairs into planar coordinates and
derives canvas bounds from a document's geographic extent. Points are
projected in one vectorized call over numpy arrays.
"""

from typing import List, Sequence

import numpy as np
from pyproj import CRS, Transformer

from ..core.constants import DEFAULT_TARGET_HEIGHT, SOURCE_CRS, TARGET_CRS
from ..core.errors import NonFiniteCoordinateError
from ..core.types import Bounds, Coordinate, Projector


def make_projector(source_crs: str = SOURCE_CRS, target_crs: str = TARGET_CRS) -> Projector:
    """
    Create an order-preserving projector (lon, lat) -> (x, y).

    Args:
        source_crs: Source CRS (default "EPSG:4326", WGS84 lon/lat)
        target_crs: Target CRS (default "EPSG:3395", World Mercator)

    Returns:
        project(points) -> list of (x, y) in target CRS units

    Example:
        >>> project = make_projector()
        >>> project([(0.0, 0.0)])
        [(0.0, 0.0)]

    Notes:
        - Uses pyproj.Transformer with always_xy=True, so input is always (lon, lat)
        - Non-finite output (e.g. latitude at a pole) raises NonFiniteCoordinateError
    """
    s = CRS.from_user_input(source_crs)
    t = CRS.from_user_input(target_crs)
    transformer = Transformer.from_crs(s, t, always_xy=True)

    def project(points: Sequence[Coordinate]) -> List[Coordinate]:
        if len(points) == 0:
            return []
        arr = np.asarray(points, dtype=float).reshape(-1, 2)
        xs, ys = transformer.transform(arr[:, 0], arr[:, 1])
        xs = np.asarray(xs, dtype=float)
        ys = np.asarray(ys, dtype=float)
        bad = ~(np.isfinite(xs) & np.isfinite(ys))
        if bad.any():
            idx = int(np.argmax(bad))
            raise NonFiniteCoordinateError(
                f"Projection of {tuple(arr[idx])} to {target_crs} is not finite"
            )
        return list(zip(xs.tolist(), ys.tolist()))

    return project


def compute_bounds(
    min_lon: float,
    min_lat: float,
    max_lon: float,
    max_lat: float,
    project: Projector,
    target_height: float = DEFAULT_TARGET_HEIGHT,
) -> Bounds:
    """
    Project a geographic bounding box and scale it onto a canvas.

    Args:
        min_lon, min_lat, max_lon, max_lat: Geographic extent in degrees
        project: Projector used for the feature points as well
        target_height: Canvas height; width follows the projected aspect ratio

    Returns:
        Bounds in projected units with canvas size and scales

    Raises:
        ValueError: If the projected extent is degenerate
    """
    (max_x, max_y), (min_x, min_y) = project([(max_lon, max_lat), (min_lon, min_lat)])
    return Bounds.from_extent(min_x, min_y, max_x, max_y, target_height)
