"""
GeoJSON loading.

Reads a FeatureCollection, expands each geometry into line strings with
shapely and classifies them with the feature's properties as tags. Polygons
contribute their exterior and interior rings; points are ignored.
"""

import json
import os
from typing import Any, BinaryIO, Dict, Iterator, List, Sequence, Tuple, Union

from shapely.geometry import shape
from shapely.errors import ShapelyError
from shapely.geometry.base import BaseGeometry, BaseMultipartGeometry

from ..core.constants import DEFAULT_TARGET_HEIGHT
from ..core.errors import InvalidRangeError
from ..core.types import Bounds, Classifier, Coordinate, Feature, Projector, Tag
from ..geometry.store import GeometryStore
from ..transforms.projection import compute_bounds
from ..utils.logging import log

Source = Union[str, os.PathLike, BinaryIO]


def _read_json(source: Source) -> Dict[str, Any]:
    try:
        if hasattr(source, "read"):
            return json.load(source)
        with open(source, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid GeoJSON: {e}")


def _properties_as_tags(properties: Any) -> List[Tag]:
    if not isinstance(properties, dict):
        return []
    tags: List[Tag] = []
    for key, value in properties.items():
        if value is None or isinstance(value, (dict, list)):
            continue
        tags.append((str(key), str(value)))
    return tags


def iter_line_coords(geom: BaseGeometry) -> Iterator[List[Coordinate]]:
    """
    Yield every line string of a geometry as a list of (x, y).

    Polygons yield their exterior then interior rings; multipart geometries
    and collections are flattened. Points yield nothing.
    """
    if geom.is_empty:
        return
    if isinstance(geom, BaseMultipartGeometry):
        for part in geom.geoms:
            yield from iter_line_coords(part)
    elif geom.geom_type == "Polygon":
        yield [(x, y) for x, y, *_ in geom.exterior.coords]
        for interior in geom.interiors:
            yield [(x, y) for x, y, *_ in interior.coords]
    elif geom.geom_type in ("LineString", "LinearRing"):
        yield [(x, y) for x, y, *_ in geom.coords]


def load_geojson_geometry(
    source: Source,
    classifier: Classifier,
    project: Projector,
    target_height: float = DEFAULT_TARGET_HEIGHT,
    debug: bool = False,
) -> Tuple[GeometryStore, List[Feature], Bounds]:
    """
    Load a GeoJSON FeatureCollection into a projected, frozen geometry store.

    Args:
        source: Path or stream of a .geojson file (lon/lat coordinates)
        classifier: Feature classifier; properties are passed as feature tags
        project: Projector shared with the bounds computation
        target_height: Canvas height
        debug: Log counts

    Returns:
        (store, features, bounds); bounds cover every parsed geometry

    Raises:
        ValueError: If the document is not valid GeoJSON or has no geometry
    """
    data = _read_json(source)
    if not isinstance(data, dict):
        raise ValueError("GeoJSON root must be an object")
    if data.get("type") == "FeatureCollection":
        raw_features: Sequence[Any] = data.get("features") or []
    elif data.get("type") == "Feature":
        raw_features = [data]
    else:
        raise ValueError(f"Unsupported GeoJSON root type: {data.get('type')!r}")

    store = GeometryStore()
    features: List[Feature] = []
    min_lon = min_lat = float("inf")
    max_lon = max_lat = float("-inf")
    skipped = 0

    for raw in raw_features:
        if not isinstance(raw, dict) or not raw.get("geometry"):
            skipped += 1
            continue
        try:
            geom = shape(raw["geometry"])
        except (ShapelyError, ValueError, TypeError, KeyError, AttributeError) as e:
            raise ValueError(f"Invalid GeoJSON geometry: {e}")
        if geom.is_empty:
            continue

        gx0, gy0, gx1, gy1 = geom.bounds
        min_lon, min_lat = min(min_lon, gx0), min(min_lat, gy0)
        max_lon, max_lat = max(max_lon, gx1), max(max_lat, gy1)

        tags = _properties_as_tags(raw.get("properties"))
        for points in iter_line_coords(geom):
            ref = store.next_range(len(points))
            feature = classifier((), tags, ref)
            if feature is None:
                continue
            appended = store.append(points)
            if appended != ref:
                raise InvalidRangeError(f"Store handed out {appended}, classifier saw {ref}")
            features.append(feature)

    if min_lon == float("inf"):
        raise ValueError("GeoJSON document contains no geometry")

    store.apply_projection(project)
    store.freeze()
    bounds = compute_bounds(min_lon, min_lat, max_lon, max_lat, project, target_height)

    if debug:
        log(f"[LOAD] geojson features={len(raw_features)} skipped={skipped} "
            f"classified={len(features)}")
    return store, features, bounds
