"""
Main rendering orchestrator - map document in, layered SVG out.

Phases:
1. LOAD    - parse the document, classify ways, project, freeze the store
2. STITCH  - coastlines and open park outlines become closed rings
3. RENDER  - draw every feature into its layer and derived layers
4. EXPORT  - serialize with an explicit layer order
"""

import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..core.constants import (
    DEFAULT_LAYER_ORDER,
    DEFAULT_TARGET_HEIGHT,
    DEFAULT_THEME,
    DERIVED_LAYERS,
    GEOJSON_SUFFIXES,
)
from ..core.types import (
    Classifier,
    Feature,
    FeatureKind,
    Layer,
    ProcessedFeature,
    Projector,
    RenderContext,
    StoredFeature,
)
from ..geometry.store import GeometryStore
from ..parsers.classifier import default_classifier
from ..parsers.geojson import load_geojson_geometry
from ..parsers.osm_xml import load_osm_geometry
from ..render.svg_renderer import SvgRenderer
from ..render.themes import apply_theme, configure_clips, get_theme
from ..stitching.linemath import stitch
from ..transforms.projection import make_projector
from ..utils.logging import close_log_file, log, log_span, set_log_file


def process_coastlines_and_parks(
    features: Iterable[Feature],
    store: GeometryStore,
    debug: bool = False,
) -> List[Feature]:
    """
    Replace coastline fragments and open park outlines by stitched rings.

    Parks whose outline is already a ring are kept as stored features. All
    other kinds pass through in order, ahead of the processed features
    (coastlines first, then parks).
    """
    coastlines = []
    open_parks = []
    result: List[Feature] = []

    for feature in features:
        if isinstance(feature, StoredFeature) and feature.kind is FeatureKind.COASTLINE:
            coastlines.append(store.copy_points(feature.ref))
        elif isinstance(feature, StoredFeature) and feature.kind is FeatureKind.PARK:
            points = store.resolve(feature.ref)
            if len(points) == 0:
                continue
            # Row-wise: both coordinates of the end points must match
            if np.array_equal(points[0], points[-1]):
                result.append(feature)
            else:
                open_parks.append(store.copy_points(feature.ref))
        else:
            result.append(feature)

    with log_span(f"[STITCH] {len(coastlines)} coastline fragments", debug):
        for points in stitch(coastlines):
            result.append(ProcessedFeature(FeatureKind.PROCESSED_COASTLINE, points))

    with log_span(f"[STITCH] {len(open_parks)} open park outlines", debug):
        for points in stitch(open_parks):
            result.append(ProcessedFeature(FeatureKind.PROCESSED_PARK, points))

    return result


def draw_features(
    renderer: SvgRenderer,
    features: Iterable[Feature],
    store: GeometryStore,
    derived_layers: Dict[Layer, Tuple[Layer, ...]] = DERIVED_LAYERS,
) -> int:
    """
    Draw each feature into its layer and into that layer's derived layers.

    Returns:
        Number of elements added across all layers
    """
    drawn = 0
    for feature in features:
        layer = feature.layer
        points = feature.resolve(store)
        for target_layer in (layer, *derived_layers.get(layer, ())):
            if renderer.draw(target_layer, points):
                drawn += 1
    return drawn


def parse_layer_names(names: Union[str, Sequence[str], None]) -> List[Layer]:
    """
    Turn "coastline,park,road" (or a list of names) into layers.

    None or an empty value yields DEFAULT_LAYER_ORDER.

    Raises:
        ValueError: On an unknown layer name
    """
    if names is None:
        return list(DEFAULT_LAYER_ORDER)
    if isinstance(names, str):
        names = [name for name in names.split(",")]
    cleaned = [name.strip() for name in names if name and name.strip()]
    if not cleaned:
        return list(DEFAULT_LAYER_ORDER)

    by_name = {layer.value: layer for layer in Layer}
    layers: List[Layer] = []
    for name in cleaned:
        key = name.lower().replace("_", "-")
        if key not in by_name:
            raise ValueError(f"Unknown layer {name!r}; expected one of {sorted(by_name)}")
        layers.append(by_name[key])
    return layers


def _infer_format(source: object, source_format: Optional[str]) -> str:
    if source_format:
        fmt = source_format.lower()
        if fmt not in ("osm", "geojson"):
            raise ValueError(f"Unsupported source format: {source_format}")
        return fmt
    if isinstance(source, (str, os.PathLike)):
        if Path(source).suffix.lower() in GEOJSON_SUFFIXES:
            return "geojson"
    return "osm"


def render_map(
    source,
    target,
    theme: str = DEFAULT_THEME,
    target_height: float = DEFAULT_TARGET_HEIGHT,
    layer_order: Optional[Sequence[Layer]] = None,
    classifier: Classifier = default_classifier,
    source_format: Optional[str] = None,
    projector: Optional[Projector] = None,
    debug: bool = False,
    log_path: Optional[str] = None,
) -> RenderContext:
    """
    Render a map document to an SVG document.

    Args:
        source: Path or binary stream of an OSM XML or GeoJSON document
        target: Output path or text stream
        theme: Theme name ("night", "puke", "gray")
        target_height: Canvas height; width follows the map's aspect ratio
        layer_order: Layers to render, bottom first (None = DEFAULT_LAYER_ORDER, [] = no groups)
        classifier: Tag classifier (default: highway/building/coastline/park/subway)
        source_format: "osm" or "geojson" (None = infer from suffix, default osm)
        projector: lon/lat -> planar projector (None = World Mercator)
        debug: Log per-phase timings and counts
        log_path: Also write log lines to this file

    Returns:
        Populated RenderContext (bounds, feature and layer counts)

    Raises:
        ValueError: Bad input document, theme, layer name or format
        ClipCycleError: Clip relations form a cycle (nothing written)
        OSError: The target cannot be written
    """
    ctx = RenderContext(
        source=source,
        target=target,
        source_format=_infer_format(source, source_format),
        theme=theme,
        target_height=target_height,
        layer_order=list(layer_order) if layer_order is not None else list(DEFAULT_LAYER_ORDER),
        debug=debug,
    )
    # Fail on a bad theme before any parsing work
    get_theme(ctx.theme)

    if log_path:
        set_log_file(open(log_path, "w", encoding="utf-8"))
    try:
        project = projector or make_projector()
        loader = load_geojson_geometry if ctx.source_format == "geojson" else load_osm_geometry

        with log_span(f"[LOAD] {ctx.source_format}", debug):
            store, features, bounds = loader(source, classifier, project, target_height, debug=debug)
        ctx.bounds = bounds

        features = process_coastlines_and_parks(features, store, debug=debug)
        for feature in features:
            ctx.feature_counts[feature.kind.value] = ctx.feature_counts.get(feature.kind.value, 0) + 1

        renderer = SvgRenderer.from_bounds(bounds)
        apply_theme(renderer, ctx.theme)
        configure_clips(renderer)

        with log_span(f"[RENDER] {len(features)} features", debug):
            drawn = draw_features(renderer, features, store)
        ctx.layer_counts = renderer.layer_counts()

        with log_span("[EXPORT] svg", debug):
            renderer.export(target, ctx.layer_order)

        if debug:
            log(f"[EXPORT] {drawn} elements, canvas {bounds.width:.1f}x{bounds.height:.1f}")
        return ctx
    finally:
        if log_path:
            close_log_file()
