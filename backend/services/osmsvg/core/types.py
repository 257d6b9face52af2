"""
Type definitions for the map rendering pipeline.

This module provides the core data structures used throughout rendering:
coordinates and polylines, range references into the geometry store, the
feature sum type (stored vs. processed geometry), layers and canvas bounds.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

# Planar (x, y) after projection, (lon, lat) before
Coordinate = Tuple[float, float]
Polyline = List[Coordinate]
Tag = Tuple[str, str]
Projector = Callable[[Sequence[Coordinate]], List[Coordinate]]


@dataclass(frozen=True)
class RangeRef:
    """
    Half-open index interval [start, stop) into the geometry store's buffer.

    Owned by the GeometryStore that issued it; ranges of different features
    never overlap.
    """
    start: int
    stop: int

    def __len__(self) -> int:
        return self.stop - self.start


class FeatureKind(Enum):
    BUILDING = "building"
    ROAD = "road"
    COASTLINE = "coastline"
    PARK = "park"
    TRANSIT = "transit"
    PROCESSED_COASTLINE = "processed_coastline"
    PROCESSED_PARK = "processed_park"


class Layer(Enum):
    """Rendering / z-order key. Not a data-model fact, see DERIVED_LAYERS."""
    COASTLINE = "coastline"
    PARK = "park"
    ROAD = "road"
    TRANSIT = "transit"
    BUILDING = "building"
    PARK_BUILDING = "park-building"
    PARK_PATH = "park-path"


STORED_KINDS = frozenset({
    FeatureKind.BUILDING,
    FeatureKind.ROAD,
    FeatureKind.COASTLINE,
    FeatureKind.PARK,
    FeatureKind.TRANSIT,
})

PROCESSED_KINDS = frozenset({
    FeatureKind.PROCESSED_COASTLINE,
    FeatureKind.PROCESSED_PARK,
})

KIND_TO_LAYER: Dict[FeatureKind, Layer] = {
    FeatureKind.BUILDING: Layer.BUILDING,
    FeatureKind.ROAD: Layer.ROAD,
    FeatureKind.COASTLINE: Layer.COASTLINE,
    FeatureKind.PARK: Layer.PARK,
    FeatureKind.TRANSIT: Layer.TRANSIT,
    FeatureKind.PROCESSED_COASTLINE: Layer.COASTLINE,
    FeatureKind.PROCESSED_PARK: Layer.PARK,
}


@dataclass(frozen=True)
class StoredFeature:
    """
    Feature whose points live in the shared geometry store.

    Attributes:
        kind: One of the raw (unprocessed) kinds
        ref: Range of the feature's points in the store
    """
    kind: FeatureKind
    ref: RangeRef

    def __post_init__(self):
        if self.kind not in STORED_KINDS:
            raise ValueError(f"{self.kind} cannot reference stored geometry")

    @property
    def layer(self) -> Layer:
        return KIND_TO_LAYER[self.kind]

    def resolve(self, store) -> Sequence[Coordinate]:
        return store.resolve(self.ref)


@dataclass(frozen=True)
class ProcessedFeature:
    """
    Feature owning a stitched point sequence, decoupled from the store.

    Attributes:
        kind: PROCESSED_COASTLINE or PROCESSED_PARK
        points: Materialized, immutable point sequence
    """
    kind: FeatureKind
    points: Tuple[Coordinate, ...]

    def __post_init__(self):
        if self.kind not in PROCESSED_KINDS:
            raise ValueError(f"{self.kind} cannot own processed geometry")
        # Accept any sequence, keep a tuple
        object.__setattr__(self, "points", tuple(self.points))

    @property
    def layer(self) -> Layer:
        return KIND_TO_LAYER[self.kind]

    def resolve(self, store=None) -> Sequence[Coordinate]:
        return self.points


Feature = Union[StoredFeature, ProcessedFeature]
Classifier = Callable[[Sequence[Tag], Sequence[Tag], RangeRef], Optional[Feature]]


@dataclass(frozen=True)
class Bounds:
    """
    Projected extent of a map document and the canvas it is scaled onto.

    Attributes:
        min_x, min_y, max_x, max_y: Projected extent (meters for Mercator)
        width, height: Canvas size in output units
        scale_x, scale_y: Canvas units per projected unit
    """
    min_x: float
    min_y: float
    max_x: float
    max_y: float
    width: float
    height: float
    scale_x: float
    scale_y: float

    @classmethod
    def from_extent(
        cls,
        min_x: float,
        min_y: float,
        max_x: float,
        max_y: float,
        target_height: float,
    ) -> "Bounds":
        """
        Derive canvas width and scales from a projected extent.

        The width follows the extent's aspect ratio so that x and y share the
        same scale.

        Raises:
            ValueError: If the extent has zero width or height
        """
        span_x = max_x - min_x
        span_y = max_y - min_y
        if span_x <= 0 or span_y <= 0:
            raise ValueError(f"Degenerate map extent: {span_x} x {span_y}")
        target_width = (span_x / span_y) * target_height
        return cls(
            min_x=min_x,
            min_y=min_y,
            max_x=max_x,
            max_y=max_y,
            width=target_width,
            height=target_height,
            scale_x=target_width / span_x,
            scale_y=target_height / span_y,
        )

    def to_canvas(self, point: Coordinate) -> Coordinate:
        """Map a projected point onto the canvas (origin bottom-left)."""
        x, y = point
        return ((x - self.min_x) * self.scale_x, (y - self.min_y) * self.scale_y)


@dataclass
class RenderContext:
    """
    Parameters and runtime state shared across pipeline phases.

    Attributes:
        # Input parameters
        source: Path to the input map document (or a binary stream)
        target: Output path or text stream for the SVG document
        source_format: "osm" or "geojson" (None = infer from file suffix)
        theme: Theme name (see render/themes.py)
        target_height: Canvas height; width follows the map's aspect ratio
        layer_order: Layers to render, bottom first (None = DEFAULT_LAYER_ORDER)
        debug: Enable per-phase timing output

        # Runtime state (populated during the pipeline)
        bounds: Canvas bounds (populated by the loader)
        feature_counts: Features per kind after stitching
        layer_counts: Drawn elements per layer
    """

    # === Input parameters ===
    source: object
    target: object
    source_format: Optional[str] = None
    theme: str = "night"
    target_height: float = 1000.0
    layer_order: Optional[List[Layer]] = None
    debug: bool = False

    # === Runtime state ===
    bounds: Optional[Bounds] = None
    feature_counts: Dict[str, int] = field(default_factory=dict)
    layer_counts: Dict[str, int] = field(default_factory=dict)
