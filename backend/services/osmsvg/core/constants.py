"""
Constants for map rendering.

This module defines all constant values used throughout the pipeline,
including CRS identifiers, canvas defaults, layer ordering, rendering
fan-out policy and clip relations.
"""

from .types import Layer

# ============================================================================
# Projection
# ============================================================================

# Map documents carry WGS84 longitude/latitude
SOURCE_CRS = "EPSG:4326"

# World Mercator on the WGS84 ellipsoid
TARGET_CRS = "EPSG:3395"

# ============================================================================
# Canvas
# ============================================================================

# Canvas height in output units; width follows the map's aspect ratio
DEFAULT_TARGET_HEIGHT = 1000.0

DEFAULT_THEME = "night"

# Decimal places kept for path coordinates
COORDINATE_PRECISION = 3

# ============================================================================
# SVG
# ============================================================================

SVG_NS = "http://www.w3.org/2000/svg"

CLIP_ID_PREFIX = "clip"

# Maximum clip-path nesting (A clipped by B clipped by C ...)
# Chains deeper than this are treated like cycles
MAX_CLIP_DEPTH = 16

# ============================================================================
# Layers
# ============================================================================

# Bottom-most first
DEFAULT_LAYER_ORDER = [
    Layer.COASTLINE,
    Layer.PARK,
    Layer.ROAD,
    Layer.PARK_PATH,
    Layer.TRANSIT,
    Layer.BUILDING,
    Layer.PARK_BUILDING,
]

# Extra layers a primary layer's geometry is also drawn into
DERIVED_LAYERS = {
    Layer.BUILDING: (Layer.PARK_BUILDING,),
    Layer.ROAD: (Layer.PARK_PATH,),
}

# layer -> layer whose shapes it is masked to
CLIP_RELATIONS = {
    Layer.PARK_BUILDING: Layer.PARK,
    Layer.PARK_PATH: Layer.PARK,
}

# ============================================================================
# Input
# ============================================================================

OSM_SUFFIXES = (".osm", ".xml")
GEOJSON_SUFFIXES = (".geojson", ".json")

# Minimum number of points for a drawable element
MIN_DRAWABLE_POINTS = 2
