"""
OSM / GeoJSON to layered SVG map rendering.

Public API:
- render_map: full pipeline (load, stitch, render, export)
- SvgRenderer: layered renderer with styles and clip relations
- dedup / connect / close_ring / stitch: line stitching
- GeometryStore: shared coordinate buffer
"""

from .pipeline.orchestrator import render_map
from .render.svg_renderer import SvgRenderer
from .geometry.store import GeometryStore
from .stitching.linemath import close_ring, connect, dedup, stitch

__all__ = [
    "render_map",
    "SvgRenderer",
    "GeometryStore",
    "dedup",
    "connect",
    "close_ring",
    "stitch",
]
