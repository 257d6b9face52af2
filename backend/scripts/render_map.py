#!/usr/bin/env python3
"""
Render an OSM XML or GeoJSON document to a layered SVG map.

Usage:
    python scripts/render_map.py input.osm output.svg --theme gray --height 1000 \
        --layers coastline,park,road
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from services.osmsvg import render_map
from services.osmsvg.core.constants import DEFAULT_TARGET_HEIGHT, DEFAULT_THEME
from services.osmsvg.pipeline.orchestrator import parse_layer_names
from services.osmsvg.render.themes import THEMES


def main() -> int:
    parser = argparse.ArgumentParser(description="Render a map document to a layered SVG.")
    parser.add_argument("input", help="OSM XML (.osm/.xml) or GeoJSON (.geojson/.json)")
    parser.add_argument("output", help="Output SVG path")
    parser.add_argument(
        "--theme",
        default=DEFAULT_THEME,
        choices=sorted(THEMES),
        help="Color theme.",
    )
    parser.add_argument(
        "--height",
        type=float,
        default=DEFAULT_TARGET_HEIGHT,
        help="Canvas height; width follows the map's aspect ratio.",
    )
    parser.add_argument(
        "--layers",
        default="",
        help="Comma separated layer order, bottom first (default: all layers).",
    )
    parser.add_argument(
        "--format",
        choices=("osm", "geojson"),
        default=None,
        help="Input format (default: inferred from the file suffix).",
    )
    parser.add_argument("--debug", action="store_true", help="Print per-phase timings.")
    parser.add_argument("--log-file", default=None, help="Also write log lines to this file.")
    args = parser.parse_args()

    input_path = Path(args.input)
    if not input_path.exists():
        parser.error(f"Input not found: {input_path}")
    if args.height <= 0:
        parser.error("--height must be positive")

    try:
        layers = parse_layer_names(args.layers)
    except ValueError as e:
        parser.error(str(e))

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        ctx = render_map(
            input_path,
            output_path,
            theme=args.theme,
            target_height=args.height,
            layer_order=layers,
            source_format=args.format,
            debug=args.debug,
            log_path=args.log_file,
        )
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    total = sum(ctx.layer_counts.values())
    print(
        f"Wrote {output_path} ({ctx.bounds.width:.1f}x{ctx.bounds.height:.1f}, "
        f"{total} elements in {len(ctx.layer_counts)} layers)"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
