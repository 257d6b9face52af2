"""
Integration tests for the rendering pipeline

Tests cover:
1. Coastline and park stitching into processed features
2. Fan-out of buildings and roads into park layers
3. Layer name parsing
4. render_map end to end on OSM XML and GeoJSON
"""

import io
import json
import sys
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from services.osmsvg import render_map
from services.osmsvg.core.constants import DEFAULT_LAYER_ORDER, SVG_NS
from services.osmsvg.core.types import FeatureKind, Layer, ProcessedFeature, StoredFeature
from services.osmsvg.geometry.store import GeometryStore
from services.osmsvg.pipeline.orchestrator import (
    draw_features,
    parse_layer_names,
    process_coastlines_and_parks,
)
from services.osmsvg.render.svg_renderer import SvgRenderer


SAMPLE_OSM = """<?xml version="1.0" encoding="UTF-8"?>
<osm version="0.6">
  <bounds minlat="0.0" minlon="0.0" maxlat="0.01" maxlon="0.01"/>
  <node id="1" lat="0.000" lon="0.000"/>
  <node id="2" lat="0.000" lon="0.010"/>
  <node id="3" lat="0.010" lon="0.010"/>
  <node id="4" lat="0.010" lon="0.000"/>
  <node id="5" lat="0.002" lon="0.002"/>
  <node id="6" lat="0.002" lon="0.004"/>
  <node id="7" lat="0.004" lon="0.004"/>
  <node id="8" lat="0.008" lon="0.000"/>
  <node id="9" lat="0.008" lon="0.005"/>
  <node id="10" lat="0.009" lon="0.010"/>
  <way id="20">
    <nd ref="1"/><nd ref="3"/>
    <tag k="highway" v="primary"/>
  </way>
  <way id="21">
    <nd ref="5"/><nd ref="6"/><nd ref="7"/><nd ref="5"/>
    <tag k="building" v="yes"/>
  </way>
  <way id="22">
    <nd ref="8"/><nd ref="9"/>
    <tag k="natural" v="coastline"/>
  </way>
  <way id="23">
    <nd ref="9"/><nd ref="10"/>
    <tag k="natural" v="coastline"/>
  </way>
  <way id="24">
    <nd ref="1"/><nd ref="2"/><nd ref="3"/><nd ref="1"/>
    <tag k="leisure" v="park"/>
  </way>
  <way id="25">
    <nd ref="2"/><nd ref="6"/>
    <tag k="railway" v="subway"/>
  </way>
</osm>
"""


def _scale(points):
    return [(x * 1000.0, y * 1000.0) for x, y in points]


def _q(tag):
    return f"{{{SVG_NS}}}{tag}"


def _store_with(*polylines):
    store = GeometryStore()
    refs = [store.append(points) for points in polylines]
    store.freeze()
    return store, refs


# ============================================================================
# Stitching phase
# ============================================================================

def test_process_coastlines_and_parks():
    store, refs = _store_with(
        [(0.0, 0.0), (1.0, 0.0)],              # road
        [(0.0, 5.0), (1.0, 5.0)],              # coastline a
        [(1.0, 5.0), (2.0, 6.0)],              # coastline b
        [(0.0, 5.0), (1.0, 5.0)],              # coastline a, repeated
        [(0.0, 0.0), (3.0, 0.0), (0.0, 0.0)],  # closed park
        [(7.0, 7.0), (8.0, 9.0)],              # open park
    )
    features = [
        StoredFeature(FeatureKind.ROAD, refs[0]),
        StoredFeature(FeatureKind.COASTLINE, refs[1]),
        StoredFeature(FeatureKind.COASTLINE, refs[2]),
        StoredFeature(FeatureKind.COASTLINE, refs[3]),
        StoredFeature(FeatureKind.PARK, refs[4]),
        StoredFeature(FeatureKind.PARK, refs[5]),
    ]

    result = process_coastlines_and_parks(features, store)

    assert result[:2] == [features[0], features[4]]
    assert result[2] == ProcessedFeature(
        FeatureKind.PROCESSED_COASTLINE,
        [(0.0, 5.0), (1.0, 5.0), (2.0, 6.0), (0.0, 6.0), (0.0, 5.0)],
    )
    assert result[3] == ProcessedFeature(
        FeatureKind.PROCESSED_PARK,
        [(7.0, 7.0), (8.0, 9.0), (7.0, 9.0), (7.0, 7.0)],
    )
    assert len(result) == 4


def test_park_ends_sharing_one_coordinate_are_stitched():
    store, refs = _store_with(
        [(1.0, 0.0), (2.0, 3.0), (1.0, 4.0)],  # same x at both ends, different y
        [(5.0, 5.0), (6.0, 5.0), (5.0, 5.0)],  # closed
    )
    features = [StoredFeature(FeatureKind.PARK, ref) for ref in refs]

    result = process_coastlines_and_parks(features, store)

    assert result[0] == features[1]
    assert result[1] == ProcessedFeature(
        FeatureKind.PROCESSED_PARK,
        [(1.0, 0.0), (2.0, 3.0), (1.0, 4.0), (1.0, 4.0), (1.0, 0.0)],
    )
    assert len(result) == 2


def test_process_without_coastlines_or_parks():
    store, refs = _store_with([(0.0, 0.0), (1.0, 0.0)])
    features = [StoredFeature(FeatureKind.BUILDING, refs[0])]
    assert process_coastlines_and_parks(features, store) == features


# ============================================================================
# Drawing phase
# ============================================================================

def test_buildings_and_roads_fan_out_into_park_layers():
    store, refs = _store_with(
        [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 0.0)],
        [(0.0, 0.0), (5.0, 5.0)],
        [(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 0.0)],
        [(4.0, 4.0), (6.0, 6.0)],
    )
    features = [
        StoredFeature(FeatureKind.BUILDING, refs[0]),
        StoredFeature(FeatureKind.ROAD, refs[1]),
        StoredFeature(FeatureKind.PARK, refs[2]),
        StoredFeature(FeatureKind.TRANSIT, refs[3]),
    ]
    renderer = SvgRenderer(10.0, 10.0)

    drawn = draw_features(renderer, features, store)

    assert drawn == 6
    assert renderer.layer_counts() == {
        "building": 1,
        "park-building": 1,
        "road": 1,
        "park-path": 1,
        "park": 1,
        "transit": 1,
    }
    assert renderer.elements(Layer.BUILDING) == renderer.elements(Layer.PARK_BUILDING)


def test_short_features_are_not_drawn():
    store, refs = _store_with([(0.0, 0.0)])
    renderer = SvgRenderer(10.0, 10.0)
    assert draw_features(renderer, [StoredFeature(FeatureKind.ROAD, refs[0])], store) == 0


# ============================================================================
# Layer names
# ============================================================================

def test_parse_layer_names():
    assert parse_layer_names("coastline, park ,road") == [Layer.COASTLINE, Layer.PARK, Layer.ROAD]
    assert parse_layer_names(["park_building", "PARK-PATH"]) == [Layer.PARK_BUILDING, Layer.PARK_PATH]


@pytest.mark.parametrize("value", [None, "", " , ", []])
def test_parse_layer_names_default(value):
    assert parse_layer_names(value) == DEFAULT_LAYER_ORDER


def test_parse_layer_names_unknown():
    with pytest.raises(ValueError):
        parse_layer_names("coastline,lava")


# ============================================================================
# render_map
# ============================================================================

def test_render_map_osm(tmp_path):
    source = tmp_path / "city.osm"
    source.write_text(SAMPLE_OSM, encoding="utf-8")
    target = tmp_path / "city.svg"

    ctx = render_map(source, target, theme="gray", projector=_scale)

    assert ctx.source_format == "osm"
    assert ctx.bounds.height == 1000.0
    assert ctx.bounds.width == pytest.approx(1000.0)
    assert ctx.feature_counts == {
        "road": 1,
        "building": 1,
        "park": 1,
        "transit": 1,
        "processed_coastline": 1,
    }
    assert ctx.layer_counts["park-building"] == 1
    assert ctx.layer_counts["park-path"] == 1

    root = ET.fromstring(target.read_bytes())
    groups = root.findall(_q("g"))
    assert [g.get("data-layer") for g in groups] == [layer.value for layer in DEFAULT_LAYER_ORDER]

    by_layer = {g.get("data-layer"): g for g in groups}
    coast = by_layer["coastline"].findall(_q("path"))
    # (0,8)-(5,8)-(10,9) closed via (0,9); canvas y flipped
    assert coast[0].get("d") == "M0 200 L500 200 L1000 100 L0 100 L0 200 Z"
    assert by_layer["coastline"].find(_q("path")).get("class") == "coastline"
    assert by_layer["transit"].find(_q("path")).get("class") == "subway"
    assert by_layer["park-building"].get("clip-path").startswith("url(#clip-")
    assert "svg { background-color: #fff; }" in root.find(_q("style")).text


def test_render_map_layer_subset_and_stream(tmp_path):
    source = tmp_path / "city.osm"
    source.write_text(SAMPLE_OSM, encoding="utf-8")
    out = io.StringIO()

    ctx = render_map(source, out, layer_order=[Layer.ROAD, Layer.BUILDING], projector=_scale)

    root = ET.fromstring(out.getvalue().encode("utf-8"))
    assert [g.get("data-layer") for g in root.findall(_q("g"))] == ["road", "building"]
    assert root.findall(f".//{_q('clipPath')}") == []
    assert ctx.theme == "night"


def test_render_map_empty_layer_order_renders_no_groups(tmp_path):
    source = tmp_path / "city.osm"
    source.write_text(SAMPLE_OSM, encoding="utf-8")
    out = io.StringIO()

    ctx = render_map(source, out, layer_order=[], projector=_scale)

    root = ET.fromstring(out.getvalue().encode("utf-8"))
    assert ctx.layer_order == []
    assert root.findall(_q("g")) == []
    assert root.findall(f".//{_q('path')}") == []
    # Features were still drawn; only the export is empty
    assert ctx.layer_counts["road"] == 1


def test_render_map_geojson(tmp_path):
    source = tmp_path / "park.geojson"
    source.write_text(json.dumps({
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"leisure": "park"},
                "geometry": {"type": "LineString", "coordinates": [[0, 0], [0.01, 0.01]]},
            },
            {
                "type": "Feature",
                "properties": {"highway": "footway"},
                "geometry": {"type": "LineString", "coordinates": [[0, 0.01], [0.01, 0]]},
            },
        ],
    }), encoding="utf-8")
    target = tmp_path / "park.svg"

    ctx = render_map(source, target, projector=_scale)

    assert ctx.source_format == "geojson"
    assert ctx.feature_counts == {"road": 1, "processed_park": 1}
    assert target.exists()


def test_render_map_writes_log_file(tmp_path):
    source = tmp_path / "city.osm"
    source.write_text(SAMPLE_OSM, encoding="utf-8")
    log_path = tmp_path / "render.log"

    render_map(source, tmp_path / "city.svg", projector=_scale, debug=True, log_path=str(log_path))

    text = log_path.read_text(encoding="utf-8")
    assert "[LOAD]" in text
    assert "[STITCH]" in text
    assert "[EXPORT]" in text


def test_render_map_unknown_theme_writes_nothing(tmp_path):
    source = tmp_path / "city.osm"
    source.write_text(SAMPLE_OSM, encoding="utf-8")
    target = tmp_path / "city.svg"

    with pytest.raises(ValueError):
        render_map(source, target, theme="sepia", projector=_scale)
    assert not target.exists()


def test_render_map_invalid_document(tmp_path):
    source = tmp_path / "broken.osm"
    source.write_text("<osm><way>", encoding="utf-8")
    with pytest.raises(ValueError):
        render_map(source, tmp_path / "broken.svg", projector=_scale)


def test_render_map_default_projection(tmp_path):
    source = tmp_path / "city.osm"
    source.write_text(SAMPLE_OSM, encoding="utf-8")

    ctx = render_map(source, tmp_path / "city.svg")

    assert ctx.bounds.height == 1000.0
    assert ctx.bounds.width == pytest.approx(1006.7, rel=1e-3)
