"""
Unit tests for OSM XML loading

A small hand-written document exercises relations, unresolved node refs,
missing <bounds> and malformed XML. Projection uses a scaling stub so the
expected coordinates stay readable.
"""

import io
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from services.osmsvg.core.types import FeatureKind, StoredFeature
from services.osmsvg.parsers.classifier import default_classifier
from services.osmsvg.parsers.osm_xml import build_geometry, load_osm_geometry, parse_osm


SAMPLE_OSM = b"""<?xml version="1.0" encoding="UTF-8"?>
<osm version="0.6">
  <bounds minlat="0.0" minlon="0.0" maxlat="0.01" maxlon="0.02"/>
  <node id="1" lat="0.0" lon="0.0"/>
  <node id="2" lat="0.0" lon="0.01"/>
  <node id="3" lat="0.01" lon="0.01"/>
  <node id="4" lat="0.01" lon="0.0"/>
  <node id="5" lat="0.005" lon="0.02"/>
  <way id="10">
    <nd ref="1"/>
    <nd ref="2"/>
    <tag k="highway" v="residential"/>
  </way>
  <way id="11">
    <nd ref="1"/>
    <nd ref="2"/>
    <nd ref="3"/>
    <nd ref="4"/>
    <nd ref="1"/>
    <tag k="building" v="yes"/>
  </way>
  <way id="12">
    <nd ref="2"/>
    <nd ref="5"/>
    <nd ref="999"/>
  </way>
  <way id="13">
    <nd ref="3"/>
    <nd ref="4"/>
    <tag k="amenity" v="bench"/>
  </way>
  <relation id="100">
    <member type="way" ref="12" role="outer"/>
    <member type="node" ref="1" role=""/>
    <member type="way" ref="404" role="outer"/>
    <tag k="type" v="multipolygon"/>
    <tag k="leisure" v="park"/>
  </relation>
</osm>
"""


def _scale(points):
    return [(x * 1000.0, y * 1000.0) for x, y in points]


def test_parse_osm_document():
    doc = parse_osm(io.BytesIO(SAMPLE_OSM))

    assert doc.bounds == (0.0, 0.0, 0.02, 0.01)
    assert doc.nodes["3"] == (0.01, 0.01)
    assert list(doc.ways) == ["10", "11", "12", "13"]
    assert doc.ways["10"].tags == [("highway", "residential")]
    assert len(doc.relations) == 1
    assert doc.relations[0].way_refs == ["12", "404"]
    assert ("leisure", "park") in doc.relations[0].tags


def test_relation_members_come_first():
    store, features, bounds = load_osm_geometry(io.BytesIO(SAMPLE_OSM), default_classifier, _scale)

    assert [f.kind for f in features] == [FeatureKind.PARK, FeatureKind.ROAD, FeatureKind.BUILDING]
    assert all(isinstance(f, StoredFeature) for f in features)
    assert store.frozen


def test_unresolved_node_refs_are_skipped():
    store, features, _ = load_osm_geometry(io.BytesIO(SAMPLE_OSM), default_classifier, _scale)
    park = features[0]
    assert store.copy_points(park.ref) == [(10.0, 0.0), (20.0, 5.0)]


def test_points_are_projected():
    store, features, bounds = load_osm_geometry(io.BytesIO(SAMPLE_OSM), default_classifier, _scale)
    road = features[1]

    assert store.copy_points(road.ref) == [(0.0, 0.0), (10.0, 0.0)]
    assert (bounds.min_x, bounds.min_y, bounds.max_x, bounds.max_y) == (0.0, 0.0, 20.0, 10.0)
    assert bounds.height == 1000.0
    assert bounds.width == pytest.approx(2000.0)


def test_unclassified_ways_store_nothing():
    store, features, _ = load_osm_geometry(io.BytesIO(SAMPLE_OSM), default_classifier, _scale)
    # park (2) + road (2) + building (5)
    assert store.point_count == 9
    assert len(store) == len(features) == 3


def test_bounds_fall_back_to_node_extent():
    without_bounds = SAMPLE_OSM.replace(
        b'<bounds minlat="0.0" minlon="0.0" maxlat="0.01" maxlon="0.02"/>', b""
    )
    doc = parse_osm(io.BytesIO(without_bounds))
    assert doc.bounds is None

    _, _, bounds = build_geometry(doc, default_classifier, _scale, target_height=100.0)
    assert (bounds.min_x, bounds.max_x, bounds.min_y, bounds.max_y) == (0.0, 20.0, 0.0, 10.0)


def test_empty_document_has_no_extent():
    doc = parse_osm(io.BytesIO(b'<osm version="0.6"></osm>'))
    with pytest.raises(ValueError):
        build_geometry(doc, default_classifier, _scale)


def test_malformed_xml():
    with pytest.raises(ValueError):
        parse_osm(io.BytesIO(b"<osm><node id='1'></osm>"))


def test_parse_from_path(tmp_path):
    path = tmp_path / "sample.osm"
    path.write_bytes(SAMPLE_OSM)
    doc = parse_osm(str(path))
    assert len(doc.nodes) == 5
