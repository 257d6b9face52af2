"""
HTTP tests for the map rendering endpoints (FastAPI TestClient)
"""

import sys
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import api.routers.render as render_router
from main import app
from services.osmsvg.core.constants import SVG_NS


SAMPLE_OSM = b"""<?xml version="1.0" encoding="UTF-8"?>
<osm version="0.6">
  <bounds minlat="35.000" minlon="139.000" maxlat="35.010" maxlon="139.010"/>
  <node id="1" lat="35.000" lon="139.000"/>
  <node id="2" lat="35.000" lon="139.010"/>
  <node id="3" lat="35.010" lon="139.010"/>
  <node id="4" lat="35.008" lon="139.000"/>
  <node id="5" lat="35.009" lon="139.005"/>
  <way id="20">
    <nd ref="1"/><nd ref="3"/>
    <tag k="highway" v="primary"/>
  </way>
  <way id="21">
    <nd ref="1"/><nd ref="2"/><nd ref="3"/><nd ref="1"/>
    <tag k="building" v="yes"/>
  </way>
  <way id="22">
    <nd ref="4"/><nd ref="5"/>
    <tag k="natural" v="coastline"/>
  </way>
</osm>
"""


@pytest.fixture(scope="module")
def client():
    with TestClient(app) as c:
        yield c


def _render(client, content=SAMPLE_OSM, filename="city.osm", **form):
    return client.post(
        "/api/map/render",
        files={"file": (filename, content, "application/octet-stream")},
        data=form,
    )


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["projection_available"] is True
    assert body["themes"] == ["night", "puke", "gray"]


def test_themes(client):
    response = client.get("/api/map/themes")
    assert response.status_code == 200
    body = response.json()
    assert [t["name"] for t in body["themes"]] == ["night", "puke", "gray"]
    assert body["default_layer_order"][0] == "coastline"
    night = body["themes"][0]
    assert night["background"] == "#000020"
    assert night["classes"]["transit"] == "subway"


def test_render_returns_svg(client):
    response = _render(client, theme="puke", target_height="500", layer_order="coastline,road,building")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert response.headers["x-feature-count"] == "3"
    assert response.headers["x-canvas-height"] == "500.000"
    assert float(response.headers["x-canvas-width"]) > 0

    root = ET.fromstring(response.content)
    layers = [g.get("data-layer") for g in root.findall(f"{{{SVG_NS}}}g")]
    assert layers == ["coastline", "road", "building"]


def test_render_geojson(client):
    geojson = (
        b'{"type": "FeatureCollection", "features": [{"type": "Feature", '
        b'"properties": {"highway": "path"}, '
        b'"geometry": {"type": "LineString", "coordinates": [[139.0, 35.0], [139.01, 35.01]]}}]}'
    )
    response = _render(client, content=geojson, filename="paths.geojson")
    assert response.status_code == 200
    assert response.headers["x-feature-count"] == "1"


@pytest.mark.parametrize(
    ("form", "expected"),
    [
        ({"theme": "sepia"}, 400),
        ({"layer_order": "road,lava"}, 400),
        ({"target_height": "0"}, 400),
        ({"target_height": "1e9"}, 400),
    ],
)
def test_render_rejects_bad_parameters(client, form, expected):
    assert _render(client, **form).status_code == expected


def test_render_rejects_unknown_suffix(client):
    assert _render(client, filename="city.pbf").status_code == 400


def test_render_rejects_empty_file(client):
    assert _render(client, content=b"").status_code == 400


def test_render_rejects_malformed_document(client):
    response = _render(client, content=b"<osm><way></osm>")
    assert response.status_code == 400
    assert "Invalid OSM XML" in response.json()["detail"]


def test_render_rejects_oversized_upload(client, monkeypatch):
    monkeypatch.setattr(render_router, "MAX_UPLOAD_BYTES", 16)
    assert _render(client).status_code == 413
