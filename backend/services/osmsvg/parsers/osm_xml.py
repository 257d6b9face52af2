"""
OSM XML loading.

Streams an OpenStreetMap XML document with ET.iterparse() and builds the
geometry store plus the classified feature list:

1. Parse <bounds>, nodes, ways and relations (elements cleared as they end)
2. Relation member ways first, classified with the relation's tags
3. Every way again on its own, classified with its tags only
4. Project the whole buffer once, then freeze the store
"""

import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, List, Optional, Sequence, Tuple, Union

from ..core.constants import DEFAULT_TARGET_HEIGHT
from ..core.errors import InvalidRangeError
from ..core.types import Bounds, Classifier, Coordinate, Feature, Projector, Tag
from ..geometry.store import GeometryStore
from ..transforms.projection import compute_bounds
from ..utils.logging import log

Source = Union[str, os.PathLike, BinaryIO]
GeoBox = Tuple[float, float, float, float]  # (min_lon, min_lat, max_lon, max_lat)


@dataclass
class OsmWay:
    way_id: str
    node_refs: List[str] = field(default_factory=list)
    tags: List[Tag] = field(default_factory=list)


@dataclass
class OsmRelation:
    relation_id: str
    way_refs: List[str] = field(default_factory=list)
    tags: List[Tag] = field(default_factory=list)


@dataclass
class OsmDocument:
    """
    Parsed OSM document.

    Attributes:
        bounds: (min_lon, min_lat, max_lon, max_lat) from <bounds>, if present
        nodes: node id -> (lon, lat)
        ways: way id -> OsmWay, in file order
        relations: Relations in file order
    """
    bounds: Optional[GeoBox] = None
    nodes: Dict[str, Coordinate] = field(default_factory=dict)
    ways: Dict[str, OsmWay] = field(default_factory=dict)
    relations: List[OsmRelation] = field(default_factory=list)

    def node_extent(self) -> Optional[GeoBox]:
        if not self.nodes:
            return None
        lons = [lon for lon, _ in self.nodes.values()]
        lats = [lat for _, lat in self.nodes.values()]
        return (min(lons), min(lats), max(lons), max(lats))


def _tags(elem: ET.Element) -> List[Tag]:
    tags: List[Tag] = []
    for tag in elem.findall("tag"):
        key = tag.get("k")
        if key is not None:
            tags.append((key, tag.get("v", "")))
    return tags


def _float_attr(elem: ET.Element, name: str) -> Optional[float]:
    try:
        return float(elem.get(name))
    except (TypeError, ValueError):
        return None


def parse_osm(source: Source, debug: bool = False) -> OsmDocument:
    """
    Parse an OSM XML document.

    Args:
        source: Path or binary stream of an .osm file
        debug: Log element counts

    Returns:
        OsmDocument with bounds, nodes, ways and relations

    Raises:
        ValueError: If the XML is malformed
        FileNotFoundError: If the path does not exist

    Notes:
        - Nodes without valid lat/lon are skipped
        - Only way members of relations are kept
    """
    doc = OsmDocument()
    try:
        for _event, elem in ET.iterparse(source, events=("end",)):
            tag = elem.tag
            if tag == "node":
                node_id = elem.get("id")
                lon = _float_attr(elem, "lon")
                lat = _float_attr(elem, "lat")
                if node_id is not None and lon is not None and lat is not None:
                    doc.nodes[node_id] = (lon, lat)
                elem.clear()
            elif tag == "way":
                way = OsmWay(
                    way_id=elem.get("id", ""),
                    node_refs=[nd.get("ref") for nd in elem.findall("nd") if nd.get("ref")],
                    tags=_tags(elem),
                )
                doc.ways[way.way_id] = way
                elem.clear()
            elif tag == "relation":
                doc.relations.append(OsmRelation(
                    relation_id=elem.get("id", ""),
                    way_refs=[
                        m.get("ref") for m in elem.findall("member")
                        if m.get("type") == "way" and m.get("ref")
                    ],
                    tags=_tags(elem),
                ))
                elem.clear()
            elif tag == "bounds" and doc.bounds is None:
                box = [_float_attr(elem, a) for a in ("minlon", "minlat", "maxlon", "maxlat")]
                if all(v is not None for v in box):
                    doc.bounds = tuple(box)
    except ET.ParseError as e:
        raise ValueError(f"Invalid OSM XML: {e}")

    if debug:
        log(f"[LOAD] nodes={len(doc.nodes)} ways={len(doc.ways)} relations={len(doc.relations)}")
    return doc


def _collect_way(
    relation_tags: Sequence[Tag],
    way: OsmWay,
    doc: OsmDocument,
    classifier: Classifier,
    store: GeometryStore,
    features: List[Feature],
) -> None:
    points = [doc.nodes[ref] for ref in way.node_refs if ref in doc.nodes]
    ref = store.next_range(len(points))
    feature = classifier(relation_tags, way.tags, ref)
    if feature is None:
        return
    appended = store.append(points)
    if appended != ref:
        raise InvalidRangeError(f"Store handed out {appended}, classifier saw {ref}")
    features.append(feature)


def build_geometry(
    doc: OsmDocument,
    classifier: Classifier,
    project: Projector,
    target_height: float = DEFAULT_TARGET_HEIGHT,
    debug: bool = False,
) -> Tuple[GeometryStore, List[Feature], Bounds]:
    """
    Classify a parsed document into a projected, frozen geometry store.

    Relation member ways are visited first with the relation's tags; then
    every way is visited alone. A way that is a relation member can therefore
    yield two features; stitching removes the resulting duplicates.

    Returns:
        (store, features, bounds)

    Raises:
        ValueError: If the document has neither <bounds> nor nodes
    """
    store = GeometryStore()
    features: List[Feature] = []

    for relation in doc.relations:
        for way_ref in relation.way_refs:
            way = doc.ways.get(way_ref)
            if way is not None:
                _collect_way(relation.tags, way, doc, classifier, store, features)

    for way in doc.ways.values():
        _collect_way((), way, doc, classifier, store, features)

    box = doc.bounds or doc.node_extent()
    if box is None:
        raise ValueError("OSM document has no <bounds> and no nodes")
    min_lon, min_lat, max_lon, max_lat = box

    store.apply_projection(project)
    store.freeze()
    bounds = compute_bounds(min_lon, min_lat, max_lon, max_lat, project, target_height)

    if debug:
        log(f"[LOAD] features={len(features)} points={store.point_count} "
            f"canvas={bounds.width:.1f}x{bounds.height:.1f}")
    return store, features, bounds


def load_osm_geometry(
    source: Source,
    classifier: Classifier,
    project: Projector,
    target_height: float = DEFAULT_TARGET_HEIGHT,
    debug: bool = False,
) -> Tuple[GeometryStore, List[Feature], Bounds]:
    """Parse an OSM XML document and build its geometry (see build_geometry)."""
    doc = parse_osm(source, debug=debug)
    return build_geometry(doc, classifier, project, target_height, debug=debug)
