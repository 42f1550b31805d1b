from __future__ import annotations

import numpy as np
import pytest

from fog_explorer_engine.modules.geo_boundary import GeoBoundary, RegionBox, TerritoryFeature, point_in_ring
from fog_explorer_engine.modules.territory_data import REGION_BOXES, TERRITORY_BOUNDS

SQUARE = np.asarray([[0.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 2.0], [0.0, 0.0]])


def test_point_in_ring_uses_crossing_parity():
    assert point_in_ring(1.0, 1.0, SQUARE)
    assert not point_in_ring(3.0, 1.0, SQUARE)
    assert not point_in_ring(1.0, -0.5, SQUARE)


def test_mainland_jeju_and_dokdo_points_are_inside():
    boundary = GeoBoundary()

    assert boundary.is_inside_territory(37.5665, 126.9780)
    assert boundary.containing_feature(37.5665, 126.9780) == "대한민국"

    assert boundary.is_inside_territory(33.3617, 126.5292)
    assert boundary.containing_feature(33.3617, 126.5292) == "제주특별자치도"

    # East of the published bounding box, but inside the Dokdo ring.
    assert 131.8733 > TERRITORY_BOUNDS["east"]
    assert boundary.is_inside_territory(37.2441, 131.8733)
    assert boundary.containing_feature(37.2441, 131.8733) == "독도"


def test_points_outside_every_feature_are_rejected():
    boundary = GeoBoundary()

    # Tokyo, far outside the territory extent.
    assert not boundary.is_inside_territory(35.6762, 139.6503)
    # Yellow Sea, inside the extent but west of the coastline.
    assert not boundary.is_inside_territory(36.0, 125.5)
    assert boundary.containing_feature(36.0, 125.5) is None


def test_region_classification_respects_box_order():
    boundary = GeoBoundary()

    assert boundary.classify_region(37.5665, 126.9780) == "서울특별시"
    # Inside both the Incheon and Gyeonggi boxes; Incheon is listed first.
    assert boundary.classify_region(37.45, 126.7) == "인천광역시"
    assert boundary.classify_region(33.3617, 126.5292) == "제주특별자치도"
    assert boundary.classify_region(37.2441, 131.8733) == "unknown"


def test_region_box_edges_are_inclusive():
    box = RegionBox("test", 1.0, 2.0, 3.0, 4.0)
    assert box.contains(1.0, 3.0)
    assert box.contains(2.0, 4.0)
    assert not box.contains(2.0001, 4.0)


def test_first_matching_box_wins_for_custom_order():
    boxes = [("first", 0.0, 10.0, 0.0, 10.0), ("second", 0.0, 5.0, 0.0, 5.0)]
    boundary = GeoBoundary(region_boxes=boxes)
    assert boundary.classify_region(2.0, 2.0) == "first"

    reversed_boundary = GeoBoundary(region_boxes=list(reversed(boxes)))
    assert reversed_boundary.classify_region(2.0, 2.0) == "second"


def test_feature_requires_closed_ring():
    with pytest.raises(ValueError):
        TerritoryFeature.from_payload({"name": "broken", "ring": [[0.0, 0.0], [1.0, 1.0]]})


def test_region_descriptors_fill_defaults():
    boundary = GeoBoundary()
    descriptors = {descriptor.name: descriptor for descriptor in boundary.region_descriptors()}

    assert len(descriptors) == len(REGION_BOXES)
    seoul = descriptors["서울특별시"]
    assert seoul.zoom == 11
    assert seoul.color == "#FF5722"
    assert "경복궁" in seoul.specialties

    sejong = descriptors["세종특별자치시"]
    assert sejong.emoji == "📍"
    assert sejong.color == "#4CAF50"
    assert sejong.specialties == []

    assert boundary.region_descriptor("nowhere") is None


def test_territory_geojson_lists_every_ring():
    geojson = GeoBoundary().territory_geojson()

    assert geojson["type"] == "FeatureCollection"
    assert [feature["properties"]["name"] for feature in geojson["features"]] == ["대한민국", "제주특별자치도", "독도"]
    for feature in geojson["features"]:
        ring = feature["geometry"]["coordinates"][0]
        assert ring[0] == ring[-1]
