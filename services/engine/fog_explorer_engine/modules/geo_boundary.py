from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from ..models import UNKNOWN_REGION, RegionDescriptor
from .territory_data import (
    DEFAULT_REGION_COLOR,
    DEFAULT_REGION_EMOJI,
    REGION_BOXES,
    REGION_CENTERS,
    REGION_EMOJI,
    REGION_METADATA,
    TERRITORY_BOUNDS,
    TERRITORY_FEATURES,
)


@dataclass(frozen=True)
class TerritoryFeature:
    name: str
    iso_code: str
    ring: np.ndarray

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TerritoryFeature":
        ring = np.asarray(payload["ring"], dtype=np.float64)
        if ring.ndim != 2 or ring.shape[1] != 2 or ring.shape[0] < 4:
            raise ValueError(f"feature {payload.get('name')!r} needs a closed ring of at least 4 vertices")
        return cls(name=str(payload["name"]), iso_code=str(payload.get("isoCode", "")), ring=ring)


@dataclass(frozen=True)
class RegionBox:
    name: str
    south: float
    north: float
    west: float
    east: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east


def point_in_ring(lat: float, lng: float, ring: np.ndarray) -> bool:
    """Even-odd ray casting with the ray pointing east from the test point.

    Edge (P[j], P[i]) with j = i - 1 (wrapping) is counted when it straddles
    the point's latitude and the point lies west of where the edge crosses it.
    """

    xi = ring[:, 0]
    yi = ring[:, 1]
    xj = np.roll(xi, 1)
    yj = np.roll(yi, 1)

    straddles = (yi > lat) != (yj > lat)
    with np.errstate(divide="ignore", invalid="ignore"):
        x_cross = (xj - xi) * (lat - yi) / (yj - yi) + xi
    crossings = np.count_nonzero(straddles & (lng < x_cross))
    return bool(crossings % 2 == 1)


class GeoBoundary:
    def __init__(
        self,
        features: Sequence[dict[str, Any]] = TERRITORY_FEATURES,
        region_boxes: Sequence[tuple[str, float, float, float, float]] = REGION_BOXES,
        bounds: dict[str, float] | None = None,
    ):
        self.features = [TerritoryFeature.from_payload(feature) for feature in features]
        self.region_boxes = [RegionBox(*box) for box in region_boxes]
        self.bounds = dict(bounds or TERRITORY_BOUNDS)
        # Prefilter extent comes from the rings themselves; the published bounds
        # clip Dokdo's eastern vertices.
        vertices = np.concatenate([feature.ring for feature in self.features])
        self._extent = (
            float(vertices[:, 1].min()),
            float(vertices[:, 1].max()),
            float(vertices[:, 0].min()),
            float(vertices[:, 0].max()),
        )

    def within_extent(self, lat: float, lng: float) -> bool:
        south, north, west, east = self._extent
        return south <= lat <= north and west <= lng <= east

    def is_inside_territory(self, lat: float, lng: float) -> bool:
        if not self.within_extent(lat, lng):
            return False
        return any(point_in_ring(lat, lng, feature.ring) for feature in self.features)

    def containing_feature(self, lat: float, lng: float) -> str | None:
        for feature in self.features:
            if point_in_ring(lat, lng, feature.ring):
                return feature.name
        return None

    def classify_region(self, lat: float, lng: float) -> str:
        for box in self.region_boxes:
            if box.contains(lat, lng):
                return box.name
        return UNKNOWN_REGION

    def region_names(self) -> list[str]:
        return [box.name for box in self.region_boxes]

    def region_descriptor(self, name: str) -> RegionDescriptor | None:
        center = REGION_CENTERS.get(name)
        if center is None:
            return None
        metadata = REGION_METADATA.get(name, {})
        return RegionDescriptor(
            name=name,
            lat=center["lat"],
            lng=center["lng"],
            zoom=int(center["zoom"]),
            emoji=REGION_EMOJI.get(name, DEFAULT_REGION_EMOJI),
            description=str(metadata.get("description", "")),
            specialties=list(metadata.get("specialties", [])),
            color=str(metadata.get("color", DEFAULT_REGION_COLOR)),
        )

    def region_descriptors(self) -> list[RegionDescriptor]:
        descriptors: list[RegionDescriptor] = []
        for name in self.region_names():
            descriptor = self.region_descriptor(name)
            if descriptor is not None:
                descriptors.append(descriptor)
        return descriptors

    def territory_geojson(self) -> dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "properties": {"name": feature.name, "isoCode": feature.iso_code},
                    "geometry": {"type": "Polygon", "coordinates": [feature.ring.tolist()]},
                }
                for feature in self.features
            ],
        }
