from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from typing import Sequence

from ..errors import InvalidInputError
from ..models import (
    AreaRecord,
    FogRenderData,
    GradientStop,
    RadialGradient,
    RenderCircle,
    RenderMetrics,
    ScreenPoint,
    ScreenRect,
    ViewportDescriptor,
)
from .geodesy import METERS_PER_DEGREE_LAT, haversine_m
from .territory_data import TERRITORY_BOUNDS

CULL_MARGIN = 0.1
MERGE_DISTANCE_FACTOR = 0.8
MERGE_PADDING_M = 100.0
MEDIUM_COMPLEXITY_THRESHOLD = 50
HIGH_COMPLEXITY_THRESHOLD = 100

GRADIENT_STOPS: tuple[tuple[str, float], ...] = (
    ("0%", 1.0),
    ("70%", 0.7),
    ("90%", 0.3),
    ("100%", 0.0),
)


@dataclass(frozen=True)
class ViewportBounds:
    north: float
    south: float
    east: float
    west: float

    @classmethod
    def from_viewport(cls, viewport: ViewportDescriptor) -> "ViewportBounds":
        return cls(
            north=viewport.centerLat + viewport.latitudeDelta / 2.0,
            south=viewport.centerLat - viewport.latitudeDelta / 2.0,
            east=viewport.centerLng + viewport.longitudeDelta / 2.0,
            west=viewport.centerLng - viewport.longitudeDelta / 2.0,
        )

    def expanded(self, lat_margin: float, lng_margin: float) -> "ViewportBounds":
        return ViewportBounds(
            north=self.north + lat_margin,
            south=self.south - lat_margin,
            east=self.east + lng_margin,
            west=self.west - lng_margin,
        )

    def contains(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east


def require_viewport(viewport: ViewportDescriptor) -> None:
    values = (
        viewport.centerLat,
        viewport.centerLng,
        viewport.latitudeDelta,
        viewport.longitudeDelta,
        viewport.screenWidth,
        viewport.screenHeight,
    )
    if not all(math.isfinite(value) for value in values):
        raise InvalidInputError("viewport values must be finite")
    if viewport.latitudeDelta <= 0 or viewport.longitudeDelta <= 0:
        raise InvalidInputError("viewport deltas must be positive")
    if viewport.screenWidth <= 0 or viewport.screenHeight <= 0:
        raise InvalidInputError("screen dimensions must be positive")


def project_point(lat: float, lng: float, viewport: ViewportDescriptor) -> ScreenPoint:
    # Linear in degrees on both axes; deliberately not Web Mercator.
    bounds = ViewportBounds.from_viewport(viewport)
    x = (lng - bounds.west) / (bounds.east - bounds.west) * viewport.screenWidth
    y = (bounds.north - lat) / (bounds.north - bounds.south) * viewport.screenHeight
    return ScreenPoint(x=x, y=y)


def pixels_per_meter(viewport: ViewportDescriptor) -> float:
    return (viewport.screenHeight / viewport.latitudeDelta) / METERS_PER_DEGREE_LAT


def meters_to_pixels(meters: float, viewport: ViewportDescriptor) -> float:
    return meters * pixels_per_meter(viewport)


def rendering_complexity(optimized_count: int) -> str:
    if optimized_count < MEDIUM_COMPLEXITY_THRESHOLD:
        return "Low"
    if optimized_count < HIGH_COMPLEXITY_THRESHOLD:
        return "Medium"
    return "High"


class SpatialMergeEngine:
    """Turns explored areas into overlay geometry for one viewport.

    Every call is a pure function of its arguments. Merging works on copies,
    so the caller's records keep their stored radius.
    """

    def __init__(self, territory_bounds: dict[str, float] | None = None):
        self.territory_bounds = dict(territory_bounds or TERRITORY_BOUNDS)

    def cull_visible(self, areas: Sequence[AreaRecord], viewport: ViewportDescriptor) -> list[AreaRecord]:
        bounds = ViewportBounds.from_viewport(viewport).expanded(
            viewport.latitudeDelta * CULL_MARGIN,
            viewport.longitudeDelta * CULL_MARGIN,
        )
        return [area for area in areas if bounds.contains(area.center.latitude, area.center.longitude)]

    def merge_overlapping(self, areas: Sequence[AreaRecord]) -> list[AreaRecord]:
        if len(areas) <= 1:
            return [area.model_copy() for area in areas]

        merged: list[AreaRecord] = []
        processed: set[int] = set()
        for i, current in enumerate(areas):
            if i in processed:
                continue
            processed.add(i)
            radius = current.radius

            for j in range(i + 1, len(areas)):
                if j in processed:
                    continue
                other = areas[j]
                distance = haversine_m(
                    current.center.latitude,
                    current.center.longitude,
                    other.center.latitude,
                    other.center.longitude,
                )
                # Threshold uses the unmerged radius of the anchor circle.
                if distance < (current.radius + other.radius) * MERGE_DISTANCE_FACTOR:
                    radius = max(radius, other.radius, distance / 2.0 + MERGE_PADDING_M)
                    processed.add(j)

            merged.append(current.model_copy(update={"radius": radius}))
        return merged

    def build_circles(self, areas: Sequence[AreaRecord], viewport: ViewportDescriptor) -> list[RenderCircle]:
        circles: list[RenderCircle] = []
        for area in areas:
            point = project_point(area.center.latitude, area.center.longitude, viewport)
            circles.append(
                RenderCircle(
                    areaId=area.id,
                    cx=point.x,
                    cy=point.y,
                    r=meters_to_pixels(area.radius, viewport),
                )
            )
        return circles

    def build_gradients(self, count: int) -> list[RadialGradient]:
        return [
            RadialGradient(
                id=f"fog-gradient-{index}",
                stops=[GradientStop(offset=offset, stopOpacity=opacity) for offset, opacity in GRADIENT_STOPS],
            )
            for index in range(count)
        ]

    def compute_metrics(self, original_count: int, visible_count: int, optimized_count: int) -> RenderMetrics:
        reduction = 0.0
        if original_count > 0:
            reduction = round((original_count - optimized_count) / original_count * 100.0, 1)
        return RenderMetrics(
            originalCount=original_count,
            visibleCount=visible_count,
            optimizedCount=optimized_count,
            reductionPercentage=reduction,
            renderingComplexity=rendering_complexity(optimized_count),
        )

    def territory_bounds_on_screen(self, viewport: ViewportDescriptor) -> ScreenRect:
        top_left = project_point(self.territory_bounds["north"], self.territory_bounds["west"], viewport)
        bottom_right = project_point(self.territory_bounds["south"], self.territory_bounds["east"], viewport)
        return ScreenRect(
            x=top_left.x,
            y=top_left.y,
            width=bottom_right.x - top_left.x,
            height=bottom_right.y - top_left.y,
        )

    def render_data(self, areas: Sequence[AreaRecord], viewport: ViewportDescriptor) -> FogRenderData:
        require_viewport(viewport)
        visible = self.cull_visible(areas, viewport)
        merged = self.merge_overlapping(visible)
        circles = self.build_circles(merged, viewport)
        return FogRenderData(
            circles=circles,
            gradients=self.build_gradients(len(circles)),
            metrics=self.compute_metrics(len(areas), len(visible), len(merged)),
            fullFog=not circles,
            territoryBounds=self.territory_bounds_on_screen(viewport),
        )


class LatestRenderSlot:
    """Keeps only the newest render result when viewport changes race."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._issued = 0
        self._sequence = 0
        self._result: FogRenderData | None = None

    def next_sequence(self) -> int:
        with self._lock:
            self._issued += 1
            return self._issued

    def publish(self, sequence: int, result: FogRenderData) -> bool:
        with self._lock:
            if sequence < self._sequence:
                return False
            self._sequence = sequence
            self._result = result
            return True

    @property
    def latest(self) -> FogRenderData | None:
        with self._lock:
            return self._result

    @property
    def sequence(self) -> int:
        with self._lock:
            return self._sequence
