from __future__ import annotations

import logging
import math
import random
from typing import Callable, Sequence

from ..errors import InvalidInputError
from ..models import AreaRecord, Coordinates, ExplorationSuggestion, LocationFix, RegionInfo
from ..utils import epoch_ms_now, generate_area_id
from .geo_boundary import GeoBoundary
from .geodesy import format_coordinates, haversine_m, require_coordinates
from .territory_data import LANDMARKS

logger = logging.getLogger(__name__)

BASE_EXPERIENCE = 100
HIGH_ACCURACY_BONUS = 50
MEDIUM_ACCURACY_BONUS = 25
MAX_RANDOM_BONUS = 50


def _difficulty(distance_m: float) -> str:
    if distance_m > 100_000:
        return "hard"
    if distance_m > 50_000:
        return "medium"
    return "easy"


class ExplorationTracker:
    """Decides whether a location fix opens up a new explored area.

    Pure apart from the injected random source and clock: nothing is stored
    and the caller's area list is never modified.
    """

    def __init__(
        self,
        boundary: GeoBoundary | None = None,
        *,
        accuracy_threshold_m: float = 50.0,
        min_exploration_distance_m: float = 100.0,
        exploration_radius_m: float = 500.0,
        rng: random.Random | None = None,
        clock: Callable[[], int] = epoch_ms_now,
    ):
        if exploration_radius_m <= 0:
            raise ValueError("exploration_radius_m must be positive")
        self.boundary = boundary or GeoBoundary()
        self.accuracy_threshold_m = accuracy_threshold_m
        self.min_exploration_distance_m = min_exploration_distance_m
        self.exploration_radius_m = exploration_radius_m
        self.rng = rng or random.Random()
        self.clock = clock

    def is_accurate(self, fix: LocationFix) -> bool:
        return fix.accuracy <= self.accuracy_threshold_m

    def is_near_existing(self, fix: LocationFix, existing_areas: Sequence[AreaRecord]) -> bool:
        return any(
            haversine_m(fix.latitude, fix.longitude, area.center.latitude, area.center.longitude)
            < self.min_exploration_distance_m
            for area in existing_areas
        )

    def evaluate(self, fix: LocationFix, existing_areas: Sequence[AreaRecord]) -> AreaRecord | None:
        if not math.isfinite(fix.accuracy) or fix.accuracy < 0:
            raise InvalidInputError(f"accuracy must be a finite non-negative number, got {fix.accuracy}")
        if not self.is_accurate(fix):
            logger.debug("fix rejected: accuracy %.1fm above threshold", fix.accuracy)
            return None

        require_coordinates(fix.latitude, fix.longitude)
        if not self.boundary.is_inside_territory(fix.latitude, fix.longitude):
            logger.debug("fix rejected: (%.5f, %.5f) outside territory", fix.latitude, fix.longitude)
            return None
        if self.is_near_existing(fix, existing_areas):
            logger.debug("fix rejected: within %.0fm of an explored area", self.min_exploration_distance_m)
            return None

        now_ms = self.clock()
        return AreaRecord(
            id=generate_area_id(now_ms, self.rng),
            center=Coordinates(latitude=fix.latitude, longitude=fix.longitude),
            radius=self.exploration_radius_m,
            timestamp=now_ms,
            accuracy=fix.accuracy,
            experiencePoints=self.score_fix(fix),
            regionInfo=self.region_info(fix.latitude, fix.longitude),
        )

    def score_fix(self, fix: LocationFix) -> int:
        points = BASE_EXPERIENCE
        if fix.accuracy <= 10:
            points += HIGH_ACCURACY_BONUS
        elif fix.accuracy <= 20:
            points += MEDIUM_ACCURACY_BONUS
        return points + self.rng.randint(1, MAX_RANDOM_BONUS)

    def region_info(self, lat: float, lng: float) -> RegionInfo:
        return RegionInfo(
            name=self.boundary.classify_region(lat, lng),
            coordinates=format_coordinates(lat, lng),
        )

    def suggest_explorations(
        self,
        location: Coordinates,
        explored_areas: Sequence[AreaRecord],
        limit: int = 5,
    ) -> list[ExplorationSuggestion]:
        require_coordinates(location.latitude, location.longitude)
        suggestions: list[ExplorationSuggestion] = []
        for landmark in LANDMARKS:
            already_explored = any(
                haversine_m(area.center.latitude, area.center.longitude, landmark["lat"], landmark["lng"])
                < self.exploration_radius_m
                for area in explored_areas
            )
            if already_explored:
                continue
            distance = haversine_m(location.latitude, location.longitude, landmark["lat"], landmark["lng"])
            suggestions.append(
                ExplorationSuggestion(
                    name=landmark["name"],
                    lat=landmark["lat"],
                    lng=landmark["lng"],
                    region=landmark["region"],
                    distance=round(distance),
                    difficulty=_difficulty(distance),
                )
            )
        suggestions.sort(key=lambda item: item.distance)
        return suggestions[:limit]
