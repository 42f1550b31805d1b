from __future__ import annotations

import math
from bisect import bisect_right
from typing import Sequence

import numpy as np

from ..models import AreaRecord, LevelProgress, RarityTier, RegionCompletion, StatsSnapshot
from .geodesy import path_length_m

LEVEL_THRESHOLDS: tuple[int, ...] = (500, 1500, 3000, 5000, 8000, 12000, 17000, 23000, 30000)
MAX_LEVEL = len(LEVEL_THRESHOLDS) + 1

LEVEL_TITLES: dict[int, str] = {
    1: "초보 탐험가",
    2: "견습 탐험가",
    3: "숙련 탐험가",
    4: "전문 탐험가",
    5: "베테랑 탐험가",
    6: "마스터 탐험가",
    7: "그랜드 마스터",
    8: "전설의 탐험가",
    9: "한국 마스터",
    10: "탐험의 신",
}
DEFAULT_LEVEL_TITLE = "탐험가"

RARITY_THRESHOLDS: tuple[tuple[int, RarityTier], ...] = (
    (180, RarityTier.legendary),
    (150, RarityTier.epic),
    (120, RarityTier.rare),
)

REGION_COMPLETION_PER_AREA = 5


def level(total_experience: int) -> int:
    return min(MAX_LEVEL, 1 + bisect_right(LEVEL_THRESHOLDS, total_experience))


def experience_to_next_level(total_experience: int) -> int:
    current = level(total_experience)
    if current >= MAX_LEVEL:
        return 0
    return LEVEL_THRESHOLDS[current - 1] - total_experience


def level_title(level_value: int) -> str:
    return LEVEL_TITLES.get(level_value, DEFAULT_LEVEL_TITLE)


def level_progress(total_experience: int) -> LevelProgress:
    current = level(total_experience)
    return LevelProgress(
        level=current,
        title=level_title(current),
        experience=total_experience,
        experienceToNextLevel=experience_to_next_level(total_experience),
    )


def rarity_tier(experience_points: int) -> RarityTier:
    for threshold, tier in RARITY_THRESHOLDS:
        if experience_points >= threshold:
            return tier
    return RarityTier.common


def format_distance(meters: int) -> str:
    if meters < 1000:
        return f"{meters}m"
    return f"{meters / 1000:.1f}km"


class StatsAggregator:
    """Reduces an ordered area collection to a statistics snapshot.

    The snapshot is always derived from the full sequence; nothing is
    accumulated between calls.
    """

    def __init__(self, country_total_area_km2: float = 100210.0):
        if country_total_area_km2 <= 0:
            raise ValueError("country_total_area_km2 must be positive")
        self.country_total_area_km2 = country_total_area_km2

    def aggregate(self, areas: Sequence[AreaRecord]) -> StatsSnapshot:
        if not areas:
            return StatsSnapshot()

        radii_km = np.asarray([area.radius for area in areas], dtype=np.float64) / 1000.0
        # Disjoint-disk sum; overlapping circles are counted twice.
        explored_km2 = float(np.sum(math.pi * radii_km**2))
        percentage = min(100.0, explored_km2 / self.country_total_area_km2 * 100.0)

        distance_m = path_length_m(
            [area.center.latitude for area in areas],
            [area.center.longitude for area in areas],
        )
        accuracy_mean = sum(area.accuracy or 0.0 for area in areas) / len(areas)
        regions = {area.regionInfo.name for area in areas if area.regionInfo is not None and area.regionInfo.name}

        return StatsSnapshot(
            totalAreasExplored=len(areas),
            explorationPercentage=max(0.0, percentage),
            totalDistanceTraveled=int(round(distance_m)),
            totalExperiencePoints=sum(area.experiencePoints or 0 for area in areas),
            averageAccuracy=round(accuracy_mean, 1),
            regionsCovered=regions,
            totalExploredAreaKm2=explored_km2,
        )

    def level(self, total_experience: int) -> int:
        return level(total_experience)

    def experience_to_next_level(self, total_experience: int) -> int:
        return experience_to_next_level(total_experience)

    def level_progress(self, total_experience: int) -> LevelProgress:
        return level_progress(total_experience)

    def region_completion(self, areas: Sequence[AreaRecord], region: str) -> RegionCompletion:
        region_areas = [area for area in areas if area.regionInfo is not None and area.regionInfo.name == region]
        return RegionCompletion(
            region=region,
            areasExplored=len(region_areas),
            completionPercentage=float(min(len(region_areas) * REGION_COMPLETION_PER_AREA, 100)),
            lastExplored=max((area.timestamp for area in region_areas), default=None),
        )
