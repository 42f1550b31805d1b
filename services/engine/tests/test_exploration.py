from __future__ import annotations

import math
import random

import pytest

from fog_explorer_engine.errors import InvalidInputError
from fog_explorer_engine.models import AreaRecord, Coordinates, LocationFix
from fog_explorer_engine.modules.exploration import ExplorationTracker
from fog_explorer_engine.modules.geodesy import EARTH_RADIUS_M, haversine_m

SEOUL_LAT = 37.5665
SEOUL_LNG = 126.9780
BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
FIXED_MS = 1_700_000_000_000


def _north_of(lat: float, meters: float) -> float:
    return lat + math.degrees(meters / EARTH_RADIUS_M)


def _tracker(seed: int = 7) -> ExplorationTracker:
    return ExplorationTracker(rng=random.Random(seed), clock=lambda: FIXED_MS)


def _fix(lat: float = SEOUL_LAT, lng: float = SEOUL_LNG, accuracy: float = 5.0) -> LocationFix:
    return LocationFix(latitude=lat, longitude=lng, accuracy=accuracy)


def test_first_fix_in_seoul_creates_area():
    area = _tracker().evaluate(_fix(), [])

    assert area is not None
    assert area.center == Coordinates(latitude=SEOUL_LAT, longitude=SEOUL_LNG)
    assert area.radius == 500.0
    assert area.timestamp == FIXED_MS
    assert area.accuracy == 5.0
    assert area.regionInfo is not None
    assert area.regionInfo.name == "서울특별시"
    assert area.regionInfo.coordinates == "37.5665, 126.9780"
    assert 151 <= area.experiencePoints <= 200


def test_seeded_random_source_gives_exact_id_and_experience():
    area = _tracker(seed=42).evaluate(_fix(accuracy=15.0), [])

    mirror = random.Random(42)
    suffix = "".join(mirror.choice(BASE36) for _ in range(9))
    expected_experience = 100 + 25 + mirror.randint(1, 50)

    assert area is not None
    assert area.id == f"area_{FIXED_MS}_{suffix}"
    assert area.experiencePoints == expected_experience


def test_fix_within_minimum_distance_is_rejected_and_farther_fix_is_accepted():
    tracker = _tracker()
    first = tracker.evaluate(_fix(), [])
    assert first is not None

    near = _fix(lat=_north_of(SEOUL_LAT, 90.0))
    assert tracker.evaluate(near, [first]) is None

    far = _fix(lat=_north_of(SEOUL_LAT, 150.0))
    second = tracker.evaluate(far, [first])
    assert second is not None
    assert second.id != first.id
    assert haversine_m(SEOUL_LAT, SEOUL_LNG, second.center.latitude, second.center.longitude) == pytest.approx(150.0)


def test_minimum_distance_is_strict():
    tracker = _tracker()
    first = tracker.evaluate(_fix(), [])
    assert first is not None

    assert tracker.evaluate(_fix(lat=_north_of(SEOUL_LAT, 99.5)), [first]) is None
    assert tracker.evaluate(_fix(lat=_north_of(SEOUL_LAT, 100.5)), [first]) is not None


def test_fix_exactly_at_minimum_distance_is_accepted():
    first = _tracker().evaluate(_fix(), [])
    assert first is not None
    target = _fix(lat=37.5672, lng=126.9791)
    gap = haversine_m(first.center.latitude, first.center.longitude, target.latitude, target.longitude)

    at_gap = ExplorationTracker(min_exploration_distance_m=gap, rng=random.Random(1), clock=lambda: FIXED_MS)
    assert at_gap.evaluate(target, [first]) is not None

    past_gap = ExplorationTracker(
        min_exploration_distance_m=math.nextafter(gap, math.inf),
        rng=random.Random(1),
        clock=lambda: FIXED_MS,
    )
    assert past_gap.evaluate(target, [first]) is None


def test_inaccurate_fix_is_rejected_before_anything_else():
    tracker = _tracker()
    assert tracker.evaluate(_fix(accuracy=50.1), []) is None
    assert tracker.evaluate(_fix(accuracy=50.0), []) is not None
    # Out-of-range coordinates are not inspected once accuracy fails.
    assert tracker.evaluate(_fix(lat=123.0, lng=500.0, accuracy=80.0), []) is None


def test_fix_outside_territory_is_rejected():
    tracker = _tracker()
    assert tracker.evaluate(_fix(lat=35.6762, lng=139.6503), []) is None
    assert tracker.evaluate(_fix(lat=36.0, lng=125.5), []) is None


def test_invalid_input_fails_fast():
    tracker = _tracker()
    with pytest.raises(InvalidInputError):
        tracker.evaluate(_fix(lat=float("nan")), [])
    with pytest.raises(InvalidInputError):
        tracker.evaluate(_fix(lat=91.0), [])
    with pytest.raises(InvalidInputError):
        tracker.evaluate(_fix(accuracy=-1.0), [])


def test_evaluate_does_not_modify_existing_collection():
    tracker = _tracker()
    first = tracker.evaluate(_fix(), [])
    existing = [first]
    snapshot = [area.model_copy(deep=True) for area in existing]

    tracker.evaluate(_fix(lat=_north_of(SEOUL_LAT, 400.0)), existing)

    assert existing == snapshot


@pytest.mark.parametrize(
    ("accuracy", "low", "high"),
    [(5.0, 151, 200), (10.0, 151, 200), (15.0, 126, 175), (20.0, 126, 175), (35.0, 101, 150)],
)
def test_score_ranges_follow_accuracy_bonus(accuracy: float, low: int, high: int):
    tracker = _tracker(seed=3)
    for _ in range(50):
        assert low <= tracker.score_fix(_fix(accuracy=accuracy)) <= high


def test_custom_thresholds_are_honoured():
    tracker = ExplorationTracker(
        accuracy_threshold_m=10.0,
        min_exploration_distance_m=300.0,
        exploration_radius_m=250.0,
        rng=random.Random(1),
    )
    assert tracker.evaluate(_fix(accuracy=12.0), []) is None

    first = tracker.evaluate(_fix(accuracy=8.0), [])
    assert first is not None
    assert first.radius == 250.0
    assert tracker.evaluate(_fix(lat=_north_of(SEOUL_LAT, 200.0), accuracy=8.0), [first]) is None


def test_suggestions_skip_explored_landmarks_and_sort_by_distance():
    tracker = _tracker()
    location = Coordinates(latitude=SEOUL_LAT, longitude=SEOUL_LNG)

    suggestions = tracker.suggest_explorations(location, [])
    assert [item.name for item in suggestions] == ["경복궁", "부산타워", "제주 한라산"]
    assert suggestions[0].difficulty == "easy"
    assert suggestions[1].difficulty == "hard"
    assert suggestions[0].distance < suggestions[1].distance < suggestions[2].distance

    palace = AreaRecord(
        id="area_palace",
        center=Coordinates(latitude=37.5796, longitude=126.9770),
        timestamp=FIXED_MS,
    )
    remaining = tracker.suggest_explorations(location, [palace])
    assert [item.name for item in remaining] == ["부산타워", "제주 한라산"]
