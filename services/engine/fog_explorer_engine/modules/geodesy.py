from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from ..errors import InvalidInputError

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEGREE_LAT = 111_000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def path_length_m(latitudes: Sequence[float], longitudes: Sequence[float]) -> float:
    """Sum of haversine distances between consecutive points, in the given order."""

    if len(latitudes) < 2:
        return 0.0
    lat = np.radians(np.asarray(latitudes, dtype=np.float64))
    lon = np.radians(np.asarray(longitudes, dtype=np.float64))
    d_phi = np.diff(lat)
    d_lambda = np.diff(lon)
    a = np.sin(d_phi / 2.0) ** 2 + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(d_lambda / 2.0) ** 2
    c = 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))
    return float(np.sum(EARTH_RADIUS_M * c))


def require_coordinates(latitude: float, longitude: float) -> None:
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise InvalidInputError(f"coordinates must be finite, got ({latitude}, {longitude})")
    if not -90.0 <= latitude <= 90.0:
        raise InvalidInputError(f"latitude {latitude} is outside [-90, 90]")
    if not -180.0 <= longitude <= 180.0:
        raise InvalidInputError(f"longitude {longitude} is outside [-180, 180]")


def format_coordinates(latitude: float, longitude: float) -> str:
    return f"{latitude:.4f}, {longitude:.4f}"
