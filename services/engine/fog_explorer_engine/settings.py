from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    data_root: Path
    accuracy_threshold_m: float = 50.0
    min_exploration_distance_m: float = 100.0
    exploration_radius_m: float = 500.0
    country_total_area_km2: float = 100210.0
    log_level: str = "INFO"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be numeric, got {raw!r}") from exc


def load_settings() -> Settings:
    env_root = os.environ.get("FOG_DATA_ROOT")
    if env_root:
        root = Path(env_root).expanduser().resolve()
    else:
        root = Path.home() / ".fog_explorer"
    return Settings(
        data_root=root,
        accuracy_threshold_m=_env_float("FOG_ACCURACY_THRESHOLD_M", 50.0),
        min_exploration_distance_m=_env_float("FOG_MIN_EXPLORATION_DISTANCE_M", 100.0),
        exploration_radius_m=_env_float("FOG_EXPLORATION_RADIUS_M", 500.0),
        country_total_area_km2=_env_float("FOG_COUNTRY_TOTAL_AREA_KM2", 100210.0),
        log_level=os.environ.get("FOG_LOG_LEVEL", "INFO").upper(),
    )
