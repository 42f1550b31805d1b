from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from .models import AreaRecord, StatsSnapshot
from .utils import ensure_dir

logger = logging.getLogger(__name__)

AREAS_KEY = "exploredAreas"
STATS_KEY = "explorationStats"

_AREA_LIST = TypeAdapter(list[AreaRecord])


class ExplorationStore:
    """Key-value blobs per profile, one JSON file per key.

    Missing keys read as empty. A blob that fails to parse is moved aside to
    ``<key>.corrupt.json`` and also reads as empty.
    """

    def __init__(self, data_root: Path):
        self.data_root = ensure_dir(data_root)
        self.profiles_root = ensure_dir(self.data_root / "profiles")

    def profile_dir(self, profile_id: str) -> Path:
        return self.profiles_root / profile_id

    def key_path(self, profile_id: str, key: str) -> Path:
        return self.profile_dir(profile_id) / f"{key}.json"

    def corrupt_path(self, profile_id: str, key: str) -> Path:
        return self.profile_dir(profile_id) / f"{key}.corrupt.json"

    def export_path(self, profile_id: str, filename: str) -> Path:
        return ensure_dir(self.profile_dir(profile_id) / "exports") / filename

    def get_item(self, profile_id: str, key: str) -> str | None:
        raw = self._read_blob(profile_id, key)
        if raw is None:
            return None
        return raw.decode("utf-8", errors="replace")

    def set_item(self, profile_id: str, key: str, value: str) -> None:
        path = self.key_path(profile_id, key)
        ensure_dir(path.parent)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    def remove_item(self, profile_id: str, key: str) -> None:
        self.key_path(profile_id, key).unlink(missing_ok=True)

    def _quarantine(self, profile_id: str, key: str, reason: Exception) -> None:
        logger.warning("stored %s for profile %s is malformed, resetting to empty: %s", key, profile_id, reason)
        source = self.key_path(profile_id, key)
        if source.exists():
            os.replace(source, self.corrupt_path(profile_id, key))

    def _read_blob(self, profile_id: str, key: str) -> bytes | None:
        path = self.key_path(profile_id, key)
        if not path.exists():
            return None
        return path.read_bytes()

    def load_areas(self, profile_id: str) -> list[AreaRecord]:
        raw = self._read_blob(profile_id, AREAS_KEY)
        if raw is None:
            return []
        try:
            areas = _AREA_LIST.validate_json(raw)
        except (ValidationError, UnicodeDecodeError) as exc:
            self._quarantine(profile_id, AREAS_KEY, exc)
            return []
        duplicates = len(areas) - len({area.id for area in areas})
        if duplicates:
            logger.warning("stored areas for profile %s contain %d duplicate ids", profile_id, duplicates)
        return areas

    def save_areas(self, profile_id: str, areas: list[AreaRecord]) -> None:
        self.set_item(profile_id, AREAS_KEY, _AREA_LIST.dump_json(areas).decode("utf-8"))

    def load_stats(self, profile_id: str) -> StatsSnapshot | None:
        raw = self._read_blob(profile_id, STATS_KEY)
        if raw is None:
            return None
        try:
            return StatsSnapshot.model_validate_json(raw)
        except (ValidationError, UnicodeDecodeError) as exc:
            self._quarantine(profile_id, STATS_KEY, exc)
            return None

    def save_stats(self, profile_id: str, stats: StatsSnapshot) -> None:
        self.set_item(profile_id, STATS_KEY, stats.model_dump_json())

    def clear(self, profile_id: str) -> None:
        self.remove_item(profile_id, AREAS_KEY)
        self.remove_item(profile_id, STATS_KEY)
