from __future__ import annotations

import logging
import random
import threading
import uuid
from dataclasses import dataclass, field
from typing import Callable

from .errors import ProfileNotFoundError
from .exploration_store import ExplorationStore
from .metadata_store import MetadataStore
from .models import (
    AreaRecord,
    Coordinates,
    ExplorationSuggestion,
    ExportArtifact,
    ExportBundle,
    FixResult,
    FogMaskRequest,
    FogRenderData,
    InventoryEntry,
    LevelProgress,
    LocationFix,
    ProfileSummary,
    RegionCompletion,
    StatsSnapshot,
    ValidationReport,
    ViewportDescriptor,
)
from .modules.exploration import ExplorationTracker
from .modules.fog_engine import LatestRenderSlot, SpatialMergeEngine
from .modules.fog_raster import rasterize_fog, write_fog_png
from .modules.geo_boundary import GeoBoundary
from .modules.stats import StatsAggregator, format_distance, rarity_tier
from .modules.validation import summarize_issue_severity, validate_areas
from .settings import Settings
from .utils import epoch_ms_now, sha256_bytes, utc_now_iso

logger = logging.getLogger(__name__)


@dataclass
class ProfileState:
    profile_id: str
    areas: list[AreaRecord] = field(default_factory=list)
    stats: StatsSnapshot = field(default_factory=StatsSnapshot)
    lock: threading.Lock = field(default_factory=threading.Lock)
    render_slot: LatestRenderSlot = field(default_factory=LatestRenderSlot)


class ExplorationService:
    """Holds the in-memory area collection of every profile.

    Memory is authoritative: a fix is appended and the stats recomputed first,
    then both are written to the store. A failed write is logged and the
    in-memory state is kept.
    """

    def __init__(
        self,
        settings: Settings,
        metadata: MetadataStore,
        store: ExplorationStore,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], int] = epoch_ms_now,
    ):
        self.settings = settings
        self.metadata = metadata
        self.store = store
        self.boundary = GeoBoundary()
        self.tracker = ExplorationTracker(
            self.boundary,
            accuracy_threshold_m=settings.accuracy_threshold_m,
            min_exploration_distance_m=settings.min_exploration_distance_m,
            exploration_radius_m=settings.exploration_radius_m,
            rng=rng,
            clock=clock,
        )
        self.aggregator = StatsAggregator(settings.country_total_area_km2)
        self.merge_engine = SpatialMergeEngine(self.boundary.bounds)
        self._states: dict[str, ProfileState] = {}
        self._lock = threading.Lock()

    def create_profile(self, name: str) -> ProfileSummary:
        profile_id = str(uuid.uuid4())
        row = self.metadata.create_profile(profile_id, name, utc_now_iso())
        with self._lock:
            self._states[profile_id] = ProfileState(profile_id=profile_id)
        logger.info("created profile %s", profile_id)
        return self._summary(row, self._states[profile_id])

    def _state(self, profile_id: str) -> ProfileState:
        with self._lock:
            state = self._states.get(profile_id)
        if state is not None:
            return state
        # Cold load runs unlocked; concurrent loaders race and the first insert wins.
        if self.metadata.get_profile(profile_id) is None:
            raise ProfileNotFoundError(profile_id)
        areas = self.store.load_areas(profile_id)
        stats = self.aggregator.aggregate(areas)
        cached = self.store.load_stats(profile_id)
        if cached is not None and cached != stats:
            logger.info("stored stats for profile %s were stale, recomputed from areas", profile_id)
        loaded = ProfileState(profile_id=profile_id, areas=areas, stats=stats)
        with self._lock:
            return self._states.setdefault(profile_id, loaded)

    def _summary(self, row: dict, state: ProfileState) -> ProfileSummary:
        with state.lock:
            stats = state.stats.model_copy()
        return ProfileSummary(
            profileId=row["profileId"],
            name=row["name"],
            createdAt=row["createdAt"],
            updatedAt=row["updatedAt"],
            stats=stats,
            level=self.aggregator.level_progress(stats.totalExperiencePoints),
            distanceLabel=format_distance(stats.totalDistanceTraveled),
        )

    def get_profile_summary(self, profile_id: str) -> ProfileSummary:
        state = self._state(profile_id)
        row = self.metadata.get_profile(profile_id)
        if row is None:
            raise ProfileNotFoundError(profile_id)
        return self._summary(row, state)

    def _persist(self, state: ProfileState) -> None:
        try:
            self.store.save_areas(state.profile_id, state.areas)
            self.store.save_stats(state.profile_id, state.stats)
        except OSError:
            logger.exception("failed to persist exploration data for profile %s", state.profile_id)

    def process_fix(self, profile_id: str, fix: LocationFix) -> FixResult:
        state = self._state(profile_id)
        with state.lock:
            area = self.tracker.evaluate(fix, state.areas)
            if area is not None:
                state.areas.append(area)
                state.stats = self.aggregator.aggregate(state.areas)
                self._persist(state)
            stats = state.stats.model_copy()

        if area is not None:
            self.metadata.touch_profile(profile_id, utc_now_iso())
            logger.info(
                "profile %s discovered %s in %s (+%d xp)",
                profile_id,
                area.id,
                area.regionInfo.name if area.regionInfo else "unknown",
                area.experiencePoints,
            )
        return FixResult(accepted=area is not None, area=area, stats=stats)

    def discover(self, profile_id: str, fix: LocationFix) -> AreaRecord | None:
        return self.process_fix(profile_id, fix).area

    def get_areas(self, profile_id: str) -> list[AreaRecord]:
        state = self._state(profile_id)
        with state.lock:
            return list(state.areas)

    def inventory(self, profile_id: str) -> list[InventoryEntry]:
        areas = sorted(self.get_areas(profile_id), key=lambda area: area.timestamp, reverse=True)
        return [InventoryEntry(area=area, rarity=rarity_tier(area.experiencePoints)) for area in areas]

    def get_stats(self, profile_id: str) -> StatsSnapshot:
        state = self._state(profile_id)
        with state.lock:
            return state.stats.model_copy()

    def level_progress(self, profile_id: str) -> LevelProgress:
        return self.aggregator.level_progress(self.get_stats(profile_id).totalExperiencePoints)

    def render_fog(self, profile_id: str, viewport: ViewportDescriptor) -> FogRenderData:
        state = self._state(profile_id)
        sequence = state.render_slot.next_sequence()
        render = self.merge_engine.render_data(self.get_areas(profile_id), viewport)
        if not state.render_slot.publish(sequence, render):
            logger.debug("fog render %d for profile %s superseded by a newer request", sequence, profile_id)
        return render

    def latest_fog(self, profile_id: str) -> FogRenderData | None:
        return self._state(profile_id).render_slot.latest

    def export_fog_mask(self, profile_id: str, request: FogMaskRequest) -> ExportArtifact:
        render = self.render_fog(profile_id, request.viewport)
        width = max(1, int(round(request.viewport.screenWidth)))
        height = max(1, int(round(request.viewport.screenHeight)))
        layer = rasterize_fog(render, width, height, fog_opacity=request.fogOpacity)

        artifact_id = str(uuid.uuid4())
        path = self.store.export_path(profile_id, f"fog_mask_{artifact_id}.png")
        write_fog_png(path, layer)
        artifact = ExportArtifact(
            artifactId=artifact_id,
            width=width,
            height=height,
            path=str(path),
            checksum=sha256_bytes(path.read_bytes()),
        )
        self.metadata.add_export(
            export_id=artifact_id,
            profile_id=profile_id,
            artifact=artifact.model_dump(mode="json"),
            created_at=utc_now_iso(),
        )
        return artifact

    def region_completion(self, profile_id: str, region: str) -> RegionCompletion:
        return self.aggregator.region_completion(self.get_areas(profile_id), region)

    def suggestions(self, profile_id: str, latitude: float, longitude: float, limit: int = 5) -> list[ExplorationSuggestion]:
        location = Coordinates(latitude=latitude, longitude=longitude)
        return self.tracker.suggest_explorations(location, self.get_areas(profile_id), limit=limit)

    def export_bundle(self, profile_id: str) -> ExportBundle:
        state = self._state(profile_id)
        with state.lock:
            return ExportBundle(exploredAreas=list(state.areas), stats=state.stats.model_copy())

    def reset(self, profile_id: str) -> StatsSnapshot:
        state = self._state(profile_id)
        with state.lock:
            state.areas = []
            state.stats = StatsSnapshot()
            try:
                self.store.clear(profile_id)
            except OSError:
                logger.exception("failed to clear stored exploration data for profile %s", profile_id)
        self.metadata.touch_profile(profile_id, utc_now_iso())
        logger.info("reset exploration data for profile %s", profile_id)
        return StatsSnapshot()

    def validate(self, profile_id: str) -> ValidationReport:
        issues = validate_areas(
            self.get_areas(profile_id),
            self.boundary,
            min_exploration_distance_m=self.settings.min_exploration_distance_m,
        )
        if issues:
            logger.info("validation for profile %s: %s", profile_id, summarize_issue_severity(issues))
        return ValidationReport(profileId=profile_id, issues=issues)
