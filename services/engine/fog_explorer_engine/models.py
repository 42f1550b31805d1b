from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_serializer, model_validator

from .utils import utc_now_iso

UNKNOWN_REGION = "unknown"


class Coordinates(BaseModel):
    latitude: float
    longitude: float


class RegionInfo(BaseModel):
    name: str = UNKNOWN_REGION
    coordinates: str = ""


class LocationFix(BaseModel):
    latitude: float
    longitude: float
    accuracy: float
    timestamp: int | None = None
    speed: float | None = None
    heading: float | None = None


class AreaRecord(BaseModel):
    id: str
    center: Coordinates
    radius: float = Field(default=500.0, gt=0.0)
    timestamp: int
    accuracy: float = 0.0
    experiencePoints: int = 0
    regionInfo: RegionInfo | None = None


class StatsSnapshot(BaseModel):
    totalAreasExplored: int = 0
    explorationPercentage: float = Field(default=0.0, ge=0.0, le=100.0)
    totalDistanceTraveled: int = 0
    totalExperiencePoints: int = 0
    averageAccuracy: float = 0.0
    regionsCovered: set[str] = Field(default_factory=set)
    totalExploredAreaKm2: float = 0.0

    @field_serializer("regionsCovered")
    def _serialize_regions(self, value: set[str]) -> list[str]:
        # Unordered set; sorted only so the cached JSON is byte-stable.
        return sorted(value)


class LevelProgress(BaseModel):
    level: int = Field(ge=1, le=10)
    title: str
    experience: int
    experienceToNextLevel: int = Field(ge=0)


class RarityTier(str, Enum):
    common = "common"
    rare = "rare"
    epic = "epic"
    legendary = "legendary"


class InventoryEntry(BaseModel):
    area: AreaRecord
    rarity: RarityTier


class RegionCompletion(BaseModel):
    region: str
    areasExplored: int
    completionPercentage: float
    lastExplored: int | None = None


class ExplorationSuggestion(BaseModel):
    name: str
    lat: float
    lng: float
    region: str
    distance: int
    difficulty: Literal["easy", "medium", "hard"]


class RegionDescriptor(BaseModel):
    name: str
    lat: float
    lng: float
    zoom: int
    emoji: str
    description: str
    specialties: list[str] = Field(default_factory=list)
    color: str


class ViewportDescriptor(BaseModel):
    centerLat: float
    centerLng: float
    latitudeDelta: float
    longitudeDelta: float
    screenWidth: float
    screenHeight: float


class ScreenPoint(BaseModel):
    x: float
    y: float


class ScreenRect(BaseModel):
    x: float
    y: float
    width: float
    height: float


class RenderCircle(BaseModel):
    areaId: str
    cx: float
    cy: float
    r: float


class GradientStop(BaseModel):
    offset: str
    stopColor: str = "white"
    stopOpacity: float = Field(ge=0.0, le=1.0)


class RadialGradient(BaseModel):
    id: str
    cx: str = "50%"
    cy: str = "50%"
    r: str = "50%"
    stops: list[GradientStop] = Field(default_factory=list)


class RenderMetrics(BaseModel):
    originalCount: int
    visibleCount: int
    optimizedCount: int
    reductionPercentage: float
    renderingComplexity: Literal["Low", "Medium", "High"]


class FogRenderData(BaseModel):
    circles: list[RenderCircle] = Field(default_factory=list)
    gradients: list[RadialGradient] = Field(default_factory=list)
    metrics: RenderMetrics
    fullFog: bool = True
    territoryBounds: ScreenRect | None = None


class ProfileCreateRequest(BaseModel):
    name: str = Field(default="Explorer", min_length=1)


class ProfileSummary(BaseModel):
    profileId: str
    name: str
    createdAt: str
    updatedAt: str
    stats: StatsSnapshot = Field(default_factory=StatsSnapshot)
    level: LevelProgress | None = None
    distanceLabel: str = "0m"


class FixResult(BaseModel):
    accepted: bool
    area: AreaRecord | None = None
    stats: StatsSnapshot


class SessionStatus(str, Enum):
    active = "active"
    paused = "paused"
    stopped = "stopped"


class SessionSummary(BaseModel):
    sessionId: str
    profileId: str
    status: SessionStatus
    fixesReceived: int = 0
    areasDiscovered: int = 0
    errorCode: str | None = None
    lastError: str | None = None
    startedAt: str
    updatedAt: str
    stoppedAt: str | None = None


class SessionErrorRequest(BaseModel):
    code: int | str = "unknown"
    message: str | None = None


class ExportBundle(BaseModel):
    exploredAreas: list[AreaRecord] = Field(default_factory=list)
    stats: StatsSnapshot = Field(default_factory=StatsSnapshot)
    exportDate: str = Field(default_factory=utc_now_iso)
    version: str = "1.0.0"


class FogMaskRequest(BaseModel):
    viewport: ViewportDescriptor
    fogOpacity: float = Field(default=0.85, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_raster_size(self) -> "FogMaskRequest":
        if self.viewport.screenWidth > 4096 or self.viewport.screenHeight > 4096:
            raise ValueError("fog mask raster is limited to 4096 pixels per side")
        return self


class ExportArtifact(BaseModel):
    artifactId: str
    type: Literal["fog_mask"] = "fog_mask"
    format: Literal["png"] = "png"
    width: int
    height: int
    path: str
    checksum: str


class ValidationIssue(BaseModel):
    code: str
    severity: Literal["error", "warning"]
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ValidationReport(BaseModel):
    profileId: str
    checkedAt: str = Field(default_factory=utc_now_iso)
    issues: list[ValidationIssue] = Field(default_factory=list)
