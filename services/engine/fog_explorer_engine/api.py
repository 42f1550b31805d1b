from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Literal

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from .errors import InvalidInputError, LocationSourceError, ProfileNotFoundError, SessionNotFoundError
from .exploration_service import ExplorationService
from .exploration_store import ExplorationStore
from .metadata_store import MetadataStore
from .models import (
    AreaRecord,
    ExplorationSuggestion,
    ExportArtifact,
    ExportBundle,
    FixResult,
    FogMaskRequest,
    FogRenderData,
    InventoryEntry,
    LevelProgress,
    LocationFix,
    ProfileCreateRequest,
    ProfileSummary,
    RegionCompletion,
    RegionDescriptor,
    SessionErrorRequest,
    SessionStatus,
    SessionSummary,
    StatsSnapshot,
    ValidationReport,
    ViewportDescriptor,
)
from .session_manager import PushLocationSource, SessionManager
from .settings import Settings, load_settings
from .utils import configure_logging


def create_app(settings: Settings | None = None, service: ExplorationService | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    if service is None:
        metadata = MetadataStore(settings.data_root / "metadata.sqlite3")
        store = ExplorationStore(settings.data_root)
        service = ExplorationService(settings, metadata, store)
    exploration = service
    sessions = SessionManager(exploration.metadata)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        sessions.stop_all()

    app = FastAPI(title="Fog Explorer Engine", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.metadata = exploration.metadata
    app.state.store = exploration.store
    app.state.exploration = exploration
    app.state.sessions = sessions

    def require_profile(profile_id: str) -> None:
        if exploration.metadata.get_profile(profile_id) is None:
            raise HTTPException(status_code=404, detail="profile not found")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/v1/profiles", response_model=ProfileSummary)
    def create_profile(request: ProfileCreateRequest) -> ProfileSummary:
        return exploration.create_profile(request.name)

    @app.get("/v1/profiles/{profile_id}", response_model=ProfileSummary)
    def get_profile(profile_id: str) -> ProfileSummary:
        try:
            return exploration.get_profile_summary(profile_id)
        except ProfileNotFoundError:
            raise HTTPException(status_code=404, detail="profile not found")

    @app.post("/v1/profiles/{profile_id}/fixes", response_model=FixResult)
    def submit_fix(profile_id: str, fix: LocationFix) -> FixResult:
        require_profile(profile_id)
        try:
            return exploration.process_fix(profile_id, fix)
        except InvalidInputError as exc:
            raise HTTPException(status_code=422, detail=str(exc))

    @app.get("/v1/profiles/{profile_id}/areas", response_model=list[AreaRecord] | list[InventoryEntry])
    def list_areas(
        profile_id: str, order: Literal["inserted", "newest"] = "inserted"
    ) -> list[AreaRecord] | list[InventoryEntry]:
        require_profile(profile_id)
        if order == "newest":
            return exploration.inventory(profile_id)
        return exploration.get_areas(profile_id)

    @app.delete("/v1/profiles/{profile_id}/areas", response_model=StatsSnapshot)
    def reset_areas(profile_id: str) -> StatsSnapshot:
        require_profile(profile_id)
        return exploration.reset(profile_id)

    @app.get("/v1/profiles/{profile_id}/stats", response_model=StatsSnapshot)
    def get_stats(profile_id: str) -> StatsSnapshot:
        require_profile(profile_id)
        return exploration.get_stats(profile_id)

    @app.get("/v1/profiles/{profile_id}/level", response_model=LevelProgress)
    def get_level(profile_id: str) -> LevelProgress:
        require_profile(profile_id)
        return exploration.level_progress(profile_id)

    @app.post("/v1/profiles/{profile_id}/fog", response_model=FogRenderData)
    def render_fog(profile_id: str, viewport: ViewportDescriptor) -> FogRenderData:
        require_profile(profile_id)
        try:
            return exploration.render_fog(profile_id, viewport)
        except InvalidInputError as exc:
            raise HTTPException(status_code=422, detail=str(exc))

    @app.post("/v1/profiles/{profile_id}/fog/mask", response_model=ExportArtifact)
    def export_fog_mask(profile_id: str, request: FogMaskRequest) -> ExportArtifact:
        require_profile(profile_id)
        try:
            return exploration.export_fog_mask(profile_id, request)
        except InvalidInputError as exc:
            raise HTTPException(status_code=422, detail=str(exc))

    @app.get("/v1/profiles/{profile_id}/regions/{region}/completion", response_model=RegionCompletion)
    def region_completion(profile_id: str, region: str) -> RegionCompletion:
        require_profile(profile_id)
        return exploration.region_completion(profile_id, region)

    @app.get("/v1/profiles/{profile_id}/suggestions", response_model=list[ExplorationSuggestion])
    def suggestions(profile_id: str, latitude: float, longitude: float) -> list[ExplorationSuggestion]:
        require_profile(profile_id)
        try:
            return exploration.suggestions(profile_id, latitude, longitude)
        except InvalidInputError as exc:
            raise HTTPException(status_code=422, detail=str(exc))

    @app.get("/v1/profiles/{profile_id}/export", response_model=ExportBundle)
    def export_bundle(profile_id: str) -> ExportBundle:
        require_profile(profile_id)
        return exploration.export_bundle(profile_id)

    @app.get("/v1/profiles/{profile_id}/validation", response_model=ValidationReport)
    def validate_profile(profile_id: str) -> ValidationReport:
        require_profile(profile_id)
        return exploration.validate(profile_id)

    @app.post("/v1/profiles/{profile_id}/sessions", response_model=SessionSummary)
    def start_session(profile_id: str) -> SessionSummary:
        require_profile(profile_id)
        session = sessions.start(profile_id, PushLocationSource(), exploration.discover)
        return sessions.get(session.session_id)

    @app.get("/v1/profiles/{profile_id}/sessions", response_model=list[SessionSummary])
    def list_sessions(profile_id: str) -> list[SessionSummary]:
        require_profile(profile_id)
        return exploration.metadata.list_sessions(profile_id)

    @app.get("/v1/profiles/{profile_id}/exports", response_model=list[ExportArtifact])
    def list_exports(profile_id: str) -> list[ExportArtifact]:
        require_profile(profile_id)
        return [ExportArtifact.model_validate(item) for item in exploration.metadata.list_exports(profile_id)]

    @app.get("/v1/sessions/{session_id}", response_model=SessionSummary)
    def get_session(session_id: str) -> SessionSummary:
        try:
            return sessions.get(session_id)
        except SessionNotFoundError:
            raise HTTPException(status_code=404, detail="session not found")

    @app.post("/v1/sessions/{session_id}/fixes", response_model=SessionSummary)
    def push_session_fix(session_id: str, fix: LocationFix) -> SessionSummary:
        try:
            sessions.push_fix(session_id, fix)
            sessions.flush(session_id)
            return sessions.get(session_id)
        except SessionNotFoundError:
            raise HTTPException(status_code=404, detail="session not found")
        except InvalidInputError as exc:
            raise HTTPException(status_code=422, detail=str(exc))

    @app.post("/v1/sessions/{session_id}/errors", response_model=SessionSummary)
    def report_session_error(session_id: str, request: SessionErrorRequest) -> SessionSummary:
        try:
            return sessions.push_error(session_id, LocationSourceError(request.code, request.message))
        except SessionNotFoundError:
            raise HTTPException(status_code=404, detail="session not found")

    @app.post("/v1/sessions/{session_id}/resume", response_model=SessionSummary)
    def resume_session(session_id: str) -> SessionSummary:
        try:
            return sessions.resume(session_id)
        except SessionNotFoundError:
            raise HTTPException(status_code=404, detail="session not found")
        except InvalidInputError as exc:
            raise HTTPException(status_code=409, detail=str(exc))

    @app.post("/v1/sessions/{session_id}/stop", response_model=SessionSummary)
    def stop_session(session_id: str) -> SessionSummary:
        try:
            return sessions.stop(session_id)
        except SessionNotFoundError:
            raise HTTPException(status_code=404, detail="session not found")

    @app.get("/v1/sessions/{session_id}/events")
    async def stream_session(session_id: str) -> StreamingResponse:
        try:
            sessions.get(session_id)
        except SessionNotFoundError:
            raise HTTPException(status_code=404, detail="session not found")

        async def event_gen() -> AsyncGenerator[str, None]:
            last_version = -1
            while True:
                try:
                    current = sessions.get(session_id)
                except SessionNotFoundError:
                    yield "event: error\ndata: {\"message\":\"session not found\"}\n\n"
                    return
                version = sessions.session_version(session_id)
                if version != last_version:
                    last_version = version
                    payload = current.model_dump(mode="json")
                    yield f"event: update\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"
                if current.status == SessionStatus.stopped:
                    return
                await asyncio.sleep(0.4)

        return StreamingResponse(event_gen(), media_type="text/event-stream")

    @app.get("/v1/regions", response_model=list[RegionDescriptor])
    def list_regions() -> list[RegionDescriptor]:
        return exploration.boundary.region_descriptors()

    @app.get("/v1/territory")
    def territory() -> dict:
        return exploration.boundary.territory_geojson()

    return app
