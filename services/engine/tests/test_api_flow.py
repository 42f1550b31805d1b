from __future__ import annotations

import json
import math
import random

from fastapi.testclient import TestClient

from fog_explorer_engine.api import create_app
from fog_explorer_engine.exploration_service import ExplorationService
from fog_explorer_engine.exploration_store import ExplorationStore
from fog_explorer_engine.metadata_store import MetadataStore
from fog_explorer_engine.modules.geodesy import EARTH_RADIUS_M
from fog_explorer_engine.settings import Settings

SEOUL_LAT = 37.5665
SEOUL_LNG = 126.9780
VIEWPORT = {
    "centerLat": SEOUL_LAT,
    "centerLng": SEOUL_LNG,
    "latitudeDelta": 0.05,
    "longitudeDelta": 0.05,
    "screenWidth": 160,
    "screenHeight": 120,
}


def _fix(meters_north: float = 0.0, accuracy: float = 5.0) -> dict:
    return {
        "latitude": SEOUL_LAT + math.degrees(meters_north / EARTH_RADIUS_M),
        "longitude": SEOUL_LNG,
        "accuracy": accuracy,
    }


def _client(tmp_path) -> TestClient:
    settings = Settings(data_root=tmp_path)
    service = ExplorationService(
        settings,
        MetadataStore(tmp_path / "metadata.sqlite3"),
        ExplorationStore(tmp_path),
        rng=random.Random(3),
    )
    return TestClient(create_app(settings, service=service))


def test_end_to_end_exploration_flow(tmp_path):
    client = _client(tmp_path)

    assert client.get("/health").json() == {"status": "ok"}

    create = client.post("/v1/profiles", json={"name": "Walker"})
    create.raise_for_status()
    profile_id = create.json()["profileId"]

    first = client.post(f"/v1/profiles/{profile_id}/fixes", json=_fix())
    first.raise_for_status()
    assert first.json()["accepted"] is True
    assert first.json()["area"]["regionInfo"]["name"] == "서울특별시"
    assert first.json()["area"]["radius"] == 500.0

    near = client.post(f"/v1/profiles/{profile_id}/fixes", json=_fix(90.0))
    assert near.json()["accepted"] is False
    assert near.json()["area"] is None

    second = client.post(f"/v1/profiles/{profile_id}/fixes", json=_fix(150.0))
    assert second.json()["accepted"] is True

    stats = client.get(f"/v1/profiles/{profile_id}/stats").json()
    assert stats["totalAreasExplored"] == 2
    assert stats["totalDistanceTraveled"] == 150
    assert stats["regionsCovered"] == ["서울특별시"]
    assert abs(stats["totalExploredAreaKm2"] - 1.5708) < 1e-3

    areas = client.get(f"/v1/profiles/{profile_id}/areas").json()
    assert [area["id"] for area in areas] == [first.json()["area"]["id"], second.json()["area"]["id"]]

    inventory = client.get(f"/v1/profiles/{profile_id}/areas", params={"order": "newest"}).json()
    assert [entry["area"]["id"] for entry in inventory] == [areas[1]["id"], areas[0]["id"]]
    assert all(entry["rarity"] in {"common", "rare", "epic", "legendary"} for entry in inventory)

    level = client.get(f"/v1/profiles/{profile_id}/level").json()
    assert level["level"] == 1
    assert level["experienceToNextLevel"] == 500 - stats["totalExperiencePoints"]

    profile = client.get(f"/v1/profiles/{profile_id}").json()
    assert profile["name"] == "Walker"
    assert profile["distanceLabel"] == "150m"
    assert profile["level"]["title"] == "초보 탐험가"

    fog = client.post(f"/v1/profiles/{profile_id}/fog", json=VIEWPORT)
    fog.raise_for_status()
    fog_payload = fog.json()
    assert fog_payload["metrics"]["originalCount"] == 2
    assert fog_payload["metrics"]["optimizedCount"] == 1
    assert fog_payload["metrics"]["reductionPercentage"] == 50.0
    assert fog_payload["gradients"][0]["id"] == "fog-gradient-0"
    assert fog_payload["fullFog"] is False

    mask = client.post(f"/v1/profiles/{profile_id}/fog/mask", json={"viewport": VIEWPORT})
    mask.raise_for_status()
    assert mask.json()["width"] == 160
    assert mask.json()["format"] == "png"

    exports = client.get(f"/v1/profiles/{profile_id}/exports").json()
    assert [item["artifactId"] for item in exports] == [mask.json()["artifactId"]]

    completion = client.get(f"/v1/profiles/{profile_id}/regions/서울특별시/completion").json()
    assert completion["areasExplored"] == 2
    assert completion["completionPercentage"] == 10.0

    suggestions = client.get(
        f"/v1/profiles/{profile_id}/suggestions",
        params={"latitude": SEOUL_LAT, "longitude": SEOUL_LNG},
    ).json()
    assert suggestions[0]["name"] == "경복궁"

    bundle = client.get(f"/v1/profiles/{profile_id}/export").json()
    assert bundle["version"] == "1.0.0"
    assert len(bundle["exploredAreas"]) == 2

    report = client.get(f"/v1/profiles/{profile_id}/validation").json()
    assert report["profileId"] == profile_id
    assert report["issues"] == []

    reset = client.delete(f"/v1/profiles/{profile_id}/areas")
    assert reset.json()["totalAreasExplored"] == 0
    assert client.get(f"/v1/profiles/{profile_id}/areas").json() == []


def test_session_flow_over_http(tmp_path):
    client = _client(tmp_path)
    profile_id = client.post("/v1/profiles", json={}).json()["profileId"]

    start = client.post(f"/v1/profiles/{profile_id}/sessions")
    start.raise_for_status()
    session_id = start.json()["sessionId"]
    assert start.json()["status"] == "active"

    pushed = client.post(f"/v1/sessions/{session_id}/fixes", json=_fix())
    assert pushed.json()["fixesReceived"] == 1
    assert pushed.json()["areasDiscovered"] == 1

    error = client.post(f"/v1/sessions/{session_id}/errors", json={"code": 3})
    assert error.json()["status"] == "paused"
    assert error.json()["errorCode"] == "timeout"

    resumed = client.post(f"/v1/sessions/{session_id}/resume")
    assert resumed.json()["status"] == "active"

    client.post(f"/v1/sessions/{session_id}/fixes", json=_fix(300.0))
    stopped = client.post(f"/v1/sessions/{session_id}/stop")
    assert stopped.json()["status"] == "stopped"
    assert stopped.json()["areasDiscovered"] == 2

    assert client.post(f"/v1/sessions/{session_id}/resume").status_code == 409

    with client.stream("GET", f"/v1/sessions/{session_id}/events") as response:
        body = "".join(response.iter_text())
    assert body.startswith("event: update")
    payload = json.loads(body.split("data: ", 1)[1].strip())
    assert payload["status"] == "stopped"

    assert len(client.get(f"/v1/profiles/{profile_id}/areas").json()) == 2

    listed = client.get(f"/v1/profiles/{profile_id}/sessions").json()
    assert [item["sessionId"] for item in listed] == [session_id]
    assert listed[0]["status"] == "stopped"
    assert listed[0]["areasDiscovered"] == 2


def test_reference_data_routes(tmp_path):
    client = _client(tmp_path)

    regions = client.get("/v1/regions").json()
    assert len(regions) == 17
    assert regions[0]["name"] == "서울특별시"

    territory = client.get("/v1/territory").json()
    assert territory["type"] == "FeatureCollection"
    assert len(territory["features"]) == 3


def test_error_responses(tmp_path):
    client = _client(tmp_path)

    assert client.get("/v1/profiles/missing").status_code == 404
    assert client.post("/v1/profiles/missing/fixes", json=_fix()).status_code == 404
    assert client.get("/v1/sessions/missing").status_code == 404
    assert client.get("/v1/profiles/missing/sessions").status_code == 404
    assert client.get("/v1/profiles/missing/exports").status_code == 404
    assert client.post("/v1/sessions/missing/stop").status_code == 404

    profile_id = client.post("/v1/profiles", json={"name": "Walker"}).json()["profileId"]
    bad_fix = client.post(f"/v1/profiles/{profile_id}/fixes", json={**_fix(), "latitude": 120.0})
    assert bad_fix.status_code == 422

    bad_viewport = client.post(f"/v1/profiles/{profile_id}/fog", json={**VIEWPORT, "latitudeDelta": 0})
    assert bad_viewport.status_code == 422

    huge_mask = client.post(
        f"/v1/profiles/{profile_id}/fog/mask",
        json={"viewport": {**VIEWPORT, "screenWidth": 10_000}},
    )
    assert huge_mask.status_code == 422

    assert client.post("/v1/profiles", json={"name": ""}).status_code == 422
