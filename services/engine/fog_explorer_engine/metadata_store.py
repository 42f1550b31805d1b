from __future__ import annotations

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any

from .models import SessionStatus, SessionSummary
from .utils import ensure_dir


class MetadataStore:
    def __init__(self, db_path: Path):
        ensure_dir(db_path.parent)
        self._db_path = db_path
        self._lock = threading.Lock()
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS profiles (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS sessions (
                    id TEXT PRIMARY KEY,
                    profile_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    fixes_received INTEGER NOT NULL,
                    areas_discovered INTEGER NOT NULL,
                    error_code TEXT,
                    last_error TEXT,
                    started_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    stopped_at TEXT
                );

                CREATE TABLE IF NOT EXISTS exports (
                    id TEXT PRIMARY KEY,
                    profile_id TEXT NOT NULL,
                    artifact_json TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
                """
            )

    def create_profile(self, profile_id: str, name: str, created_at: str) -> dict[str, Any]:
        with self._lock, self._connect() as conn:
            conn.execute(
                "INSERT INTO profiles(id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (profile_id, name, created_at, created_at),
            )
        return {"profileId": profile_id, "name": name, "createdAt": created_at, "updatedAt": created_at}

    def get_profile(self, profile_id: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM profiles WHERE id = ?", (profile_id,)).fetchone()
        if row is None:
            return None
        return {
            "profileId": row["id"],
            "name": row["name"],
            "createdAt": row["created_at"],
            "updatedAt": row["updated_at"],
        }

    def touch_profile(self, profile_id: str, updated_at: str) -> None:
        with self._lock, self._connect() as conn:
            conn.execute("UPDATE profiles SET updated_at = ? WHERE id = ?", (updated_at, profile_id))

    def save_session(self, session: SessionSummary) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO sessions(
                    id, profile_id, status, fixes_received, areas_discovered,
                    error_code, last_error, started_at, updated_at, stopped_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.sessionId,
                    session.profileId,
                    session.status.value,
                    session.fixesReceived,
                    session.areasDiscovered,
                    session.errorCode,
                    session.lastError,
                    session.startedAt,
                    session.updatedAt,
                    session.stoppedAt,
                ),
            )

    def get_session(self, session_id: str) -> SessionSummary | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
        if row is None:
            return None
        return self._session_from_row(row)

    def list_sessions(self, profile_id: str) -> list[SessionSummary]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM sessions WHERE profile_id = ? ORDER BY started_at ASC", (profile_id,)
            ).fetchall()
        return [self._session_from_row(row) for row in rows]

    def _session_from_row(self, row: sqlite3.Row) -> SessionSummary:
        return SessionSummary(
            sessionId=row["id"],
            profileId=row["profile_id"],
            status=SessionStatus(row["status"]),
            fixesReceived=row["fixes_received"],
            areasDiscovered=row["areas_discovered"],
            errorCode=row["error_code"],
            lastError=row["last_error"],
            startedAt=row["started_at"],
            updatedAt=row["updated_at"],
            stoppedAt=row["stopped_at"],
        )

    def add_export(self, *, export_id: str, profile_id: str, artifact: dict[str, Any], created_at: str) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                "INSERT INTO exports(id, profile_id, artifact_json, created_at) VALUES (?, ?, ?, ?)",
                (export_id, profile_id, json.dumps(artifact), created_at),
            )

    def list_exports(self, profile_id: str) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM exports WHERE profile_id = ? ORDER BY created_at ASC", (profile_id,)
            ).fetchall()
        return [json.loads(row["artifact_json"]) for row in rows]
