from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable, Protocol

from .errors import InvalidInputError, LocationSourceError, SessionNotFoundError
from .metadata_store import MetadataStore
from .models import AreaRecord, LocationFix, SessionStatus, SessionSummary
from .utils import utc_now_iso

logger = logging.getLogger(__name__)

FixCallback = Callable[[LocationFix], None]
ErrorCallback = Callable[[LocationSourceError], None]
FixHandler = Callable[[str, LocationFix], AreaRecord | None]


class Subscription(Protocol):
    def close(self) -> None: ...


class LocationSource(Protocol):
    def subscribe(self, on_fix: FixCallback, on_error: ErrorCallback) -> Subscription: ...


class _CallbackSubscription:
    def __init__(self, on_close: Callable[[], None] | None = None):
        self._on_close = on_close
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        if self._on_close is not None:
            self._on_close()


class PushLocationSource:
    """Source fed from outside, e.g. fixes posted to the HTTP API."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[int, tuple[FixCallback, ErrorCallback]] = {}
        self._next_key = 0

    def subscribe(self, on_fix: FixCallback, on_error: ErrorCallback) -> Subscription:
        with self._lock:
            key = self._next_key
            self._next_key += 1
            self._subscribers[key] = (on_fix, on_error)

        def _detach() -> None:
            with self._lock:
                self._subscribers.pop(key, None)

        return _CallbackSubscription(_detach)

    def _snapshot(self) -> list[tuple[FixCallback, ErrorCallback]]:
        with self._lock:
            return list(self._subscribers.values())

    def push(self, fix: LocationFix) -> None:
        for on_fix, _ in self._snapshot():
            on_fix(fix)

    def fail(self, error: LocationSourceError) -> None:
        for _, on_error in self._snapshot():
            on_error(error)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


class ReplayLocationSource:
    """Replays a recorded sequence of fixes and errors on subscribe."""

    def __init__(self, events: Iterable[LocationFix | LocationSourceError]):
        self._events = list(events)

    def subscribe(self, on_fix: FixCallback, on_error: ErrorCallback) -> Subscription:
        subscription = _CallbackSubscription()
        for event in self._events:
            if subscription.closed:
                break
            if isinstance(event, LocationSourceError):
                on_error(event)
            else:
                on_fix(event)
        return subscription


@dataclass
class TrackingSession:
    summary: SessionSummary
    source: LocationSource
    executor: ThreadPoolExecutor
    subscription: Subscription | None = None
    version: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock)

    @property
    def session_id(self) -> str:
        return self.summary.sessionId


class SessionManager:
    """Owns tracking sessions.

    Each session drains its fixes through its own single-worker executor, so
    fixes for a session are handled one at a time in arrival order.
    """

    def __init__(self, metadata_store: MetadataStore):
        self._metadata_store = metadata_store
        self._sessions: dict[str, TrackingSession] = {}
        self._lock = threading.Lock()

    def start(self, profile_id: str, source: LocationSource, on_fix: FixHandler) -> TrackingSession:
        session_id = str(uuid.uuid4())
        now = utc_now_iso()
        summary = SessionSummary(
            sessionId=session_id,
            profileId=profile_id,
            status=SessionStatus.active,
            startedAt=now,
            updatedAt=now,
        )
        session = TrackingSession(
            summary=summary,
            source=source,
            executor=ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"fog-session-{session_id[:8]}"),
        )
        with self._lock:
            self._sessions[session_id] = session
        self._metadata_store.save_session(summary)
        logger.info("tracking session %s started for profile %s", session_id, profile_id)

        session.subscription = source.subscribe(
            lambda fix: self._enqueue(session, fix, on_fix),
            lambda error: self.report_error(session_id, error),
        )
        return session

    def _enqueue(self, session: TrackingSession, fix: LocationFix, on_fix: FixHandler) -> Future | None:
        with session.lock:
            if session.summary.status != SessionStatus.active:
                logger.debug("session %s is %s, dropping fix", session.session_id, session.summary.status.value)
                return None
        try:
            return session.executor.submit(self._process, session, fix, on_fix)
        except RuntimeError:
            # Executor already shut down by a concurrent stop.
            return None

    def _process(self, session: TrackingSession, fix: LocationFix, on_fix: FixHandler) -> None:
        area: AreaRecord | None = None
        error: str | None = None
        try:
            area = on_fix(session.summary.profileId, fix)
        except InvalidInputError as exc:
            logger.warning("session %s received an invalid fix: %s", session.session_id, exc)
            error = str(exc)
        except Exception as exc:
            logger.exception("session %s failed to process a fix", session.session_id)
            error = str(exc)

        with session.lock:
            session.summary.fixesReceived += 1
            if area is not None:
                session.summary.areasDiscovered += 1
            if error is not None:
                session.summary.lastError = error
            session.summary.updatedAt = utc_now_iso()
            session.version += 1
            snapshot = session.summary.model_copy()
        self._metadata_store.save_session(snapshot)

    def _require(self, session_id: str) -> TrackingSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def get(self, session_id: str) -> SessionSummary:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is not None:
            with session.lock:
                return session.summary.model_copy()
        stored = self._metadata_store.get_session(session_id)
        if stored is None:
            raise SessionNotFoundError(session_id)
        return stored

    def push_fix(self, session_id: str, fix: LocationFix) -> None:
        session = self._require(session_id)
        if not isinstance(session.source, PushLocationSource):
            raise InvalidInputError(f"session {session_id} does not accept pushed fixes")
        session.source.push(fix)

    def push_error(self, session_id: str, error: LocationSourceError) -> SessionSummary:
        session = self._require(session_id)
        if isinstance(session.source, PushLocationSource):
            session.source.fail(error)
        else:
            self.report_error(session_id, error)
        return self.get(session_id)

    def report_error(self, session_id: str, error: LocationSourceError) -> SessionSummary:
        session = self._require(session_id)
        with session.lock:
            if session.summary.status == SessionStatus.active:
                session.summary.status = SessionStatus.paused
            session.summary.errorCode = error.code
            session.summary.lastError = error.message
            session.summary.updatedAt = utc_now_iso()
            session.version += 1
            snapshot = session.summary.model_copy()
        self._metadata_store.save_session(snapshot)
        logger.info("tracking session %s paused: %s", session_id, error.code)
        return snapshot

    def resume(self, session_id: str) -> SessionSummary:
        session = self._require(session_id)
        with session.lock:
            if session.summary.status == SessionStatus.stopped:
                raise InvalidInputError(f"session {session_id} is stopped")
            session.summary.status = SessionStatus.active
            session.summary.errorCode = None
            session.summary.lastError = None
            session.summary.updatedAt = utc_now_iso()
            session.version += 1
            snapshot = session.summary.model_copy()
        self._metadata_store.save_session(snapshot)
        logger.info("tracking session %s resumed", session_id)
        return snapshot

    def stop(self, session_id: str) -> SessionSummary:
        session = self._require(session_id)
        with session.lock:
            if session.summary.status == SessionStatus.stopped:
                return session.summary.model_copy()
            session.summary.status = SessionStatus.stopped
        if session.subscription is not None:
            session.subscription.close()
        # Fixes already queued still complete before the session is closed out.
        session.executor.shutdown(wait=True)
        with session.lock:
            now = utc_now_iso()
            session.summary.stoppedAt = now
            session.summary.updatedAt = now
            session.version += 1
            snapshot = session.summary.model_copy()
        self._metadata_store.save_session(snapshot)
        logger.info(
            "tracking session %s stopped after %d fixes, %d new areas",
            session_id,
            snapshot.fixesReceived,
            snapshot.areasDiscovered,
        )
        return snapshot

    def flush(self, session_id: str, timeout: float = 5.0) -> None:
        """Block until every fix queued so far has been handled."""
        session = self._require(session_id)
        try:
            marker = session.executor.submit(lambda: None)
        except RuntimeError:
            return
        marker.result(timeout=timeout)

    def session_version(self, session_id: str) -> int:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            return 0
        with session.lock:
            return session.version

    def stop_all(self) -> None:
        with self._lock:
            session_ids = list(self._sessions)
        for session_id in session_ids:
            self.stop(session_id)
