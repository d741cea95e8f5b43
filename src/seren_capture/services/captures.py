"""Capture session orchestration.

A session moves from OTP lookup to mode selection, then through one
capture per required type, and is removed either by ``complete_session``
once every required capture is stored or by the expiry sweep. Mutations
of a single session are serialized with a per-session lock so that
concurrent captures cannot overwrite each other's descriptors.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from seren_capture.domain.errors import (
    NotFoundError,
    PolicyError,
    StateError,
    ValidationError,
)
from seren_capture.domain.sessions import (
    CAPTURE_TYPES,
    MODE_CAPTURES,
    STATUS_COMPLETED,
    CaptureDescriptor,
    CaptureResult,
    CaptureSession,
    ModeSelection,
    SessionSnapshot,
    SessionStart,
    SessionSummary,
)
from seren_capture.services.directory import DirectoryClient
from seren_capture.services.image_storage import ImageStorageService

DEFAULT_MAX_AGE_MS = 30 * 60 * 1000

_logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CaptureService:
    """Tracks live capture sessions and coordinates image storage."""

    directory_client: DirectoryClient
    image_storage: ImageStorageService
    fallback_client: DirectoryClient | None = None
    clock: Callable[[], datetime] = _utc_now
    demo_mode: bool = False
    _sessions: dict[str, CaptureSession] = field(default_factory=dict, init=False)
    _locks: dict[str, asyncio.Lock] = field(default_factory=dict, init=False)
    _last_cleanup: datetime | None = field(default=None, init=False)

    async def initialize(self) -> None:
        """Switch to the fallback directory if the live one is unusable."""
        reason = None
        try:
            if not self.directory_client.validate_config():
                reason = "directory configuration is invalid"
            elif not await self.directory_client.test_connection():
                reason = "unable to connect to the directory"
        except Exception:
            _logger.exception("Directory probe failed")
            reason = "directory probe failed"

        if reason is None:
            _logger.info("Capture service initialized")
            return
        if self.fallback_client is None:
            _logger.warning("%s; no fallback directory configured", reason)
            return
        _logger.warning("%s; switching to demo directory", reason)
        self.directory_client = self.fallback_client
        self.demo_mode = True

    async def start_capture_session(self, otp: str | None) -> SessionStart:
        """Resolve an OTP and open a new session awaiting mode selection."""
        if not isinstance(otp, str) or not otp.strip():
            raise ValidationError("OTP is required and must be a non-empty string")
        otp = otp.strip()
        resident_info = await self.directory_client.search_by_otp(otp)

        session_id = _new_session_id()
        while session_id in self._sessions:
            session_id = _new_session_id()
        self._sessions[session_id] = CaptureSession(
            id=session_id,
            otp=otp,
            resident_info=resident_info,
            created_at=self.clock(),
        )
        _logger.info("Capture session started: %s", session_id)
        return SessionStart(session_id=session_id, resident_info=resident_info)

    async def set_capture_mode(self, session_id: str, mode: str) -> ModeSelection:
        """Choose pedestrian or vehicle mode for a session."""
        self._require_session(session_id)
        if mode not in MODE_CAPTURES:
            raise ValidationError(
                'Invalid capture mode. Must be "pedestrian" or "vehicle"'
            )
        async with self._lock_for(session_id):
            session = self._require_session(session_id)
            if session.mode is not None and session.mode != mode:
                raise StateError("Capture mode already set")
            session.mode = mode
            session.updated_at = self.clock()
        _logger.info("Capture mode %s set for session %s", mode, session_id)
        return ModeSelection(
            session_id=session_id,
            mode=mode,
            available_captures=list(MODE_CAPTURES[mode]),
        )

    async def process_capture(
        self, session_id: str, capture_type: str, image_bytes: bytes
    ) -> CaptureResult:
        """Store a capture image and record it on the session."""
        self._require_session(session_id)
        if capture_type not in CAPTURE_TYPES:
            raise ValidationError(
                'Invalid capture type. Must be "person" or "vehicle"'
            )
        async with self._lock_for(session_id):
            session = self._require_session(session_id)
            if session.mode is None:
                raise StateError("Capture mode has not been selected")
            if capture_type not in MODE_CAPTURES[session.mode]:
                raise PolicyError(
                    f"{capture_type.capitalize()} capture not allowed "
                    f"in {session.mode} mode"
                )

            timestamp = self.clock().isoformat()
            stored = await asyncio.to_thread(
                self.image_storage.store_image,
                image_bytes,
                resident_info=session.resident_info,
                capture_type=capture_type,
                timestamp=timestamp,
                session_id=session_id,
            )

            session.captures[capture_type] = CaptureDescriptor(
                image_id=stored.image_id,
                filename=stored.filename,
                file_size=stored.metadata.file_size,
                timestamp=timestamp,
            )
            session.updated_at = self.clock()
            complete = session.is_complete()
            if complete and session.status != STATUS_COMPLETED:
                session.status = STATUS_COMPLETED
                session.completed_at = self.clock()

        _logger.info(
            "%s capture stored for session %s: %s",
            capture_type,
            session_id,
            stored.image_id,
        )
        missing = session.missing_captures()
        return CaptureResult(
            success=True,
            capture_type=capture_type,
            image_id=stored.image_id,
            session_complete=complete,
            next_action=f"capture_{missing[0]}" if missing else "complete_session",
        )

    async def complete_session(self, session_id: str) -> SessionSummary:
        """Close a completed session and return its summary."""
        self._require_session(session_id)
        async with self._lock_for(session_id):
            session = self._require_session(session_id)
            if session.status != STATUS_COMPLETED:
                raise StateError("Session is not ready for completion")
            summary = SessionSummary(
                session_id=session_id,
                resident_info=session.resident_info,
                mode=session.mode,
                captures=dict(session.captures),
                created_at=session.created_at.isoformat(),
                completed_at=_isoformat(session.completed_at),
                total_captures=sum(
                    1 for capture in session.captures.values() if capture is not None
                ),
            )
            self._discard(session_id)
        _logger.info("Capture session completed: %s", session_id)
        return summary

    def get_session(self, session_id: str) -> SessionSnapshot:
        """Return a snapshot of a live session."""
        session = self._require_session(session_id)
        return SessionSnapshot(
            session_id=session.id,
            status=session.status,
            mode=session.mode,
            resident_info=session.resident_info,
            captures=dict(session.captures),
            created_at=session.created_at.isoformat(),
            updated_at=_isoformat(session.updated_at),
        )

    def get_active_sessions_count(self) -> int:
        """Return the number of live sessions."""
        return len(self._sessions)

    def cleanup_expired_sessions(self, max_age_ms: int = DEFAULT_MAX_AGE_MS) -> int:
        """Drop sessions older than ``max_age_ms`` regardless of status."""
        now = self.clock()
        max_age = timedelta(milliseconds=max_age_ms)
        expired = [
            session_id
            for session_id, session in list(self._sessions.items())
            if max_age_ms <= 0 or now - session.created_at > max_age
        ]
        for session_id in expired:
            self._discard(session_id)
            _logger.info("Expired capture session removed: %s", session_id)
        self._last_cleanup = now
        return len(expired)

    def get_status(self) -> dict[str, object]:
        """Report directory mode, storage health and live session count."""
        status: dict[str, object] = {
            "initialized": True,
            "active_sessions": len(self._sessions),
            "api_connected": not self.demo_mode,
            "storage_available": self.image_storage.is_available(),
            "last_cleanup": _isoformat(self._last_cleanup),
            "demo_mode": self.demo_mode,
        }
        list_known_codes = getattr(self.directory_client, "list_known_codes", None)
        if self.demo_mode and callable(list_known_codes):
            status["demo_otps"] = list_known_codes()
        return status

    def _require_session(self, session_id: str) -> CaptureSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Session not found: {session_id}")
        return session

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        return self._locks.setdefault(session_id, asyncio.Lock())

    def _discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._locks.pop(session_id, None)


def _new_session_id() -> str:
    return f"session_{uuid4().hex}"


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
