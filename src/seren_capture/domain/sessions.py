"""Domain models for capture sessions."""

from dataclasses import dataclass, field
from datetime import datetime

from seren_capture.domain.residents import ResidentInfo

PERSON = "person"
VEHICLE = "vehicle"
CAPTURE_TYPES = (PERSON, VEHICLE)

PEDESTRIAN_MODE = "pedestrian"
VEHICLE_MODE = "vehicle"

# Ordered capture types each mode requires. Also the set it permits.
MODE_CAPTURES: dict[str, tuple[str, ...]] = {
    PEDESTRIAN_MODE: (PERSON,),
    VEHICLE_MODE: (PERSON, VEHICLE),
}

STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"


@dataclass(frozen=True)
class CaptureDescriptor:
    """Reference to a stored capture image."""

    image_id: str
    filename: str
    file_size: int
    timestamp: str


@dataclass
class CaptureSession:
    """Mutable in-memory state of a capture session."""

    id: str
    otp: str
    resident_info: ResidentInfo
    created_at: datetime
    mode: str | None = None
    status: str = STATUS_ACTIVE
    captures: dict[str, CaptureDescriptor | None] = field(
        default_factory=lambda: dict.fromkeys(CAPTURE_TYPES)
    )
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    def required_captures(self) -> tuple[str, ...]:
        """Return capture types the selected mode requires, in order."""
        return MODE_CAPTURES.get(self.mode or "", ())

    def missing_captures(self) -> list[str]:
        """Return required capture types without a stored image."""
        return [
            capture_type
            for capture_type in self.required_captures()
            if self.captures.get(capture_type) is None
        ]

    def is_complete(self) -> bool:
        """Return true once every capture the mode requires is stored."""
        return bool(self.required_captures()) and not self.missing_captures()


@dataclass(frozen=True)
class SessionStart:
    """Result of opening a session from an OTP."""

    session_id: str
    resident_info: ResidentInfo
    status: str = "ready_for_mode_selection"


@dataclass(frozen=True)
class ModeSelection:
    """Result of choosing a capture mode."""

    session_id: str
    mode: str
    available_captures: list[str]
    status: str = "ready_for_capture"


@dataclass(frozen=True)
class CaptureResult:
    """Result of storing one capture image."""

    success: bool
    capture_type: str
    image_id: str
    session_complete: bool
    next_action: str


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a live session."""

    session_id: str
    status: str
    mode: str | None
    resident_info: ResidentInfo
    captures: dict[str, CaptureDescriptor | None]
    created_at: str
    updated_at: str | None


@dataclass(frozen=True)
class SessionSummary:
    """Summary returned when a completed session is closed."""

    session_id: str
    resident_info: ResidentInfo
    mode: str | None
    captures: dict[str, CaptureDescriptor | None]
    created_at: str
    completed_at: str | None
    total_captures: int
