"""Resident directory interface and response normalization."""

from datetime import UTC, datetime
from typing import Protocol

from seren_capture.domain.residents import ResidentInfo


class DirectoryClient(Protocol):
    """Interface for resolving visitor OTPs to residents."""

    def validate_config(self) -> bool:
        """Return true when required configuration is present."""

    async def test_connection(self) -> bool:
        """Return true when the directory is reachable."""

    async def search_by_otp(self, otp: str) -> ResidentInfo:
        """Resolve an OTP to resident details."""


def format_resident_info(data: dict[str, object]) -> ResidentInfo:
    """Normalize a directory payload that may use either field naming."""
    return ResidentInfo(
        id=str(_first(data, "resident_id", "id")),
        name=str(_first(data, "resident_name", "name") or ""),
        unit_number=_optional_str(_first(data, "unit_number", "unit")),
        phone=_optional_str(_first(data, "phone", "contact_number")),
        email=_optional_str(data.get("email")),
        visitor_type=str(data.get("visitor_type") or "pedestrian"),
        status=str(data.get("status") or "active"),
        valid_until=_optional_str(_first(data, "valid_until", "expires_at")),
        created_at=str(
            data.get("created_at") or datetime.now(tz=UTC).isoformat()
        ),
    )


def _first(data: dict[str, object], *keys: str) -> object | None:
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return None


def _optional_str(value: object | None) -> str | None:
    return None if value is None else str(value)
