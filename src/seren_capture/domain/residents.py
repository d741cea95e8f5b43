"""Resident directory domain models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ResidentInfo:
    """Resident identity resolved from an OTP."""

    id: str
    name: str
    unit_number: str | None
    phone: str | None = None
    email: str | None = None
    visitor_type: str = "pedestrian"
    status: str = "active"
    valid_until: str | None = None
    created_at: str | None = None
