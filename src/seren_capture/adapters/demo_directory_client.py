"""Fixed-data resident directory used when the live API is unavailable."""

import logging
from dataclasses import dataclass, field

from seren_capture.domain.errors import UpstreamError, ValidationError
from seren_capture.domain.residents import ResidentInfo
from seren_capture.services.directory import DirectoryClient, format_resident_info

_logger = logging.getLogger(__name__)


def _demo_residents() -> dict[str, dict[str, object]]:
    return {
        "123456": {
            "resident_id": "res_001",
            "resident_name": "John Doe",
            "unit_number": "A101",
            "phone": "+27123456789",
            "email": "john.doe@example.com",
            "visitor_type": "pedestrian",
            "status": "active",
        },
        "789012": {
            "resident_id": "res_002",
            "resident_name": "Jane Smith",
            "unit_number": "B205",
            "phone": "+27987654321",
            "email": "jane.smith@example.com",
            "visitor_type": "vehicle",
            "status": "active",
        },
        "456789": {
            "resident_id": "res_003",
            "resident_name": "Michael Johnson",
            "unit_number": "C312",
            "phone": "+27555123456",
            "email": "michael.j@example.com",
            "visitor_type": "pedestrian",
            "status": "active",
        },
    }


@dataclass
class DemoDirectoryClient(DirectoryClient):
    """Directory stand-in backed by a small fixed resident table."""

    residents: dict[str, dict[str, object]] = field(default_factory=_demo_residents)

    def validate_config(self) -> bool:
        """Demo data needs no configuration."""
        return True

    async def test_connection(self) -> bool:
        """Demo data is always reachable."""
        return True

    async def search_by_otp(self, otp: str) -> ResidentInfo:
        """Look up an OTP in the fixed table."""
        if not otp or not otp.strip():
            raise ValidationError("OTP is required and must be a non-empty string")
        data = self.residents.get(otp.strip())
        if data is None:
            raise UpstreamError("OTP not found or expired")
        _logger.info("Demo directory matched resident %s", data["resident_id"])
        return format_resident_info(data)

    def list_known_codes(self) -> list[dict[str, object]]:
        """Return the OTPs operators can use while in demo mode."""
        return [
            {
                "otp": otp,
                "resident": data["resident_name"],
                "unit": data["unit_number"],
                "type": data["visitor_type"],
            }
            for otp, data in self.residents.items()
        ]
