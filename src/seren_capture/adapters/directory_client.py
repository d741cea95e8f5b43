"""HTTP client for the resident directory API."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

import httpx

from seren_capture.domain.errors import UpstreamError, ValidationError
from seren_capture.domain.residents import ResidentInfo
from seren_capture.services.directory import DirectoryClient, format_resident_info

_STATUS_MESSAGES = {
    400: "Invalid OTP format or missing required data",
    401: "Unauthorized access - check API credentials",
    404: "OTP not found or expired",
    429: "Too many requests - please try again later",
    500: "Server error - please try again later",
}
_NETWORK_ERROR = "Network error - unable to connect to resident directory"

_logger = logging.getLogger(__name__)


@dataclass
class HttpxDirectoryClient(DirectoryClient):
    """HTTPX-backed resident directory client."""

    api_key: str | None
    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 10.0

    @classmethod
    def create(
        cls, api_key: str | None, base_url: str, timeout: float = 10.0
    ) -> "HttpxDirectoryClient":
        """Create a directory client with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    def validate_config(self) -> bool:
        """Return false when the API key or base URL is missing."""
        errors = []
        if not self.api_key:
            errors.append("DIRECTORY_API_KEY is required")
        if not self.base_url:
            errors.append("DIRECTORY_API_URL is required")
        if errors:
            _logger.error("Directory configuration errors: %s", ", ".join(errors))
            return False
        return True

    async def test_connection(self) -> bool:
        """Probe the directory health endpoint."""
        try:
            response = await self.http_client.get(
                f"{self.base_url}/health",
                headers=self._headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            _logger.warning("Directory connection test failed: %s", exc)
            return False
        return True

    async def search_by_otp(self, otp: str) -> ResidentInfo:
        """Resolve an OTP via the visitor search endpoint."""
        if not otp or not otp.strip():
            raise ValidationError("OTP is required and must be a non-empty string")
        try:
            response = await self.http_client.post(
                f"{self.base_url}/visitor/otp-search",
                headers=self._headers(),
                json={
                    "otp": otp.strip(),
                    "timestamp": datetime.now(tz=UTC).isoformat(),
                },
                timeout=self.timeout,
            )
        except httpx.TransportError as exc:
            _logger.warning("Directory request failed: %s", exc)
            raise UpstreamError(_NETWORK_ERROR) from exc
        if response.is_error:
            raise UpstreamError(_error_message(response))
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError("Unexpected response from resident directory") from exc
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise UpstreamError("Unexpected response from resident directory")
        return format_resident_info(data)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "X-Request-ID": str(uuid4()),
        }


def _error_message(response: httpx.Response) -> str:
    """Map a directory error status to a readable message."""
    message = _STATUS_MESSAGES.get(response.status_code)
    if message:
        return message
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return f"API error: {response.status_code}"
