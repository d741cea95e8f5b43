"""Application configuration."""

import base64
import binascii
import logging
import os
import secrets

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")
_KEY_BYTES = 32

_logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    directory_api_url: str = "https://api.estatemate.com"
    directory_api_key: str | None = None
    directory_timeout_seconds: float = 10.0
    image_storage_dir: str = "./storage/images"
    image_encryption_key: str | None = None
    image_compression_quality: int = 80
    max_image_size: int = 5 * 1024 * 1024
    max_upload_size: int = 10 * 1024 * 1024
    session_max_age_seconds: int = 1800
    session_cleanup_interval_seconds: int = 0
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def load_encryption_key(raw: str | None) -> bytes:
    """Decode a base64 AES-256 key, generating a throwaway one if unset."""
    if raw is None or not raw.strip():
        _logger.warning(
            "IMAGE_ENCRYPTION_KEY is not set; using a random development key. "
            "Stored images will be unreadable after restart."
        )
        return secrets.token_bytes(_KEY_BYTES)
    try:
        key = base64.b64decode(raw.strip(), validate=True)
    except binascii.Error as exc:
        raise ValueError("IMAGE_ENCRYPTION_KEY must be base64 encoded") from exc
    if len(key) != _KEY_BYTES:
        raise ValueError("IMAGE_ENCRYPTION_KEY must decode to 32 bytes")
    return key
