"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from seren_capture.adapters.demo_directory_client import DemoDirectoryClient
from seren_capture.adapters.directory_client import HttpxDirectoryClient
from seren_capture.adapters.filesystem_image_repository import (
    FilesystemImageRepository,
)
from seren_capture.config import Settings, load_encryption_key
from seren_capture.services.captures import CaptureService
from seren_capture.services.encryption import ImageCipher
from seren_capture.services.image_processing import ImageProcessor
from seren_capture.services.image_storage import ImageStorageService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    image_storage: ImageStorageService
    capture_service: CaptureService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    image_storage = ImageStorageService(
        repository=FilesystemImageRepository.create(
            resolved_settings.image_storage_dir
        ),
        cipher=ImageCipher(load_encryption_key(resolved_settings.image_encryption_key)),
        processor=ImageProcessor(quality=resolved_settings.image_compression_quality),
        max_image_size=resolved_settings.max_image_size,
    )
    directory_client = HttpxDirectoryClient.create(
        api_key=resolved_settings.directory_api_key,
        base_url=resolved_settings.directory_api_url,
        timeout=resolved_settings.directory_timeout_seconds,
    )
    capture_service = CaptureService(
        directory_client=directory_client,
        image_storage=image_storage,
        fallback_client=DemoDirectoryClient(),
    )

    async def close_resources() -> None:
        await directory_client.close()

    return AppContainer(
        settings=resolved_settings,
        image_storage=image_storage,
        capture_service=capture_service,
        close_resources=close_resources,
    )
