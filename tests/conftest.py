"""Shared test fixtures."""

import base64
import io
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest
from PIL import Image

from seren_capture.config import Settings
from seren_capture.containers import AppContainer
from seren_capture.domain.errors import UpstreamError
from seren_capture.domain.images import ImageMetadata
from seren_capture.domain.residents import ResidentInfo
from seren_capture.services.captures import CaptureService
from seren_capture.services.directory import DirectoryClient
from seren_capture.services.encryption import ImageCipher
from seren_capture.services.image_storage import ImageRepository, ImageStorageService

TEST_KEY = bytes(range(32))


def make_image_bytes(
    width: int = 64, height: int = 48, fmt: str = "JPEG", mode: str = "RGB"
) -> bytes:
    """Render a small solid-colour image in memory."""
    color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
    image = Image.new(mode, (width, height), color)
    output = io.BytesIO()
    image.save(output, format=fmt)
    return output.getvalue()


def make_resident(resident_id: str = "res_001") -> ResidentInfo:
    return ResidentInfo(
        id=resident_id,
        name="John Doe",
        unit_number="A101",
        phone="+27123456789",
        email="john.doe@example.com",
    )


@dataclass
class FakeClock:
    """Controllable UTC clock."""

    now: datetime = field(default_factory=lambda: datetime(2024, 5, 1, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class FakeDirectoryClient(DirectoryClient):
    """Directory client resolving OTPs from a dict."""

    residents: dict[str, ResidentInfo] = field(
        default_factory=lambda: {"123456": make_resident()}
    )
    config_valid: bool = True
    connected: bool = True
    lookups: list[str] = field(default_factory=list)

    def validate_config(self) -> bool:
        return self.config_valid

    async def test_connection(self) -> bool:
        return self.connected

    async def search_by_otp(self, otp: str) -> ResidentInfo:
        self.lookups.append(otp)
        resident = self.residents.get(otp)
        if resident is None:
            raise UpstreamError("OTP not found or expired")
        return resident


@dataclass
class InMemoryImageRepository(ImageRepository):
    """In-memory image repository for tests."""

    blobs: dict[str, bytes] = field(default_factory=dict)
    metadata: dict[str, ImageMetadata] = field(default_factory=dict)
    fail_metadata_writes: bool = False
    available: bool = True

    def write_image(self, capture_type: str, filename: str, data: bytes) -> str:
        path = f"{capture_type}/{filename}"
        self.blobs[path] = data
        return path

    def read_image(self, storage_path: str) -> bytes:
        if storage_path not in self.blobs:
            raise FileNotFoundError(storage_path)
        return self.blobs[storage_path]

    def delete_image(self, storage_path: str) -> None:
        self.blobs.pop(storage_path, None)

    def write_metadata(self, metadata: ImageMetadata) -> None:
        if self.fail_metadata_writes:
            raise OSError("disk full")
        self.metadata[metadata.id] = metadata

    def read_metadata(self, image_id: str) -> ImageMetadata | None:
        return self.metadata.get(image_id)

    def list_metadata(self) -> list[ImageMetadata]:
        return list(self.metadata.values())

    def delete_metadata(self, image_id: str) -> None:
        self.metadata.pop(image_id, None)

    def is_available(self) -> bool:
        return self.available


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        image_storage_dir=str(tmp_path / "images"),
        image_encryption_key=base64.b64encode(TEST_KEY).decode(),
        directory_api_key="directory-key",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def directory_client() -> FakeDirectoryClient:
    return FakeDirectoryClient()


@pytest.fixture
def image_repository() -> InMemoryImageRepository:
    return InMemoryImageRepository()


@pytest.fixture
def image_storage(image_repository: InMemoryImageRepository) -> ImageStorageService:
    return ImageStorageService(
        repository=image_repository, cipher=ImageCipher(TEST_KEY)
    )


@pytest.fixture
def capture_service(
    directory_client: FakeDirectoryClient,
    image_storage: ImageStorageService,
    clock: FakeClock,
) -> CaptureService:
    return CaptureService(
        directory_client=directory_client,
        image_storage=image_storage,
        clock=clock,
    )


@pytest.fixture
def container(
    settings: Settings,
    image_storage: ImageStorageService,
    capture_service: CaptureService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        image_storage=image_storage,
        capture_service=capture_service,
        close_resources=close_resources,
    )
