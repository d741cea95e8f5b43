"""Domain models for stored capture images."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ResidentSnapshot:
    """Resident identity embedded in image metadata."""

    id: str
    name: str
    unit_number: str | None


@dataclass(frozen=True)
class ImageMetadata:
    """Persisted record describing one stored image."""

    id: str
    filename: str
    storage_path: str
    capture_type: str
    timestamp: str
    resident_info: ResidentSnapshot
    file_size: int
    original_size: int
    compression_ratio: float
    checksum: str
    session_id: str | None = None


@dataclass(frozen=True)
class StoredImage:
    """Result of a successful store."""

    success: bool
    image_id: str
    filename: str
    metadata: ImageMetadata


@dataclass(frozen=True)
class RetrievedImage:
    """Decrypted image bytes with their metadata."""

    image: bytes
    metadata: ImageMetadata


@dataclass(frozen=True)
class StorageStats:
    """Aggregate statistics over stored images."""

    total_images: int
    total_size: int
    person_images: int
    vehicle_images: int
    oldest_image: str | None
    newest_image: str | None
