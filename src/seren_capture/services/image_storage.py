"""Encrypted, compressed image storage."""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol
from uuid import uuid4

from seren_capture.domain.errors import (
    IntegrityError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from seren_capture.domain.images import (
    ImageMetadata,
    ResidentSnapshot,
    RetrievedImage,
    StorageStats,
    StoredImage,
)
from seren_capture.domain.residents import ResidentInfo
from seren_capture.domain.sessions import PERSON, VEHICLE
from seren_capture.services.encryption import ImageCipher
from seren_capture.services.image_processing import ImageProcessor

DEFAULT_MAX_IMAGE_SIZE = 5 * 1024 * 1024

_logger = logging.getLogger(__name__)


class ImageRepository(Protocol):
    """Persistence interface for encrypted image blobs and their metadata."""

    def write_image(self, capture_type: str, filename: str, data: bytes) -> str:
        """Persist encrypted bytes and return their storage path."""

    def read_image(self, storage_path: str) -> bytes:
        """Return encrypted bytes stored at a path."""

    def delete_image(self, storage_path: str) -> None:
        """Remove encrypted bytes, ignoring a missing file."""

    def write_metadata(self, metadata: ImageMetadata) -> None:
        """Persist a metadata record addressed by its id."""

    def read_metadata(self, image_id: str) -> ImageMetadata | None:
        """Return a metadata record, if present."""

    def list_metadata(self) -> list[ImageMetadata]:
        """Return every metadata record."""

    def delete_metadata(self, image_id: str) -> None:
        """Remove a metadata record."""

    def is_available(self) -> bool:
        """Return whether blobs and metadata can currently be written."""


@dataclass
class ImageStorageService:
    """Compress, encrypt and persist capture images."""

    repository: ImageRepository
    cipher: ImageCipher
    processor: ImageProcessor = field(default_factory=ImageProcessor)
    max_image_size: int = DEFAULT_MAX_IMAGE_SIZE

    def store_image(  # noqa: PLR0913
        self,
        image_bytes: bytes,
        *,
        resident_info: ResidentInfo,
        capture_type: str,
        timestamp: str,
        session_id: str | None = None,
    ) -> StoredImage:
        """Run the processing pipeline and persist image then metadata."""
        if not image_bytes:
            raise ValidationError("Image buffer is empty")
        if len(image_bytes) > self.max_image_size:
            raise ValidationError(
                "Image size exceeds maximum allowed size of "
                f"{self.max_image_size} bytes"
            )

        processed = self.processor.process(image_bytes)
        encrypted = self.cipher.encrypt(processed)
        checksum = hashlib.sha256(encrypted).hexdigest()

        image_id = str(uuid4())
        filename = f"{image_id}_{_sanitize_timestamp(timestamp)}.jpg"
        sub_dir = VEHICLE if capture_type == VEHICLE else PERSON
        try:
            storage_path = self.repository.write_image(sub_dir, filename, encrypted)
        except OSError as exc:
            _logger.exception("Failed to write image %s", filename)
            raise StorageError("Failed to store image") from exc

        metadata = ImageMetadata(
            id=image_id,
            filename=filename,
            storage_path=storage_path,
            capture_type=capture_type,
            timestamp=timestamp,
            resident_info=ResidentSnapshot(
                id=resident_info.id,
                name=resident_info.name,
                unit_number=resident_info.unit_number,
            ),
            file_size=len(encrypted),
            original_size=len(image_bytes),
            compression_ratio=(1 - len(encrypted) / len(image_bytes)) * 100,
            checksum=checksum,
            session_id=session_id,
        )
        try:
            self.repository.write_metadata(metadata)
        except OSError as exc:
            self._discard_orphan(storage_path)
            raise StorageError("Failed to save image metadata") from exc

        _logger.info("Image stored: %s (%s)", filename, capture_type)
        return StoredImage(
            success=True, image_id=image_id, filename=filename, metadata=metadata
        )

    def retrieve_image(self, image_id: str) -> RetrievedImage:
        """Load, verify and decrypt an image by id."""
        metadata = self._require_metadata(image_id)
        try:
            encrypted = self.repository.read_image(metadata.storage_path)
        except FileNotFoundError as exc:
            raise NotFoundError(f"Image data missing: {image_id}") from exc
        except OSError as exc:
            raise StorageError("Failed to read image") from exc
        if hashlib.sha256(encrypted).hexdigest() != metadata.checksum:
            raise IntegrityError("Image checksum mismatch")
        return RetrievedImage(image=self.cipher.decrypt(encrypted), metadata=metadata)

    def get_images_by_resident(self, resident_id: str) -> list[ImageMetadata]:
        """Return a resident's images, newest first."""
        images = [
            metadata
            for metadata in self._list_metadata()
            if metadata.resident_info.id == resident_id
        ]
        return sorted(
            images, key=lambda item: _parse_timestamp(item.timestamp), reverse=True
        )

    def get_storage_stats(self) -> StorageStats:
        """Aggregate counts, sizes and timestamp bounds over all images."""
        records = self._list_metadata()
        oldest: ImageMetadata | None = None
        newest: ImageMetadata | None = None
        for record in records:
            stamp = _parse_timestamp(record.timestamp)
            if oldest is None or stamp < _parse_timestamp(oldest.timestamp):
                oldest = record
            if newest is None or stamp > _parse_timestamp(newest.timestamp):
                newest = record
        return StorageStats(
            total_images=len(records),
            total_size=sum(record.file_size for record in records),
            person_images=sum(1 for r in records if r.capture_type == PERSON),
            vehicle_images=sum(1 for r in records if r.capture_type == VEHICLE),
            oldest_image=oldest.timestamp if oldest else None,
            newest_image=newest.timestamp if newest else None,
        )

    def delete_image(self, image_id: str) -> None:
        """Remove an image and its metadata."""
        metadata = self._require_metadata(image_id)
        try:
            self.repository.delete_image(metadata.storage_path)
            self.repository.delete_metadata(image_id)
        except OSError as exc:
            raise StorageError("Failed to delete image") from exc
        _logger.info("Image deleted: %s", image_id)

    def is_available(self) -> bool:
        """Report whether the backing store accepts writes."""
        try:
            return self.repository.is_available()
        except OSError:
            _logger.exception("Storage availability check failed")
            return False

    def _require_metadata(self, image_id: str) -> ImageMetadata:
        try:
            metadata = self.repository.read_metadata(image_id)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise StorageError("Failed to read image metadata") from exc
        if metadata is None:
            raise NotFoundError(f"Image not found: {image_id}")
        return metadata

    def _list_metadata(self) -> list[ImageMetadata]:
        try:
            return self.repository.list_metadata()
        except OSError as exc:
            raise StorageError("Failed to list image metadata") from exc

    def _discard_orphan(self, storage_path: str) -> None:
        try:
            self.repository.delete_image(storage_path)
        except OSError:
            _logger.exception("Failed to remove orphaned image %s", storage_path)


def _sanitize_timestamp(timestamp: str) -> str:
    """Make an ISO-8601 timestamp safe for filenames."""
    return timestamp.replace(":", "-").replace(".", "-")


def _parse_timestamp(timestamp: str) -> datetime:
    return datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
