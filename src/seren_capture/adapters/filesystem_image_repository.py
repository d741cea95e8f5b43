"""Local filesystem image repository."""

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from uuid import UUID

from seren_capture.domain.images import ImageMetadata, ResidentSnapshot
from seren_capture.domain.sessions import CAPTURE_TYPES
from seren_capture.services.image_storage import ImageRepository

_METADATA_DIR = "metadata"

_logger = logging.getLogger(__name__)


@dataclass
class FilesystemImageRepository(ImageRepository):
    """Stores blobs under ``<root>/<capture_type>/`` and JSON metadata beside them."""

    root: Path

    @classmethod
    def create(cls, root: str | Path) -> "FilesystemImageRepository":
        """Create the repository and its directory layout."""
        repository = cls(root=Path(root))
        for sub_dir in (*CAPTURE_TYPES, _METADATA_DIR):
            (repository.root / sub_dir).mkdir(parents=True, exist_ok=True)
        return repository

    def write_image(self, capture_type: str, filename: str, data: bytes) -> str:
        """Atomically write encrypted bytes and return their path."""
        path = self.root / capture_type / filename
        _atomic_write(path, data)
        return str(path)

    def read_image(self, storage_path: str) -> bytes:
        """Read encrypted bytes from a stored path."""
        return Path(storage_path).read_bytes()

    def delete_image(self, storage_path: str) -> None:
        """Remove encrypted bytes if present."""
        Path(storage_path).unlink(missing_ok=True)

    def write_metadata(self, metadata: ImageMetadata) -> None:
        """Atomically write a metadata JSON record."""
        payload = json.dumps(asdict(metadata), indent=2).encode("utf-8")
        _atomic_write(self._metadata_path(metadata.id), payload)

    def read_metadata(self, image_id: str) -> ImageMetadata | None:
        """Return metadata for an id, if present."""
        if not _is_valid_id(image_id):
            return None
        path = self._metadata_path(image_id)
        if not path.exists():
            return None
        return _metadata_from_json(json.loads(path.read_text(encoding="utf-8")))

    def list_metadata(self) -> list[ImageMetadata]:
        """Return every readable metadata record on disk."""
        records = []
        for path in sorted((self.root / _METADATA_DIR).glob("*.json")):
            try:
                row = json.loads(path.read_text(encoding="utf-8"))
                records.append(_metadata_from_json(row))
            except (ValueError, KeyError, TypeError):
                _logger.warning("Skipping unreadable metadata record %s", path.name)
        return records

    def delete_metadata(self, image_id: str) -> None:
        """Remove a metadata record if present."""
        if _is_valid_id(image_id):
            self._metadata_path(image_id).unlink(missing_ok=True)

    def is_available(self) -> bool:
        """Return whether every storage directory exists and is writable."""
        return all(
            (self.root / sub_dir).is_dir() and os.access(self.root / sub_dir, os.W_OK)
            for sub_dir in (*CAPTURE_TYPES, _METADATA_DIR)
        )

    def _metadata_path(self, image_id: str) -> Path:
        return self.root / _METADATA_DIR / f"{image_id}.json"


def _atomic_write(path: Path, data: bytes) -> None:
    """Write to a temporary sibling and rename it into place."""
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


def _is_valid_id(image_id: str) -> bool:
    try:
        return str(UUID(image_id)) == image_id
    except ValueError:
        return False


def _metadata_from_json(row: dict[str, object]) -> ImageMetadata:
    resident = row["resident_info"]
    return ImageMetadata(
        id=row["id"],
        filename=row["filename"],
        storage_path=row["storage_path"],
        capture_type=row["capture_type"],
        timestamp=row["timestamp"],
        resident_info=ResidentSnapshot(
            id=resident["id"],
            name=resident["name"],
            unit_number=resident.get("unit_number"),
        ),
        file_size=int(row["file_size"]),
        original_size=int(row["original_size"]),
        compression_ratio=float(row["compression_ratio"]),
        checksum=row["checksum"],
        session_id=row.get("session_id"),
    )
