"""Capture workflow endpoints."""

from __future__ import annotations

from dataclasses import asdict
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from fastapi.responses import Response

from seren_capture.api.models import CaptureModeRequest, StartSessionRequest
from seren_capture.domain.errors import ValidationError
from seren_capture.domain.sessions import PERSON, VEHICLE

if TYPE_CHECKING:
    from seren_capture.containers import AppContainer

router = APIRouter(prefix="/api/capture", tags=["capture"])


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def _ok(data: object) -> dict[str, object]:
    return {"success": True, "data": data}


@router.get("/health")
async def capture_health(request: Request) -> dict[str, object]:
    """Report capture service status."""
    container = _container(request)
    return {
        "status": "healthy",
        "service": "capture",
        "timestamp": datetime.now(tz=UTC).isoformat(),
        **container.capture_service.get_status(),
    }


@router.post("/session/start")
async def start_session(
    body: StartSessionRequest, request: Request
) -> dict[str, object]:
    """Open a capture session from a visitor OTP."""
    if not body.otp:
        raise ValidationError("OTP is required")
    result = await _container(request).capture_service.start_capture_session(
        body.otp
    )
    return _ok(asdict(result))


@router.post("/session/{session_id}/mode")
async def set_mode(
    session_id: str, body: CaptureModeRequest, request: Request
) -> dict[str, object]:
    """Choose pedestrian or vehicle mode."""
    if not body.mode:
        raise ValidationError("Mode is required")
    result = await _container(request).capture_service.set_capture_mode(
        session_id, body.mode
    )
    return _ok(asdict(result))


@router.post("/session/{session_id}/capture/person")
async def capture_person(session_id: str, request: Request) -> dict[str, object]:
    """Store an identity document image."""
    return await _process_upload(session_id, PERSON, request)


@router.post("/session/{session_id}/capture/vehicle")
async def capture_vehicle(session_id: str, request: Request) -> dict[str, object]:
    """Store a licence disc or plate image."""
    return await _process_upload(session_id, VEHICLE, request)


@router.post("/session/{session_id}/complete")
async def complete_session(session_id: str, request: Request) -> dict[str, object]:
    """Close a session whose required captures are stored."""
    summary = await _container(request).capture_service.complete_session(session_id)
    return _ok(asdict(summary))


@router.get("/session/{session_id}/status")
async def session_status(session_id: str, request: Request) -> dict[str, object]:
    """Return a snapshot of a live session."""
    snapshot = _container(request).capture_service.get_session(session_id)
    return _ok(asdict(snapshot))


@router.get("/image/{image_id}")
async def get_image(image_id: str, request: Request) -> Response:
    """Return decrypted image bytes."""
    retrieved = _container(request).image_storage.retrieve_image(image_id)
    return Response(
        content=retrieved.image,
        media_type="image/jpeg",
        headers={
            "X-Image-ID": image_id,
            "X-Resident-ID": retrieved.metadata.resident_info.id,
            "X-Capture-Type": retrieved.metadata.capture_type,
        },
    )


@router.delete("/image/{image_id}")
async def delete_image(image_id: str, request: Request) -> dict[str, object]:
    """Remove an image and its metadata."""
    _container(request).image_storage.delete_image(image_id)
    return _ok({"image_id": image_id, "deleted": True})


@router.get("/resident/{resident_id}/images")
async def resident_images(resident_id: str, request: Request) -> dict[str, object]:
    """List a resident's images, newest first."""
    images = _container(request).image_storage.get_images_by_resident(resident_id)
    return _ok(
        {
            "resident_id": resident_id,
            "images": [
                {
                    "id": image.id,
                    "capture_type": image.capture_type,
                    "timestamp": image.timestamp,
                    "file_size": image.file_size,
                    "filename": image.filename,
                }
                for image in images
            ],
        }
    )


@router.get("/storage/stats")
async def storage_stats(request: Request) -> dict[str, object]:
    """Return aggregate storage statistics."""
    return _ok(asdict(_container(request).image_storage.get_storage_stats()))


@router.post("/cleanup")
async def cleanup(request: Request) -> dict[str, object]:
    """Remove sessions older than the configured maximum age."""
    container = _container(request)
    removed = container.capture_service.cleanup_expired_sessions(
        container.settings.session_max_age_seconds * 1000
    )
    return _ok(
        {
            "cleaned_sessions": removed,
            "timestamp": datetime.now(tz=UTC).isoformat(),
        }
    )


async def _process_upload(
    session_id: str, capture_type: str, request: Request
) -> dict[str, object]:
    container = _container(request)
    max_upload_size = container.settings.max_upload_size
    content_length = request.headers.get("content-length", "")
    if content_length.isdigit() and int(content_length) > max_upload_size:
        raise ValidationError(_too_large_message(max_upload_size))
    image_bytes = await request.body()
    if not image_bytes:
        raise ValidationError("Image file is required")
    if not request.headers.get("content-type", "").startswith("image/"):
        raise ValidationError("Only image files are allowed")
    if len(image_bytes) > max_upload_size:
        raise ValidationError(_too_large_message(max_upload_size))
    result = await container.capture_service.process_capture(
        session_id, capture_type, image_bytes
    )
    return _ok(asdict(result))


def _too_large_message(limit: int) -> str:
    return f"File size too large. Maximum size is {limit // (1024 * 1024)}MB."
