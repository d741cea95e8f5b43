"""Tests for capture HTTP endpoints."""

from fastapi.testclient import TestClient

from seren_capture.adapters.demo_directory_client import DemoDirectoryClient
from seren_capture.api.app import create_app
from tests.conftest import FakeDirectoryClient, make_image_bytes

BASE = "/api/capture"
JPEG = {"content-type": "image/jpeg"}


def _start_session(client: TestClient, mode: str) -> str:
    response = client.post(f"{BASE}/session/start", json={"otp": "123456"})
    assert response.status_code == 200
    session_id = response.json()["data"]["session_id"]
    response = client.post(f"{BASE}/session/{session_id}/mode", json={"mode": mode})
    assert response.status_code == 200
    return session_id


def test_health(container) -> None:
    client = TestClient(create_app(container))

    assert client.get("/health").json()["status"] == "healthy"
    capture_health = client.get(f"{BASE}/health").json()
    assert capture_health["active_sessions"] == 0
    assert capture_health["demo_mode"] is False


def test_full_vehicle_session_flow(container) -> None:
    client = TestClient(create_app(container))

    started = client.post(f"{BASE}/session/start", json={"otp": "123456"}).json()
    assert started["success"] is True
    assert started["data"]["status"] == "ready_for_mode_selection"
    assert started["data"]["resident_info"]["name"] == "John Doe"
    session_id = started["data"]["session_id"]

    mode = client.post(f"{BASE}/session/{session_id}/mode", json={"mode": "vehicle"})
    assert mode.json()["data"]["available_captures"] == ["person", "vehicle"]

    person = client.post(
        f"{BASE}/session/{session_id}/capture/person",
        content=make_image_bytes(),
        headers=JPEG,
    ).json()["data"]
    assert person["next_action"] == "capture_vehicle"

    vehicle = client.post(
        f"{BASE}/session/{session_id}/capture/vehicle",
        content=make_image_bytes(fmt="PNG"),
        headers={"content-type": "image/png"},
    ).json()["data"]
    assert vehicle["session_complete"] is True
    assert vehicle["next_action"] == "complete_session"

    status = client.get(f"{BASE}/session/{session_id}/status").json()["data"]
    assert status["status"] == "completed"
    assert status["captures"]["vehicle"]["image_id"] == vehicle["image_id"]

    summary = client.post(f"{BASE}/session/{session_id}/complete").json()["data"]
    assert summary["total_captures"] == 2

    assert client.get(f"{BASE}/session/{session_id}/status").status_code == 404
    assert client.post(f"{BASE}/session/{session_id}/complete").status_code == 404


def test_start_session_requires_otp(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(f"{BASE}/session/start", json={})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "OTP is required"}


def test_start_session_surfaces_directory_errors(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(f"{BASE}/session/start", json={"otp": "999999"})

    assert response.status_code == 400
    assert response.json()["error"] == "OTP not found or expired"


def test_set_mode_errors(container) -> None:
    client = TestClient(create_app(container))
    session_id = client.post(f"{BASE}/session/start", json={"otp": "123456"}).json()[
        "data"
    ]["session_id"]

    missing = client.post(f"{BASE}/session/{session_id}/mode", json={})
    invalid = client.post(f"{BASE}/session/{session_id}/mode", json={"mode": "boat"})
    unknown = client.post(f"{BASE}/session/nope/mode", json={"mode": "vehicle"})

    assert missing.status_code == 400
    assert missing.json()["error"] == "Mode is required"
    assert invalid.status_code == 400
    assert "Invalid capture mode" in invalid.json()["error"]
    assert unknown.status_code == 404
    assert "Session not found" in unknown.json()["error"]


def test_vehicle_capture_rejected_in_pedestrian_mode(container) -> None:
    client = TestClient(create_app(container))
    session_id = _start_session(client, "pedestrian")

    response = client.post(
        f"{BASE}/session/{session_id}/capture/vehicle",
        content=make_image_bytes(),
        headers=JPEG,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Vehicle capture not allowed in pedestrian mode"


def test_capture_upload_validation(container) -> None:
    container.settings.max_upload_size = 1024
    client = TestClient(create_app(container))
    session_id = _start_session(client, "pedestrian")
    url = f"{BASE}/session/{session_id}/capture/person"

    empty = client.post(url, content=b"", headers=JPEG)
    wrong_type = client.post(
        url, content=b"hello", headers={"content-type": "text/plain"}
    )
    too_large = client.post(url, content=b"x" * 2048, headers=JPEG)

    assert empty.json()["error"] == "Image file is required"
    assert wrong_type.json()["error"] == "Only image files are allowed"
    assert too_large.status_code == 400
    assert too_large.json()["error"].startswith("File size too large")


def test_premature_completion_rejected(container) -> None:
    client = TestClient(create_app(container))
    session_id = _start_session(client, "vehicle")

    response = client.post(f"{BASE}/session/{session_id}/complete")

    assert response.status_code == 400
    assert response.json()["error"] == "Session is not ready for completion"


def test_image_download_and_listing(container) -> None:
    client = TestClient(create_app(container))
    session_id = _start_session(client, "pedestrian")
    image_id = client.post(
        f"{BASE}/session/{session_id}/capture/person",
        content=make_image_bytes(),
        headers=JPEG,
    ).json()["data"]["image_id"]

    image = client.get(f"{BASE}/image/{image_id}")
    assert image.status_code == 200
    assert image.headers["content-type"] == "image/jpeg"
    assert image.headers["x-image-id"] == image_id
    assert image.headers["x-resident-id"] == "res_001"
    assert image.headers["x-capture-type"] == "person"
    assert image.content.startswith(b"\xff\xd8")

    listing = client.get(f"{BASE}/resident/res_001/images").json()["data"]
    assert [entry["id"] for entry in listing["images"]] == [image_id]

    stats = client.get(f"{BASE}/storage/stats").json()["data"]
    assert stats["total_images"] == 1
    assert stats["person_images"] == 1

    assert client.delete(f"{BASE}/image/{image_id}").json()["data"]["deleted"]
    assert client.get(f"{BASE}/image/{image_id}").status_code == 404


def test_cleanup_endpoint(container, clock) -> None:
    client = TestClient(create_app(container))
    _start_session(client, "pedestrian")
    clock.advance(hours=1)

    response = client.post(f"{BASE}/cleanup")

    assert response.json()["data"]["cleaned_sessions"] == 1
    assert container.capture_service.get_active_sessions_count() == 0


def test_lifespan_switches_to_demo_directory(
    container, directory_client: FakeDirectoryClient
) -> None:
    directory_client.connected = False
    container.capture_service.fallback_client = DemoDirectoryClient()

    with TestClient(create_app(container)) as client:
        status = client.get(f"{BASE}/health").json()
        started = client.post(f"{BASE}/session/start", json={"otp": "456789"})

    assert status["demo_mode"] is True
    assert len(status["demo_otps"]) == 3
    assert started.json()["data"]["resident_info"]["name"] == "Michael Johnson"
