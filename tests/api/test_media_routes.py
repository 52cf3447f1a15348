from __future__ import annotations

import time
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from src.trail_media.config import AppConfig, MediaPaths, ProcessingSettings
from src.trail_media.main import create_app
from src.trail_media.repositories.media_asset_repository import MediaAssetRepository
from tests.helpers.images import PITTSBURGH_GPS, jpeg_bytes
from tests.helpers.uploads import build_limits
from tests.mocks.toolchain import TRANSCODED_BYTES, FakeToolchain

pytestmark = pytest.mark.integration


@pytest.fixture
def toolchain() -> FakeToolchain:
    return FakeToolchain(
        duration=42.2,
        format_tags={"com.apple.quicktime.location.ISO6709": "+40.4461-079.9392/"},
    )


@pytest.fixture
def client(
    session_factory: sessionmaker[Session],
    media_paths: MediaPaths,
    toolchain: FakeToolchain,
) -> Iterator[TestClient]:
    engine = session_factory.kw["bind"]
    config = AppConfig(
        media_paths=media_paths,
        ingest_limits=build_limits(photo_max_bytes=64 * 1024),
        processing=ProcessingSettings(),
        database_url=str(engine.url),
        engine=engine,
        session_factory=session_factory,
        orphan_sweep_interval_seconds=0,
    )
    app = create_app(config, toolchain=toolchain)
    with TestClient(app) as test_client:
        yield test_client


def _wait_for_status(client: TestClient, asset_id: str, expected: str) -> dict | None:
    deadline = time.monotonic() + 5
    while time.monotonic() < deadline:
        response = client.get(f"/api/media/{asset_id}")
        if response.status_code == status.HTTP_404_NOT_FOUND:
            return None
        body = response.json()
        if body["status"] == expected:
            return body
        time.sleep(0.02)
    raise AssertionError(f"asset {asset_id} never reached {expected}")


def test_video_upload_returns_pending_then_processes(
    client: TestClient, entry_id: str, media_paths: MediaPaths
) -> None:
    response = client.post(
        f"/api/entries/{entry_id}/videos/upload",
        files={"file": ("summit.mov", b"raw-quicktime", "video/quicktime")},
        data={"caption": "Summit push", "order": "1"},
    )

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["status"] == "pending"
    assert body["duration"] == 0
    assert body["url"] == f"/public/uploads/{body['id']}.mp4"

    processed = _wait_for_status(client, body["id"], "processed")
    assert processed["duration"] == 42
    assert processed["latitude"] == pytest.approx(40.4461)
    assert processed["longitude"] == pytest.approx(-79.9392)

    served = client.get(processed["url"])
    assert served.status_code == status.HTTP_200_OK
    assert served.content == TRANSCODED_BYTES


def test_long_video_disappears(client: TestClient, entry_id: str, toolchain: FakeToolchain, media_paths: MediaPaths) -> None:
    toolchain.duration = 200.0

    response = client.post(
        f"/api/entries/{entry_id}/videos/upload",
        files={"file": ("long.mp4", b"raw-mp4", "video/mp4")},
    )

    assert response.status_code == status.HTTP_201_CREATED
    assert _wait_for_status(client, response.json()["id"], "processed") is None
    assert list(media_paths.uploads.iterdir()) == []


def test_photo_upload_is_processed_with_gps(client: TestClient, entry_id: str) -> None:
    response = client.post(
        f"/api/entries/{entry_id}/photos/upload",
        files={"file": ("view.jpg", jpeg_bytes(gps=PITTSBURGH_GPS), "image/jpeg")},
        data={"order": "0"},
    )

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["kind"] == "photo"
    assert body["status"] == "processed"
    assert body["thumbnail_url"] is None
    assert body["latitude"] == pytest.approx(40.4461, abs=1e-4)


@pytest.mark.parametrize(
    ("path", "file", "data", "expected_status", "reason"),
    [
        ("photos", ("broken.jpg", b"garbage", "image/jpeg"), {}, 422, "unreadable_image"),
        ("photos", ("doc.pdf", b"%PDF", "application/pdf"), {}, 415, "unsupported_media_type"),
        ("videos", ("still.jpg", b"jpeg", "image/jpeg"), {}, 415, "unsupported_media_type"),
        ("photos", ("huge.jpg", b"x" * (65 * 1024), "image/jpeg"), {}, 413, "payload_too_large"),
        ("videos", ("clip.mp4", b"raw", "video/mp4"), {"order": "-1"}, 400, "invalid_order"),
    ],
)
def test_upload_errors(
    client: TestClient,
    entry_id: str,
    path: str,
    file: tuple[str, bytes, str],
    data: dict[str, str],
    expected_status: int,
    reason: str,
) -> None:
    response = client.post(f"/api/entries/{entry_id}/{path}/upload", files={"file": file}, data=data)

    assert response.status_code == expected_status
    detail = response.json()["detail"]
    assert detail["status"] == "error"
    assert detail["failure_reason"] == reason


def test_upload_to_missing_entry_is_404(client: TestClient) -> None:
    response = client.post(
        "/api/entries/nope/photos/upload",
        files={"file": ("view.jpg", jpeg_bytes(), "image/jpeg")},
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"]["failure_reason"] == "entry_not_found"


def test_get_unknown_media_is_404(client: TestClient) -> None:
    response = client.get("/api/media/unknown")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"]["failure_reason"] == "media_not_found"


def test_delete_media(
    client: TestClient, entry_id: str, repository: MediaAssetRepository, media_paths: MediaPaths
) -> None:
    created = client.post(
        f"/api/entries/{entry_id}/photos/upload",
        files={"file": ("view.jpg", jpeg_bytes(), "image/jpeg")},
    ).json()
    stored = media_paths.uploads / Path(created["url"]).name
    assert stored.exists()

    response = client.delete(f"/api/entries/{entry_id}/media/{created['id']}")

    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert not stored.exists()
    assert repository.list_for_entry(entry_id) == []
    assert client.delete(f"/api/entries/{entry_id}/media/{created['id']}").status_code == 404
