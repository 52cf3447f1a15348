from __future__ import annotations

import pytest

from src.trail_media.config import ProcessingSettings
from src.trail_media.exceptions import NotFoundError
from src.trail_media.ingest.ingest_errors import (
    EntryNotFoundError,
    InvalidOrderError,
    UnreadableImageError,
    UnsupportedMediaError,
)
from src.trail_media.ingest.ingest_service import MediaIngestService
from src.trail_media.ingest.validation import UploadValidator
from src.trail_media.media.media_models import MediaKind, MediaStatus
from src.trail_media.media.media_storage import UploadStore
from src.trail_media.media.pipeline import PipelineRunner, VideoPipeline
from src.trail_media.repositories.media_asset_repository import MediaAssetRepository
from tests.helpers.images import PITTSBURGH_GPS, jpeg_bytes
from tests.helpers.uploads import build_limits, make_upload
from tests.mocks.toolchain import FakeToolchain

pytestmark = pytest.mark.unit


def build_service(
    repository: MediaAssetRepository,
    store: UploadStore,
    toolchain: FakeToolchain | None = None,
) -> MediaIngestService:
    pipeline = VideoPipeline(
        toolchain=toolchain or FakeToolchain(),
        store=store,
        repository=repository,
        settings=ProcessingSettings(),
    )
    return MediaIngestService(
        repository=repository,
        store=store,
        validator=UploadValidator(build_limits()),
        pipeline=pipeline,
        runner=PipelineRunner(),
    )


@pytest.mark.asyncio
async def test_receive_video_returns_pending_asset_then_processes(
    repository: MediaAssetRepository, store: UploadStore, entry_id: str
) -> None:
    service = build_service(repository, store, FakeToolchain(duration=31.0))
    upload = make_upload(b"raw-mov", content_type="video/quicktime", filename="Ridge.MOV")

    asset = await service.receive_video(entry_id, upload, caption="Ridge", order="2")

    assert asset.kind is MediaKind.VIDEO
    assert asset.status is MediaStatus.PENDING
    assert asset.duration == 0
    assert asset.url == f"/public/uploads/{asset.id}.mp4"
    assert asset.thumbnail_url == f"/public/uploads/{asset.id}_thumb.jpg"
    assert asset.display_order == 2

    await service.runner.drain(timeout=5)

    processed = await service.get_asset(asset.id)
    assert processed.status is MediaStatus.PROCESSED
    assert processed.duration == 31
    assert processed.url == asset.url
    assert not (store.directory / f"{asset.id}_original.mov").exists()


@pytest.mark.asyncio
async def test_receive_video_too_long_is_removed_after_processing(
    repository: MediaAssetRepository, store: UploadStore, entry_id: str
) -> None:
    service = build_service(repository, store, FakeToolchain(duration=200.0))

    asset = await service.receive_video(
        entry_id, make_upload(b"raw", content_type="video/mp4", filename="long.mp4")
    )
    await service.runner.drain(timeout=5)

    with pytest.raises(NotFoundError):
        await service.get_asset(asset.id)
    assert store.list_files() == []


@pytest.mark.asyncio
async def test_receive_video_requires_entry(repository: MediaAssetRepository, store: UploadStore) -> None:
    service = build_service(repository, store)

    with pytest.raises(EntryNotFoundError):
        await service.receive_video("missing", make_upload(b"raw", content_type="video/mp4", filename="a.mp4"))
    assert store.list_files() == []


@pytest.mark.asyncio
async def test_receive_video_rejects_bad_order(
    repository: MediaAssetRepository, store: UploadStore, entry_id: str
) -> None:
    service = build_service(repository, store)

    with pytest.raises(InvalidOrderError):
        await service.receive_video(entry_id, make_upload(b"raw", content_type="video/mp4", filename="a.mp4"), order="-4")


@pytest.mark.asyncio
async def test_receive_photo_extracts_exif_inline(
    repository: MediaAssetRepository, store: UploadStore, entry_id: str
) -> None:
    service = build_service(repository, store)
    data = jpeg_bytes(gps=PITTSBURGH_GPS)

    asset = await service.receive_photo(entry_id, make_upload(data, content_type="image/jpeg", filename="view.JPG"))

    assert asset.kind is MediaKind.PHOTO
    assert asset.status is MediaStatus.PROCESSED
    assert asset.latitude == pytest.approx(40.4461, abs=1e-4)
    assert asset.longitude == pytest.approx(-79.9392, abs=1e-4)
    assert asset.url == f"/public/uploads/{asset.id}.jpg"
    assert (store.directory / f"{asset.id}.jpg").read_bytes() == data


@pytest.mark.asyncio
async def test_receive_photo_without_gps_has_no_location(
    repository: MediaAssetRepository, store: UploadStore, entry_id: str
) -> None:
    service = build_service(repository, store)

    asset = await service.receive_photo(entry_id, make_upload(jpeg_bytes(), content_type="image/jpeg", filename="a.jpg"))

    assert asset.latitude is None
    assert asset.longitude is None


@pytest.mark.asyncio
async def test_receive_photo_malformed_leaves_nothing_behind(
    repository: MediaAssetRepository, store: UploadStore, entry_id: str
) -> None:
    service = build_service(repository, store)

    with pytest.raises(UnreadableImageError):
        await service.receive_photo(
            entry_id, make_upload(b"not really a jpeg", content_type="image/jpeg", filename="broken.jpg")
        )

    assert store.list_files() == []
    assert repository.list_for_entry(entry_id) == []


@pytest.mark.asyncio
async def test_receive_photo_heic_is_stored_without_metadata(
    repository: MediaAssetRepository, store: UploadStore, entry_id: str
) -> None:
    service = build_service(repository, store)

    asset = await service.receive_photo(
        entry_id, make_upload(b"\x00\x00\x00\x18ftypheic", content_type="image/heic", filename="IMG_0001.HEIC")
    )

    assert asset.url.endswith(".heic")
    assert asset.latitude is None


@pytest.mark.asyncio
async def test_receive_photo_rejects_video_type(
    repository: MediaAssetRepository, store: UploadStore, entry_id: str
) -> None:
    service = build_service(repository, store)

    with pytest.raises(UnsupportedMediaError):
        await service.receive_photo(entry_id, make_upload(b"x", content_type="video/mp4", filename="a.mp4"))


@pytest.mark.asyncio
async def test_delete_asset_removes_row_and_files(
    repository: MediaAssetRepository, store: UploadStore, entry_id: str
) -> None:
    service = build_service(repository, store)
    asset = await service.receive_video(entry_id, make_upload(b"raw", content_type="video/mp4", filename="a.mp4"))
    await service.runner.drain(timeout=5)
    assert store.list_files()

    await service.delete_asset(entry_id, asset.id)

    assert store.list_files() == []
    with pytest.raises(NotFoundError):
        await service.get_asset(asset.id)


@pytest.mark.asyncio
async def test_delete_asset_of_other_entry_is_not_found(
    repository: MediaAssetRepository, store: UploadStore, entry_id: str
) -> None:
    service = build_service(repository, store)
    asset = await service.receive_photo(entry_id, make_upload(jpeg_bytes(), content_type="image/jpeg", filename="a.jpg"))
    other_entry = repository.create_entry(title="Other trip")

    with pytest.raises(NotFoundError):
        await service.delete_asset(other_entry, asset.id)
    assert (await service.get_asset(asset.id)).id == asset.id
