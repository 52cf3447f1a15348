"""Domain service for receiving journal media uploads."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field

from fastapi import UploadFile

from ..exceptions import NotFoundError, RepositoryError
from ..media.media_errors import MetadataExtractionError
from ..media.media_models import ExtractedMetadata, MediaAsset, MediaKind
from ..media.media_storage import UploadStore, derive_extension
from ..media.metadata import extract_photo_metadata
from ..media.pipeline import PipelineRunner, VideoPipeline
from ..repositories.media_asset_repository import MediaAssetRepository
from .ingest_errors import EntryNotFoundError, UnreadableImageError
from .validation import UploadValidator, parse_display_order

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = {
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/webm": "webm",
    "video/x-m4v": "m4v",
}
PHOTO_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
    "image/heif": "heif",
}
# Pillow cannot decode these without a plugin; they are stored without metadata.
HEIF_CONTENT_TYPES = frozenset({"image/heic", "image/heif"})


@dataclass(slots=True)
class MediaIngestService:
    """Accepts uploads, creates records and hands videos to the pipeline."""

    repository: MediaAssetRepository
    store: UploadStore
    validator: UploadValidator
    pipeline: VideoPipeline
    runner: PipelineRunner
    log: logging.Logger = field(default_factory=lambda: logger)

    async def receive_video(
        self,
        entry_id: str,
        upload: UploadFile,
        *,
        caption: str | None = None,
        order: object = 0,
    ) -> MediaAsset:
        """Store the raw upload, create a pending record and start processing.

        Returns before the pipeline runs; the record's status tells clients
        when processing has finished.
        """
        display_order = parse_display_order(order)
        await self._require_entry(entry_id)
        result = await self.validator.validate(MediaKind.VIDEO, upload)

        asset_id = uuid.uuid4().hex
        extension = derive_extension(result.filename, VIDEO_EXTENSIONS.get(result.content_type, "mp4"))
        paths = self.store.video_paths(asset_id, extension)
        await self.store.persist_upload(upload, paths.raw)

        try:
            asset = await asyncio.to_thread(
                self.repository.create_pending_video,
                asset_id=asset_id,
                journal_entry_id=entry_id,
                url=self.store.url_for(paths.video),
                thumbnail_url=self.store.url_for(paths.thumbnail),
                raw_filename=paths.raw.name,
                caption=caption,
                display_order=display_order,
            )
        except RepositoryError:
            await asyncio.to_thread(self.store.remove, paths.raw)
            raise

        self.runner.spawn(
            self.pipeline.process_video(asset_id, paths.raw, paths.video, paths.thumbnail),
            name=f"video-pipeline-{asset_id}",
        )
        self.log.info(
            "ingest.video.accepted",
            extra={
                "asset_id": asset_id,
                "entry_id": entry_id,
                "size_bytes": result.size_bytes,
                "content_type": result.content_type,
            },
        )
        return asset

    async def receive_photo(
        self,
        entry_id: str,
        upload: UploadFile,
        *,
        caption: str | None = None,
        order: object = 0,
    ) -> MediaAsset:
        """Extract EXIF in-request and create a processed record.

        A malformed image raises :class:`UnreadableImageError` and leaves
        neither a file nor a row behind.
        """
        display_order = parse_display_order(order)
        await self._require_entry(entry_id)
        result = await self.validator.validate(MediaKind.PHOTO, upload)
        data = await upload.read()

        try:
            metadata = await asyncio.to_thread(extract_photo_metadata, data)
        except MetadataExtractionError as exc:
            if result.content_type not in HEIF_CONTENT_TYPES:
                self.log.warning(
                    "ingest.photo.unreadable",
                    extra={"entry_id": entry_id, "content_type": result.content_type, "error": str(exc)},
                )
                raise UnreadableImageError(str(exc)) from exc
            self.log.info(
                "ingest.photo.metadata_skipped",
                extra={"entry_id": entry_id, "content_type": result.content_type},
            )
            metadata = ExtractedMetadata()

        asset_id = uuid.uuid4().hex
        extension = derive_extension(result.filename, PHOTO_EXTENSIONS.get(result.content_type, "jpg"))
        path = self.store.photo_path(asset_id, extension)
        await asyncio.to_thread(self.store.write_bytes, path, data)

        try:
            asset = await asyncio.to_thread(
                self.repository.create_photo,
                asset_id=asset_id,
                journal_entry_id=entry_id,
                url=self.store.url_for(path),
                caption=caption,
                display_order=display_order,
                metadata=metadata,
            )
        except RepositoryError:
            await asyncio.to_thread(self.store.remove, path)
            raise

        self.log.info(
            "ingest.photo.accepted",
            extra={"asset_id": asset_id, "entry_id": entry_id, "has_location": metadata.has_location},
        )
        return asset

    async def get_asset(self, asset_id: str) -> MediaAsset:
        return await asyncio.to_thread(self.repository.get, asset_id)

    async def delete_asset(self, entry_id: str, asset_id: str) -> None:
        """Remove the record and every upload file derived from it."""
        asset = await asyncio.to_thread(self.repository.get, asset_id)
        if asset.journal_entry_id != entry_id:
            raise NotFoundError(f"Media asset '{asset_id}' not found in entry '{entry_id}'")
        await asyncio.to_thread(self.repository.delete, asset_id)

        files = [self.store.path_for_url(asset.url), self.store.path_for_url(asset.thumbnail_url)]
        if asset.original_filename:
            files.append(self.store.directory / asset.original_filename)
        for path in files:
            await asyncio.to_thread(self.store.remove, path)
        self.log.info("ingest.media.deleted", extra={"asset_id": asset_id, "entry_id": entry_id})

    async def _require_entry(self, entry_id: str) -> None:
        if not await asyncio.to_thread(self.repository.entry_exists, entry_id):
            self.log.warning("ingest.entry_not_found", extra={"entry_id": entry_id})
            raise EntryNotFoundError(entry_id)
