"""Terminal state transitions for pending video assets."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import structlog

from ..exceptions import NotFoundError
from ..repositories.media_asset_repository import MediaAssetRepository
from .media_models import CleanupReason, ExtractedMetadata, MediaAsset, VideoPaths
from .media_storage import UploadStore

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class RecordFinalizer:
    """Move a pending asset to processed, or remove every trace of it."""

    repository: MediaAssetRepository
    store: UploadStore

    async def finalize_success(
        self, asset_id: str, metadata: ExtractedMetadata, paths: VideoPaths
    ) -> MediaAsset | None:
        try:
            asset = await asyncio.to_thread(self.repository.mark_processed, asset_id, metadata)
        except NotFoundError:
            # Deleted while the pipeline was running.
            logger.info("media.finalize.record_vanished")
            await self._remove_files(paths)
            return None
        logger.info(
            "media.finalize.processed",
            duration=asset.duration,
            has_location=asset.latitude is not None,
        )
        return asset

    async def cleanup_and_fail(self, asset_id: str, paths: VideoPaths, reason: CleanupReason) -> None:
        """Best-effort removal of files and row; safe to repeat."""
        await self._remove_files(paths)
        try:
            await asyncio.to_thread(self.repository.delete, asset_id)
        except NotFoundError:
            logger.debug("media.cleanup.record_missing")
        logger.warning("media.cleanup.completed", reason=reason.value)

    async def _remove_files(self, paths: VideoPaths) -> None:
        for path in (paths.raw, paths.video, paths.thumbnail):
            await asyncio.to_thread(self.store.remove, path)
