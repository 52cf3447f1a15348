"""Post-upload video processing.

One run takes a pending asset through metadata extraction, the duration
gate, transcoding and thumbnail extraction, then finalizes the record. The
sequence is strictly linear and returns early on the first fatal step; a
run ends with the asset either processed or deleted.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any

import structlog

from ..config import ProcessingSettings
from ..repositories.media_asset_repository import MediaAssetRepository
from .duration_gate import DurationGate
from .ffmpeg import MediaToolchain
from .finalizer import RecordFinalizer
from .media_errors import FallbackCopyError, MetadataExtractionError
from .media_models import CleanupReason, MediaAsset, VideoPaths
from .media_storage import UploadStore
from .metadata import extract_video_metadata
from .thumbnails import ThumbnailGenerator
from .transcoder import Transcoder

logger = structlog.get_logger(__name__)


class PipelineStatus(StrEnum):
    PROCESSED = "processed"
    DELETED = "deleted"


@dataclass(slots=True, frozen=True)
class PipelineOutcome:
    """Terminal state of one run.

    ``reason`` is set when the pipeline itself removed the asset; a record
    deleted by someone else mid-run ends as ``DELETED`` without a reason.
    """

    status: PipelineStatus
    reason: CleanupReason | None = None
    asset: MediaAsset | None = None
    thumbnail: bool = False
    transcoded: bool = False


class VideoPipeline:
    """Runs the processing stages for a freshly uploaded video."""

    def __init__(
        self,
        *,
        toolchain: MediaToolchain,
        store: UploadStore,
        repository: MediaAssetRepository,
        settings: ProcessingSettings | None = None,
    ) -> None:
        settings = settings or ProcessingSettings()
        self._toolchain = toolchain
        self._gate = DurationGate(max_seconds=settings.max_video_duration_seconds)
        self._transcoder = Transcoder(toolchain=toolchain, store=store)
        self._thumbnails = ThumbnailGenerator(
            toolchain=toolchain,
            store=store,
            width=settings.thumbnail_width,
            offset=settings.thumbnail_offset,
        )
        self._finalizer = RecordFinalizer(repository=repository, store=store)

    async def process_video(
        self,
        asset_id: str,
        raw_path: Path,
        canonical_video_path: Path,
        canonical_thumbnail_path: Path,
    ) -> PipelineOutcome:
        """Run every stage for one upload; the asset ends processed or deleted.

        Errors no stage classifies, and cancellation, clean the asset up the
        same way a fatal stage does.
        """
        paths = VideoPaths(raw=raw_path, video=canonical_video_path, thumbnail=canonical_thumbnail_path)
        with structlog.contextvars.bound_contextvars(asset_id=asset_id):
            logger.info("media.pipeline.started", raw_path=str(raw_path))
            try:
                return await self._run_stages(asset_id, paths)
            except asyncio.CancelledError:
                logger.warning("media.pipeline.cancelled")
                await asyncio.shield(self._fail(asset_id, paths, CleanupReason.CANCELLED))
                raise
            except Exception:
                logger.exception("media.pipeline.failed")
                return await self._fail(asset_id, paths, CleanupReason.PROCESSING_FAILED)

    async def _run_stages(self, asset_id: str, paths: VideoPaths) -> PipelineOutcome:
        try:
            metadata = await extract_video_metadata(paths.raw, self._toolchain)
        except MetadataExtractionError as exc:
            logger.warning("media.pipeline.metadata_unreadable", error=str(exc))
            return await self._fail(asset_id, paths, CleanupReason.METADATA_UNREADABLE)

        decision = self._gate.check(metadata.duration or 0)
        if not decision.accepted:
            logger.warning(
                "media.pipeline.duration_exceeded",
                duration=decision.duration,
                ceiling=decision.ceiling,
            )
            return await self._fail(asset_id, paths, CleanupReason.DURATION_EXCEEDED)

        try:
            transcode = await self._transcoder.normalize(paths.raw, paths.video)
        except FallbackCopyError as exc:
            logger.error("media.pipeline.storage_failed", error=str(exc))
            return await self._fail(asset_id, paths, CleanupReason.STORAGE_FAILED)

        thumbnail = await self._thumbnails.try_generate(paths.video, paths.thumbnail)

        asset = await self._finalizer.finalize_success(asset_id, metadata, paths)
        if asset is None:
            return PipelineOutcome(status=PipelineStatus.DELETED)

        logger.info(
            "media.pipeline.completed",
            duration=asset.duration,
            transcoded=transcode.transcoded,
            thumbnail=thumbnail is not None,
        )
        return PipelineOutcome(
            status=PipelineStatus.PROCESSED,
            asset=asset,
            thumbnail=thumbnail is not None,
            transcoded=transcode.transcoded,
        )

    async def _fail(self, asset_id: str, paths: VideoPaths, reason: CleanupReason) -> PipelineOutcome:
        await self._finalizer.cleanup_and_fail(asset_id, paths, reason)
        return PipelineOutcome(status=PipelineStatus.DELETED, reason=reason)


class PipelineRunner:
    """Fire-and-forget task holder for pipeline runs.

    Running tasks are referenced until they finish; errors escaping a run are
    logged here and never reach the request that started it.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task[Any]:
        task = asyncio.create_task(self._guard(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for every running task; cancel the stragglers after ``timeout``."""
        tasks = list(self._tasks)
        if not tasks:
            return
        _, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning("media.pipeline.drain_cancelled", count=len(still_running))
            await asyncio.gather(*still_running, return_exceptions=True)

    @staticmethod
    async def _guard(coro: Coroutine[Any, Any, Any], name: str | None) -> Any:
        try:
            return await coro
        except Exception:
            logger.exception("media.pipeline.crashed", task=name)
            return None
