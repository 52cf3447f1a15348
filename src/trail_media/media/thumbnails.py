"""Still-frame thumbnails for processed videos."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

import structlog

from .ffmpeg import MediaToolchain
from .media_errors import ThumbnailError, ToolError
from .media_storage import UploadStore

logger = structlog.get_logger(__name__)

THUMBNAIL_WIDTH = 640
THUMBNAIL_OFFSET = "00:00:01"


@dataclass(slots=True)
class ThumbnailGenerator:
    toolchain: MediaToolchain
    store: UploadStore
    width: int = THUMBNAIL_WIDTH
    offset: str = THUMBNAIL_OFFSET

    async def generate(self, video_path: Path, thumbnail_path: Path) -> Path:
        """Extract one aspect-preserving frame, raising :class:`ThumbnailError` on failure."""
        try:
            await self.toolchain.extract_frame(
                video_path, thumbnail_path, offset=self.offset, width=self.width
            )
        except (ToolError, OSError) as exc:
            await asyncio.to_thread(self.store.remove, thumbnail_path)
            raise ThumbnailError(str(exc)) from exc
        logger.info("media.thumbnail.generated", thumbnail_path=str(thumbnail_path))
        return thumbnail_path

    async def try_generate(self, video_path: Path, thumbnail_path: Path) -> Path | None:
        """Like :meth:`generate` but a failure is only logged."""
        try:
            return await self.generate(video_path, thumbnail_path)
        except ThumbnailError as exc:
            logger.error("media.thumbnail.failed", video_path=str(video_path), error=str(exc))
            return None
