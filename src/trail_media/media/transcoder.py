"""Normalize uploaded videos to the canonical playable rendition."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

import structlog

from .ffmpeg import MediaToolchain
from .media_errors import ToolError, TranscodeError
from .media_storage import UploadStore

logger = structlog.get_logger(__name__)


@dataclass(slots=True, frozen=True)
class TranscodeOutcome:
    """``transcoded`` is false when the canonical path holds the original bytes."""

    transcoded: bool
    error: str | None = None


@dataclass(slots=True)
class Transcoder:
    """Write H.264/AAC output to the canonical path, or fall back to the raw upload.

    A failed transcode is recovered here and never reported upwards; only a
    failed fallback move escapes as :class:`FallbackCopyError`.
    """

    toolchain: MediaToolchain
    store: UploadStore

    async def normalize(self, raw_path: Path, video_path: Path) -> TranscodeOutcome:
        try:
            await self._transcode(raw_path, video_path)
        except (ToolError, TranscodeError, OSError) as exc:
            logger.warning(
                "media.transcode.failed",
                raw_path=str(raw_path),
                video_path=str(video_path),
                error=str(exc),
            )
            await asyncio.to_thread(self.store.remove, video_path)
            await asyncio.to_thread(self.store.move_into_place, raw_path, video_path)
            logger.info("media.transcode.fallback_used", video_path=str(video_path))
            return TranscodeOutcome(transcoded=False, error=str(exc))

        await asyncio.to_thread(self.store.remove, raw_path)
        logger.info("media.transcode.completed", video_path=str(video_path))
        return TranscodeOutcome(transcoded=True)

    async def _transcode(self, raw_path: Path, video_path: Path) -> None:
        await self.toolchain.transcode(raw_path, video_path)
        if not _has_bytes(video_path):
            raise TranscodeError(f"transcode produced no output at {video_path}")


def _has_bytes(path: Path) -> bool:
    try:
        return path.stat().st_size > 0
    except FileNotFoundError:
        return False
