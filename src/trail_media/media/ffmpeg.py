"""Async wrappers over the ``ffprobe`` and ``ffmpeg`` executables.

Every call runs the tool as a child process without blocking the event loop
and is bounded by a timeout; on expiry the child is killed.
"""

from __future__ import annotations

import asyncio
import json
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import structlog

from ..config import ProcessingSettings
from .media_errors import ToolError, ToolTimeoutError

logger = structlog.get_logger(__name__)

# libx264 + AAC in an MP4 with the moov atom up front plays everywhere.
TRANSCODE_OUTPUT_ARGS = (
    "-c:v", "libx264",
    "-c:a", "aac",
    "-preset", "fast",
    "-crf", "23",
    "-movflags", "+faststart",
    "-pix_fmt", "yuv420p",
)

STDERR_TAIL_CHARS = 500


@dataclass(slots=True)
class ProbeResult:
    """Container duration and format tags from ``ffprobe -show_format``."""

    duration: float | None
    format_tags: dict[str, Any] = field(default_factory=dict)


class MediaToolchain(Protocol):
    """Probe, transcode and frame-extraction capabilities."""

    async def probe(self, path: Path) -> ProbeResult:
        """Return container duration and tags, raising :class:`ToolError` on corrupt input."""

    async def transcode(self, source: Path, target: Path) -> None:
        """Write the normalized H.264/AAC rendition of ``source`` to ``target``."""

    async def extract_frame(self, source: Path, target: Path, *, offset: str, width: int) -> None:
        """Write one JPEG still of ``source`` taken at ``offset`` to ``target``."""


def parse_probe_output(payload: str | bytes) -> ProbeResult:
    """Build a :class:`ProbeResult` from ffprobe JSON output."""
    data = json.loads(payload)
    if not isinstance(data, dict):
        raise ValueError("ffprobe output is not a JSON object")
    fmt = data.get("format") or {}
    raw_duration = fmt.get("duration")
    try:
        duration = float(raw_duration) if raw_duration is not None else None
    except (TypeError, ValueError):
        duration = None
    return ProbeResult(
        duration=duration,
        format_tags=dict(fmt.get("tags") or {}),
    )


class FFmpegToolchain:
    """Production :class:`MediaToolchain` backed by the ffmpeg binaries."""

    def __init__(self, settings: ProcessingSettings) -> None:
        self._settings = settings

    async def probe(self, path: Path) -> ProbeResult:
        stdout = await self._run(
            self._settings.ffprobe_binary,
            [
                "-v", "quiet",
                "-print_format", "json",
                "-show_format",
                str(path),
            ],
            timeout=self._settings.probe_timeout_seconds,
        )
        try:
            return parse_probe_output(stdout)
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError subclass
            raise ToolError(self._settings.ffprobe_binary, f"unreadable output: {exc}") from exc

    async def transcode(self, source: Path, target: Path) -> None:
        await self._run(
            self._settings.ffmpeg_binary,
            ["-y", "-i", str(source), *TRANSCODE_OUTPUT_ARGS, str(target)],
            timeout=self._settings.transcode_timeout_seconds,
        )

    async def extract_frame(self, source: Path, target: Path, *, offset: str, width: int) -> None:
        await self._run(
            self._settings.ffmpeg_binary,
            [
                "-y",
                "-ss", offset,
                "-i", str(source),
                "-frames:v", "1",
                "-vf", f"scale={width}:-2",
                str(target),
            ],
            timeout=self._settings.thumbnail_timeout_seconds,
        )
        if not target.exists():
            raise ToolError(self._settings.ffmpeg_binary, f"no frame written at {offset}")

    async def _run(self, binary: str, args: list[str], *, timeout: float) -> bytes:
        executable = shutil.which(binary)
        if executable is None:
            raise ToolError(binary, "executable not found")

        logger.debug("media.tool.start", tool=binary, args=args)
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            # ENOEXEC, EACCES and EMFILE surface here rather than as an exit code.
            raise ToolError(binary, f"cannot start: {exc}") from exc
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.warning("media.tool.timeout", tool=binary, timeout_seconds=timeout)
            raise ToolTimeoutError(binary, timeout) from None

        if process.returncode != 0:
            tail = stderr.decode(errors="replace")[-STDERR_TAIL_CHARS:]
            raise ToolError(
                binary,
                f"exited with code {process.returncode}: {tail}",
                returncode=process.returncode,
            )
        return stdout
