"""Domain-specific exceptions for the media processing pipeline."""

from __future__ import annotations

from ..exceptions import AppError


class MediaError(AppError):
    """Base class for media processing errors."""


class ToolError(MediaError):
    """Raised when an external media tool exits unsuccessfully or is missing."""

    def __init__(self, tool: str, message: str, *, returncode: int | None = None) -> None:
        super().__init__(f"{tool}: {message}")
        self.tool = tool
        self.returncode = returncode


class ToolTimeoutError(ToolError):
    """Raised when an external media tool runs past its timeout."""

    def __init__(self, tool: str, timeout_seconds: float) -> None:
        super().__init__(tool, f"timed out after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds


class MetadataExtractionError(MediaError):
    """Raised when a container or image cannot be parsed at all."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class TranscodeError(MediaError):
    """Raised when normalizing a video to the canonical format fails."""


class FallbackCopyError(MediaError):
    """Raised when the raw upload cannot be placed at the canonical path."""


class ThumbnailError(MediaError):
    """Raised when a still frame cannot be extracted."""
