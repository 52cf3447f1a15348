"""Media data models."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from pathlib import Path


class MediaKind(StrEnum):
    PHOTO = "photo"
    VIDEO = "video"


class MediaStatus(StrEnum):
    """Persisted lifecycle state; a deleted asset has no row at all."""

    PENDING = "pending"
    PROCESSED = "processed"


class CleanupReason(StrEnum):
    """Why a video pipeline removed its asset."""

    METADATA_UNREADABLE = "metadata_unreadable"
    DURATION_EXCEEDED = "duration_exceeded"
    STORAGE_FAILED = "storage_failed"
    PROCESSING_FAILED = "processing_failed"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class MediaAsset:
    id: str
    journal_entry_id: str
    kind: MediaKind
    status: MediaStatus
    url: str
    thumbnail_url: str | None
    caption: str | None
    display_order: int
    duration: int
    latitude: float | None
    longitude: float | None
    taken_at: datetime | None
    created_at: datetime
    original_filename: str | None = None


@dataclass(slots=True, frozen=True)
class ExtractedMetadata:
    """Transient probe result consumed once by the record finalizer.

    Coordinates are kept only as a finite pair; a lone latitude or
    longitude is dropped.
    """

    duration: int | None = None
    latitude: float | None = None
    longitude: float | None = None
    taken_at: datetime | None = None

    def __post_init__(self) -> None:
        if not _is_finite(self.latitude) or not _is_finite(self.longitude):
            object.__setattr__(self, "latitude", None)
            object.__setattr__(self, "longitude", None)

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(slots=True, frozen=True)
class VideoPaths:
    """Identifier-derived locations for one video upload."""

    raw: Path
    video: Path
    thumbnail: Path


def _is_finite(value: float | None) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)
