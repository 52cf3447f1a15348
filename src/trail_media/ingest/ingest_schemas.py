"""Pydantic schemas for media upload responses."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from ..media.media_models import MediaKind, MediaStatus


class MediaAssetSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    journal_entry_id: str
    kind: MediaKind
    status: MediaStatus
    url: str
    thumbnail_url: str | None = None
    caption: str | None = None
    display_order: int
    duration: int
    latitude: float | None = None
    longitude: float | None = None
    taken_at: datetime | None = None
    created_at: datetime


class IngestErrorSchema(BaseModel):
    status: str
    failure_reason: str
    details: str | None = None
