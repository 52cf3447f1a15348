"""Application configuration builder."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db.db_init import init_db

VIDEO_CONTENT_TYPES = ("video/mp4", "video/quicktime", "video/webm", "video/x-m4v")
PHOTO_CONTENT_TYPES = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/heic",
    "image/heif",
)

DEFAULT_DATABASE_URL = "sqlite:///trail_journal.db"


@dataclass(slots=True)
class IngestLimits:
    video_content_types: Sequence[str]
    photo_content_types: Sequence[str]
    video_max_bytes: int
    photo_max_bytes: int
    chunk_size_bytes: int


@dataclass(slots=True)
class MediaPaths:
    root: Path
    uploads: Path
    url_prefix: str = "/public/uploads"


@dataclass(slots=True)
class ProcessingSettings:
    """Tunables shared by the video pipeline stages."""

    max_video_duration_seconds: int = 120
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    probe_timeout_seconds: float = 30.0
    transcode_timeout_seconds: float = 600.0
    thumbnail_timeout_seconds: float = 30.0
    thumbnail_width: int = 640
    thumbnail_offset: str = "00:00:01"


@dataclass(slots=True)
class AppConfig:
    media_paths: MediaPaths
    ingest_limits: IngestLimits
    processing: ProcessingSettings
    database_url: str
    engine: Engine
    session_factory: sessionmaker[Session]
    orphan_sweep_interval_seconds: float


def _ensure_media_paths(paths: MediaPaths) -> None:
    paths.root.mkdir(parents=True, exist_ok=True)
    paths.uploads.mkdir(parents=True, exist_ok=True)


def load_database_url() -> str:
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def load_processing_settings() -> ProcessingSettings:
    return ProcessingSettings(
        max_video_duration_seconds=int(os.getenv("MAX_VIDEO_DURATION_SECONDS", 120)),
        ffmpeg_binary=os.getenv("FFMPEG_BINARY", "ffmpeg"),
        ffprobe_binary=os.getenv("FFPROBE_BINARY", "ffprobe"),
        probe_timeout_seconds=float(os.getenv("PROBE_TIMEOUT_SECONDS", 30)),
        transcode_timeout_seconds=float(os.getenv("TRANSCODE_TIMEOUT_SECONDS", 600)),
        thumbnail_timeout_seconds=float(os.getenv("THUMBNAIL_TIMEOUT_SECONDS", 30)),
        thumbnail_width=int(os.getenv("THUMBNAIL_WIDTH", 640)),
        thumbnail_offset=os.getenv("THUMBNAIL_OFFSET", "00:00:01"),
    )


def load_config() -> AppConfig:
    """Load configuration from environment (SQLite by default)."""
    root = Path(os.getenv("MEDIA_ROOT", "public"))
    media_paths = MediaPaths(
        root=root,
        uploads=root / "uploads",
        url_prefix=os.getenv("PUBLIC_URL_PREFIX", "/public/uploads").rstrip("/"),
    )
    _ensure_media_paths(media_paths)

    ingest_limits = IngestLimits(
        video_content_types=VIDEO_CONTENT_TYPES,
        photo_content_types=PHOTO_CONTENT_TYPES,
        video_max_bytes=int(os.getenv("VIDEO_MAX_BYTES", 100 * 1024 * 1024)),
        photo_max_bytes=int(os.getenv("PHOTO_MAX_BYTES", 10 * 1024 * 1024)),
        chunk_size_bytes=int(os.getenv("INGEST_CHUNK_SIZE_BYTES", 1 * 1024 * 1024)),
    )

    database_url = load_database_url()
    engine = create_engine(database_url, future=True)
    session_factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)

    init_db(engine, session_factory)

    return AppConfig(
        media_paths=media_paths,
        ingest_limits=ingest_limits,
        processing=load_processing_settings(),
        database_url=database_url,
        engine=engine,
        session_factory=session_factory,
        orphan_sweep_interval_seconds=float(os.getenv("ORPHAN_SWEEP_INTERVAL_SECONDS", 0)),
    )
