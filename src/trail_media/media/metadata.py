"""Metadata extraction for uploaded photos and videos.

Photos are read in-process from their bytes with Pillow (EXIF directories and
XMP packet) and piexif (untranslated rationals). Videos are probed through the
media toolchain. Only an unreadable image or container is an error; every
individual field is optional.
"""

from __future__ import annotations

import io
import math
import re
import struct
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import piexif
import structlog
from PIL import ExifTags, Image, UnidentifiedImageError

from .ffmpeg import MediaToolchain
from .gps import PhotoTags, resolve_photo_gps, resolve_video_gps
from .media_errors import MetadataExtractionError, ToolError
from .media_models import ExtractedMetadata

logger = structlog.get_logger(__name__)

# Original capture time first, file modification time last.
PHOTO_TIMESTAMP_TAGS = ("DateTimeOriginal", "DateTimeDigitized", "DateTime")
VIDEO_TIMESTAMP_TAGS = ("creation_time", "com.apple.quicktime.creationdate", "date")

_EXIF_DATETIME_FORMATS = ("%Y:%m:%d %H:%M:%S", "%Y:%m:%d %H:%M:%S%z", "%Y:%m:%d")
_ISO_FALLBACK_FORMATS = ("%Y-%m-%dT%H:%M:%S%z", "%Y-%m-%dT%H:%M:%S.%f%z", "%Y-%m-%d %H:%M:%S")

_XMP_DECIMAL = {
    "latitude": re.compile(rb'GpsLatitude\s*=\s*"([+-]?\d+(?:\.\d+)?)"|<[\w-]+:GpsLatitude>([+-]?\d+(?:\.\d+)?)<', re.IGNORECASE),
    "longitude": re.compile(rb'GpsLongt?itude\s*=\s*"([+-]?\d+(?:\.\d+)?)"|<[\w-]+:GpsLongt?itude>([+-]?\d+(?:\.\d+)?)<', re.IGNORECASE),
}

_PIEXIF_MAGIC = (b"\xff\xd8", b"II", b"MM")

_PIEXIF_GPS_NAMES = {
    piexif.GPSIFD.GPSLatitudeRef: "GPSLatitudeRef",
    piexif.GPSIFD.GPSLatitude: "GPSLatitude",
    piexif.GPSIFD.GPSLongitudeRef: "GPSLongitudeRef",
    piexif.GPSIFD.GPSLongitude: "GPSLongitude",
}


def round_duration(seconds: float | None) -> int:
    """Round half up to whole seconds; a missing duration reads as zero."""
    if seconds is None or not math.isfinite(seconds) or seconds < 0:
        return 0
    return int(math.floor(seconds + 0.5))


def parse_timestamp(value: Any) -> datetime | None:
    """Parse EXIF or ISO 8601 timestamps into naive UTC datetimes."""
    if isinstance(value, datetime):
        parsed: datetime | None = value
    elif isinstance(value, (str, bytes)):
        text = value.decode("ascii", errors="ignore") if isinstance(value, bytes) else value
        parsed = _parse_timestamp_text(text.strip("\x00 "))
    else:
        parsed = None
    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_timestamp_text(text: str) -> datetime | None:
    if not text or text.startswith("0000"):
        return None
    for fmt in _EXIF_DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in _ISO_FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def resolve_taken_at(tags: Mapping[str, Any], candidates: Iterable[str]) -> datetime | None:
    """Return the first candidate tag holding a parseable timestamp."""
    for name in candidates:
        parsed = parse_timestamp(tags.get(name))
        if parsed is not None:
            return parsed
    return None


def _named(directory: Mapping[int, Any], names: Mapping[int, str]) -> dict[str, Any]:
    return {names.get(tag, str(tag)): value for tag, value in directory.items()}


def _read_xmp_coordinates(xmp: Any) -> dict[str, float]:
    if isinstance(xmp, str):
        xmp = xmp.encode("utf-8", errors="ignore")
    if not isinstance(xmp, bytes):
        return {}
    found: dict[str, float] = {}
    for key, pattern in _XMP_DECIMAL.items():
        match = pattern.search(xmp)
        if match:
            found[key] = float(match.group(1) or match.group(2))
    return found


def _read_raw_gps(data: bytes) -> dict[str, Any]:
    # piexif treats anything it does not recognise as a filename.
    if not data.startswith(_PIEXIF_MAGIC) and not (data[:4] == b"RIFF" and data[8:12] == b"WEBP"):
        return {}
    try:
        gps = piexif.load(data).get("GPS") or {}
    except (piexif.InvalidImageDataError, ValueError, KeyError, IndexError, struct.error):
        return {}
    return {name: gps[tag] for tag, name in _PIEXIF_GPS_NAMES.items() if tag in gps}


def read_photo_tags(data: bytes) -> PhotoTags:
    """Collect every GPS/EXIF view of ``data`` the resolver chain understands.

    Raises :class:`MetadataExtractionError` when the bytes are not an image.
    """
    try:
        image = Image.open(io.BytesIO(data))
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise MetadataExtractionError("photo", f"unreadable image: {exc}") from exc

    with image:
        normalized = _read_xmp_coordinates(image.info.get("xmp"))
        try:
            exif = image.getexif()
            flattened = _named(exif, ExifTags.TAGS)
            flattened.update(_named(exif.get_ifd(ExifTags.IFD.Exif), ExifTags.TAGS))
            gps_ifd = _named(exif.get_ifd(ExifTags.IFD.GPSInfo), ExifTags.GPSTAGS)
        except (OSError, ValueError, struct.error) as exc:
            logger.info("media.photo.exif_unreadable", error=str(exc))
            flattened, gps_ifd = {}, {}

    flattened.update(gps_ifd)
    return PhotoTags(
        normalized=normalized,
        gps_ifd=gps_ifd,
        exif=flattened,
        raw_gps=_read_raw_gps(data),
    )


def extract_photo_metadata(data: bytes) -> ExtractedMetadata:
    """Extract coordinates and capture time from photo bytes."""
    tags = read_photo_tags(data)
    coordinates, strategy = resolve_photo_gps(tags)
    taken_at = resolve_taken_at(tags.exif, PHOTO_TIMESTAMP_TAGS)

    if coordinates is None:
        logger.info("media.photo.gps_missing")
    else:
        logger.info(
            "media.photo.gps_resolved",
            strategy=strategy,
            latitude=coordinates[0],
            longitude=coordinates[1],
        )

    latitude, longitude = coordinates if coordinates is not None else (None, None)
    return ExtractedMetadata(latitude=latitude, longitude=longitude, taken_at=taken_at)


async def extract_video_metadata(path: Path, toolchain: MediaToolchain) -> ExtractedMetadata:
    """Probe ``path`` for duration, location and creation time."""
    try:
        probe = await toolchain.probe(path)
    except (ToolError, OSError) as exc:
        raise MetadataExtractionError(str(path), str(exc)) from exc

    coordinates = resolve_video_gps(probe.format_tags)
    taken_at = resolve_taken_at(probe.format_tags, VIDEO_TIMESTAMP_TAGS)
    latitude, longitude = coordinates if coordinates is not None else (None, None)
    metadata = ExtractedMetadata(
        duration=round_duration(probe.duration),
        latitude=latitude,
        longitude=longitude,
        taken_at=taken_at,
    )
    logger.info(
        "media.video.metadata_extracted",
        path=str(path),
        duration=metadata.duration,
        has_location=metadata.has_location,
        taken_at=taken_at.isoformat() if taken_at else None,
    )
    return metadata
