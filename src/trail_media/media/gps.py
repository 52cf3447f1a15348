"""GPS coordinate resolution for photo EXIF tags and video container tags.

Photo coordinates come out of a priority-ordered chain of pure strategies.
Each strategy looks at one representation of the GPS data and returns a
``(latitude, longitude)`` pair or ``None``; the first finite pair wins.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from numbers import Real
from typing import Any

__all__ = [
    "PhotoTags",
    "Coordinates",
    "PHOTO_GPS_STRATEGIES",
    "VIDEO_LOCATION_KEYS",
    "dms_to_decimal",
    "rationals_to_dms",
    "parse_signed_pair",
    "resolve_photo_gps",
    "resolve_video_gps",
]

Coordinates = tuple[float, float]

# Vendor location keys in container format tags, most specific first.
VIDEO_LOCATION_KEYS = (
    "com.apple.quicktime.location.ISO6709",
    "location",
    "location-eng",
    "com.android.location",
)

_SIGNED_PAIR = re.compile(r"([+-]?\d+(?:\.\d*)?)([+-]\d+(?:\.\d*)?)")


@dataclass(slots=True)
class PhotoTags:
    """Views of one image's GPS data, as handed over by the image readers.

    ``normalized`` holds decimal ``latitude``/``longitude`` when the file
    already carries them, ``gps_ifd`` is the GPS directory returned by the
    imaging library accessor, ``exif`` is the flattened named tag mapping and
    ``raw_gps`` keeps the untranslated numerator/denominator pairs.
    """

    normalized: Mapping[str, Any] = field(default_factory=dict)
    gps_ifd: Mapping[str, Any] = field(default_factory=dict)
    exif: Mapping[str, Any] = field(default_factory=dict)
    raw_gps: Mapping[str, Any] = field(default_factory=dict)


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    return result if math.isfinite(result) else None


def _finite_pair(latitude: float | None, longitude: float | None) -> Coordinates | None:
    if latitude is None or longitude is None:
        return None
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return None
    return latitude, longitude


def _normalize_ref(ref: Any, default: str) -> str:
    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    if not isinstance(ref, str):
        return default
    cleaned = ref.strip("\x00 ").upper()
    return cleaned or default


def _apply_ref(value: float, ref: str) -> float:
    return -value if ref in ("S", "W") else value


def dms_to_decimal(dms: Any, ref: Any = "N") -> float | None:
    """Convert a ``(degrees, minutes, seconds)`` triple to signed decimal degrees."""
    if isinstance(dms, (str, bytes)) or not isinstance(dms, Sequence) or len(dms) < 3:
        return None
    parts = [_as_float(part) for part in dms[:3]]
    if any(part is None for part in parts):
        return None
    degrees, minutes, seconds = parts
    decimal = degrees + minutes / 60 + seconds / 3600
    return _apply_ref(decimal, _normalize_ref(ref, "N"))


def rationals_to_dms(rationals: Any) -> list[float] | None:
    """Turn ``[[num, den], ...]`` pairs into floats; a zero denominator keeps the numerator."""
    if isinstance(rationals, (str, bytes)) or not isinstance(rationals, Sequence):
        return None
    values: list[float] = []
    for pair in rationals:
        if isinstance(pair, (str, bytes)) or not isinstance(pair, Sequence) or len(pair) != 2:
            return None
        numerator, denominator = _as_float(pair[0]), _as_float(pair[1])
        if numerator is None or denominator is None:
            return None
        values.append(numerator / denominator if denominator else numerator)
    return values


def _from_normalized(tags: PhotoTags) -> Coordinates | None:
    return _finite_pair(
        _as_float(tags.normalized.get("latitude")),
        _as_float(tags.normalized.get("longitude")),
    )


def _from_gps_accessor(tags: PhotoTags) -> Coordinates | None:
    gps = tags.gps_ifd
    if not gps:
        return None
    return _finite_pair(
        dms_to_decimal(gps.get("GPSLatitude"), _normalize_ref(gps.get("GPSLatitudeRef"), "N")),
        dms_to_decimal(gps.get("GPSLongitude"), _normalize_ref(gps.get("GPSLongitudeRef"), "W")),
    )


def _from_raw_decimal(tags: PhotoTags) -> Coordinates | None:
    latitude = _as_float(tags.exif.get("GPSLatitude"))
    longitude = _as_float(tags.exif.get("GPSLongitude"))
    if latitude is None or longitude is None:
        return None
    return _finite_pair(
        _apply_ref(latitude, _normalize_ref(tags.exif.get("GPSLatitudeRef"), "N")),
        _apply_ref(longitude, _normalize_ref(tags.exif.get("GPSLongitudeRef"), "E")),
    )


def _from_raw_dms(tags: PhotoTags) -> Coordinates | None:
    return _finite_pair(
        dms_to_decimal(tags.exif.get("GPSLatitude"), _normalize_ref(tags.exif.get("GPSLatitudeRef"), "N")),
        dms_to_decimal(tags.exif.get("GPSLongitude"), _normalize_ref(tags.exif.get("GPSLongitudeRef"), "W")),
    )


def _from_raw_rationals(tags: PhotoTags) -> Coordinates | None:
    latitude = rationals_to_dms(tags.raw_gps.get("GPSLatitude"))
    longitude = rationals_to_dms(tags.raw_gps.get("GPSLongitude"))
    if latitude is None or longitude is None:
        return None
    return _finite_pair(
        dms_to_decimal(latitude, _normalize_ref(tags.raw_gps.get("GPSLatitudeRef"), "N")),
        dms_to_decimal(longitude, _normalize_ref(tags.raw_gps.get("GPSLongitudeRef"), "W")),
    )


PhotoGpsStrategy = Callable[[PhotoTags], Coordinates | None]

PHOTO_GPS_STRATEGIES: tuple[tuple[str, PhotoGpsStrategy], ...] = (
    ("normalized", _from_normalized),
    ("gps_accessor", _from_gps_accessor),
    ("raw_decimal", _from_raw_decimal),
    ("raw_dms", _from_raw_dms),
    ("raw_rationals", _from_raw_rationals),
)


def resolve_photo_gps(
    tags: PhotoTags,
    strategies: Sequence[tuple[str, PhotoGpsStrategy]] = PHOTO_GPS_STRATEGIES,
) -> tuple[Coordinates | None, str | None]:
    """Return the first resolved pair and the name of the strategy that produced it."""
    for name, strategy in strategies:
        coordinates = strategy(tags)
        if coordinates is not None:
            return coordinates, name
    return None, None


def parse_signed_pair(value: Any) -> Coordinates | None:
    """Parse an ISO-6709-style token such as ``+40.4461-079.9392/``."""
    if not isinstance(value, str):
        return None
    match = _SIGNED_PAIR.search(value.strip())
    if not match:
        return None
    try:
        return _finite_pair(float(match.group(1)), float(match.group(2)))
    except ValueError:
        return None


def resolve_video_gps(format_tags: Mapping[str, Any]) -> Coordinates | None:
    """Pick the first known location tag present and parse it."""
    lowered = {str(key).lower(): value for key, value in format_tags.items()}
    for key in VIDEO_LOCATION_KEYS:
        value = format_tags.get(key, lowered.get(key.lower()))
        if value:
            return parse_signed_pair(value)
    return None
