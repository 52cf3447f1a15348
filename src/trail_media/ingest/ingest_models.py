"""Data structures for media uploads."""

from dataclasses import dataclass
from enum import StrEnum


class FailureReason(StrEnum):
    """Failure reasons enumerated in upload error contracts."""

    INVALID_REQUEST = "invalid_request"
    INVALID_ORDER = "invalid_order"
    ENTRY_NOT_FOUND = "entry_not_found"
    MEDIA_NOT_FOUND = "media_not_found"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"
    UNREADABLE_IMAGE = "unreadable_image"
    INTERNAL_ERROR = "internal_error"


@dataclass(slots=True)
class UploadValidationResult:
    """Outcome of validating an uploaded file."""

    content_type: str
    size_bytes: int
    filename: str
