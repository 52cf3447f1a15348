"""Domain-specific exceptions for media uploads."""

from ..exceptions import AppError


class IngestError(AppError):
    """Base class for upload-related errors."""


class UnsupportedMediaError(IngestError):
    """Raised when Content-Type is not allowed for the media kind."""


class PayloadTooLargeError(IngestError):
    """Raised when uploaded file exceeds configured limits."""


class UploadReadError(IngestError):
    """Raised when streaming the upload fails."""


class EntryNotFoundError(IngestError):
    """Raised when the owning journal entry does not exist."""


class InvalidOrderError(IngestError):
    """Raised when the display order is not a non-negative integer."""


class UnreadableImageError(IngestError):
    """Raised when photo bytes cannot be decoded as an image."""
