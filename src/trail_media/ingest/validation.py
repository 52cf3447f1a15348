"""Upload validation utilities."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import UploadFile

from ..config import IngestLimits
from ..media.media_models import MediaKind
from .ingest_errors import InvalidOrderError, PayloadTooLargeError, UnsupportedMediaError, UploadReadError
from .ingest_models import UploadValidationResult

logger = logging.getLogger(__name__)


def parse_display_order(value: object) -> int:
    """Accept a non-negative integer, or its decimal string form."""
    if isinstance(value, bool):
        raise InvalidOrderError(repr(value))
    if isinstance(value, int):
        order = value
    elif isinstance(value, str) and value.strip().isdigit():
        order = int(value.strip())
    else:
        raise InvalidOrderError(repr(value))
    if order < 0:
        raise InvalidOrderError(repr(value))
    return order


@dataclass(slots=True)
class UploadValidator:
    """Validate uploads against the per-kind content types and size caps."""

    limits: IngestLimits

    def allowed_content_types(self, kind: MediaKind) -> set[str]:
        if kind is MediaKind.VIDEO:
            return set(self.limits.video_content_types)
        return set(self.limits.photo_content_types)

    def cap_bytes(self, kind: MediaKind) -> int:
        if kind is MediaKind.VIDEO:
            return self.limits.video_max_bytes
        return self.limits.photo_max_bytes

    async def validate(self, kind: MediaKind, upload: UploadFile) -> UploadValidationResult:
        if upload.content_type not in self.allowed_content_types(kind):
            logger.warning(
                "ingest.upload.unsupported_media",
                extra={"kind": kind.value, "content_type": upload.content_type},
            )
            raise UnsupportedMediaError(upload.content_type)

        cap = self.cap_bytes(kind)
        size = 0
        try:
            while True:
                chunk = await upload.read(self.limits.chunk_size_bytes)
                if not chunk:
                    break
                size += len(chunk)
                if size > cap:
                    logger.warning(
                        "ingest.upload.payload_too_large",
                        extra={"kind": kind.value, "size_bytes": size, "limit_bytes": cap},
                    )
                    raise PayloadTooLargeError(size)
        except PayloadTooLargeError:
            raise
        except OSError as exc:
            logger.error("ingest.upload.read_failed", exc_info=exc)
            raise UploadReadError(str(exc)) from exc
        finally:
            await upload.seek(0)

        result = UploadValidationResult(
            content_type=upload.content_type or "application/octet-stream",
            size_bytes=size,
            filename=upload.filename or "upload",
        )
        logger.info(
            "ingest.upload.validated",
            extra={
                "kind": kind.value,
                "filename": result.filename,
                "size_bytes": result.size_bytes,
                "content_type": result.content_type,
            },
        )
        return result
