"""HTTP routes for journal media uploads."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import Response

from ..exceptions import NotFoundError
from .ingest_errors import (
    EntryNotFoundError,
    InvalidOrderError,
    PayloadTooLargeError,
    UnreadableImageError,
    UnsupportedMediaError,
    UploadReadError,
)
from .ingest_models import FailureReason
from .ingest_schemas import MediaAssetSchema
from .ingest_service import MediaIngestService

router = APIRouter(prefix="/api", tags=["media"])
logger = logging.getLogger(__name__)


def get_ingest_service(request: Request) -> MediaIngestService:
    """Fetch ingest service from application state."""
    try:
        return request.app.state.ingest_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - misconfigured app
        raise RuntimeError("MediaIngestService is not configured") from exc


def _error(status_code: int, reason: FailureReason, details: str | None = None) -> HTTPException:
    detail: dict[str, str] = {"status": "error", "failure_reason": reason.value}
    if details:
        detail["details"] = details
    return HTTPException(status_code=status_code, detail=detail)


def _translate_upload_error(exc: Exception, entry_id: str) -> HTTPException:
    if isinstance(exc, EntryNotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, FailureReason.ENTRY_NOT_FOUND, f"entry '{entry_id}' not found")
    if isinstance(exc, InvalidOrderError):
        return _error(status.HTTP_400_BAD_REQUEST, FailureReason.INVALID_ORDER, "order must be a non-negative integer")
    if isinstance(exc, UnsupportedMediaError):
        return _error(status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, FailureReason.UNSUPPORTED_MEDIA_TYPE, str(exc))
    if isinstance(exc, PayloadTooLargeError):
        return _error(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, FailureReason.PAYLOAD_TOO_LARGE)
    if isinstance(exc, UnreadableImageError):
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, FailureReason.UNREADABLE_IMAGE, str(exc))
    return _error(status.HTTP_400_BAD_REQUEST, FailureReason.INVALID_REQUEST, str(exc))


_UPLOAD_ERRORS = (
    EntryNotFoundError,
    InvalidOrderError,
    UnsupportedMediaError,
    PayloadTooLargeError,
    UnreadableImageError,
    UploadReadError,
)


@router.post(
    "/entries/{entry_id}/videos/upload",
    status_code=status.HTTP_201_CREATED,
    response_model=MediaAssetSchema,
)
async def upload_video(
    entry_id: str,
    file: UploadFile = File(...),
    caption: str | None = Form(None),
    order: str = Form("0"),
    service: MediaIngestService = Depends(get_ingest_service),
) -> MediaAssetSchema:
    """Accept a video; the returned asset stays pending until processing ends."""
    try:
        asset = await service.receive_video(entry_id, file, caption=caption, order=order)
    except _UPLOAD_ERRORS as exc:
        raise _translate_upload_error(exc, entry_id) from exc
    return MediaAssetSchema.model_validate(asset)


@router.post(
    "/entries/{entry_id}/photos/upload",
    status_code=status.HTTP_201_CREATED,
    response_model=MediaAssetSchema,
)
async def upload_photo(
    entry_id: str,
    file: UploadFile = File(...),
    caption: str | None = Form(None),
    order: str = Form("0"),
    service: MediaIngestService = Depends(get_ingest_service),
) -> MediaAssetSchema:
    try:
        asset = await service.receive_photo(entry_id, file, caption=caption, order=order)
    except _UPLOAD_ERRORS as exc:
        raise _translate_upload_error(exc, entry_id) from exc
    return MediaAssetSchema.model_validate(asset)


@router.get("/media/{asset_id}", response_model=MediaAssetSchema)
async def get_media(
    asset_id: str,
    service: MediaIngestService = Depends(get_ingest_service),
) -> MediaAssetSchema:
    try:
        asset = await service.get_asset(asset_id)
    except NotFoundError as exc:
        raise _error(status.HTTP_404_NOT_FOUND, FailureReason.MEDIA_NOT_FOUND) from exc
    return MediaAssetSchema.model_validate(asset)


@router.delete("/entries/{entry_id}/media/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_media(
    entry_id: str,
    asset_id: str,
    service: MediaIngestService = Depends(get_ingest_service),
) -> Response:
    try:
        await service.delete_asset(entry_id, asset_id)
    except NotFoundError as exc:
        logger.info("ingest.media.delete_missing", extra={"entry_id": entry_id, "asset_id": asset_id})
        raise _error(status.HTTP_404_NOT_FOUND, FailureReason.MEDIA_NOT_FOUND) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
