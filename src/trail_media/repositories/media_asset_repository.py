"""Persistence layer for journal entries and their media assets."""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime
from pathlib import PurePosixPath

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.db_models import JournalEntryModel, MediaAssetModel
from ..exceptions import NotFoundError, ensure_found, handle_sqlalchemy_errors
from ..media.media_models import ExtractedMetadata, MediaAsset, MediaKind, MediaStatus


class MediaAssetRepository:
    """Store media asset records keyed by their generated identifier."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create_entry(self, *, title: str = "", entry_id: str | None = None) -> str:
        entry_id = entry_id or uuid.uuid4().hex
        with handle_sqlalchemy_errors(entity="journal_entry"), self._session_factory() as session:
            session.add(JournalEntryModel(id=entry_id, title=title))
            session.commit()
        return entry_id

    def entry_exists(self, entry_id: str) -> bool:
        with handle_sqlalchemy_errors(entity="journal_entry"), self._session_factory() as session:
            return session.get(JournalEntryModel, entry_id) is not None

    def create_pending_video(
        self,
        *,
        asset_id: str,
        journal_entry_id: str,
        url: str,
        thumbnail_url: str,
        raw_filename: str,
        caption: str | None,
        display_order: int,
    ) -> MediaAsset:
        """Insert a video row that the pipeline will finalize exactly once."""
        return self._insert(
            MediaAssetModel(
                id=asset_id,
                journal_entry_id=journal_entry_id,
                kind=MediaKind.VIDEO.value,
                status=MediaStatus.PENDING.value,
                url=url,
                thumbnail_url=thumbnail_url,
                original_filename=raw_filename,
                caption=caption,
                display_order=display_order,
                duration=0,
            )
        )

    def create_photo(
        self,
        *,
        asset_id: str,
        journal_entry_id: str,
        url: str,
        caption: str | None,
        display_order: int,
        metadata: ExtractedMetadata,
    ) -> MediaAsset:
        return self._insert(
            MediaAssetModel(
                id=asset_id,
                journal_entry_id=journal_entry_id,
                kind=MediaKind.PHOTO.value,
                status=MediaStatus.PROCESSED.value,
                url=url,
                thumbnail_url=None,
                caption=caption,
                display_order=display_order,
                duration=0,
                latitude=metadata.latitude,
                longitude=metadata.longitude,
                taken_at=metadata.taken_at,
            )
        )

    def get(self, asset_id: str) -> MediaAsset:
        with handle_sqlalchemy_errors(entity="media_asset"), self._session_factory() as session:
            model = ensure_found(
                session.get(MediaAssetModel, asset_id), entity="Media asset", identifier=asset_id
            )
            return self._to_domain(model)

    def mark_processed(self, asset_id: str, metadata: ExtractedMetadata) -> MediaAsset:
        """Apply extracted metadata and flip the row to processed in one commit.

        URL fields are left untouched. Raises :class:`NotFoundError` when the
        row no longer exists.
        """
        with handle_sqlalchemy_errors(entity="media_asset"), self._session_factory() as session:
            model = session.get(MediaAssetModel, asset_id)
            if model is None:
                raise NotFoundError(f"Media asset '{asset_id}' not found")
            model.duration = metadata.duration or 0
            model.latitude = metadata.latitude
            model.longitude = metadata.longitude
            model.taken_at = metadata.taken_at
            model.status = MediaStatus.PROCESSED.value
            session.commit()
            return self._to_domain(model)

    def delete(self, asset_id: str) -> MediaAsset:
        """Remove the row and return its last state."""
        with handle_sqlalchemy_errors(entity="media_asset"), self._session_factory() as session:
            model = session.get(MediaAssetModel, asset_id)
            if model is None:
                raise NotFoundError(f"Media asset '{asset_id}' not found")
            asset = self._to_domain(model)
            session.delete(model)
            session.commit()
        return asset

    def list_for_entry(self, journal_entry_id: str) -> list[MediaAsset]:
        with handle_sqlalchemy_errors(entity="media_asset"), self._session_factory() as session:
            rows = session.scalars(
                select(MediaAssetModel)
                .where(MediaAssetModel.journal_entry_id == journal_entry_id)
                .order_by(MediaAssetModel.display_order, MediaAssetModel.created_at)
            ).all()
            return [self._to_domain(row) for row in rows]

    def list_referenced_filenames(self) -> set[str]:
        """Return upload file names any asset still points at.

        Pending videos also reference their raw original, which the pipeline
        has not consumed yet.
        """
        with handle_sqlalchemy_errors(entity="media_asset"), self._session_factory() as session:
            rows = session.execute(
                select(
                    MediaAssetModel.url,
                    MediaAssetModel.thumbnail_url,
                    MediaAssetModel.original_filename,
                    MediaAssetModel.status,
                )
            ).all()
        names: set[str] = set()
        for url, thumbnail_url, raw_filename, status in rows:
            for value in (url, thumbnail_url):
                if value:
                    names.add(PurePosixPath(value).name)
            if raw_filename and status == MediaStatus.PENDING.value:
                names.add(raw_filename)
        return names

    def _insert(self, model: MediaAssetModel) -> MediaAsset:
        model.created_at = datetime.utcnow()
        with handle_sqlalchemy_errors(entity="media_asset"), self._session_factory() as session:
            session.add(model)
            session.commit()
            return self._to_domain(model)

    @staticmethod
    def _to_domain(model: MediaAssetModel) -> MediaAsset:
        return MediaAsset(
            id=model.id,
            journal_entry_id=model.journal_entry_id,
            kind=MediaKind(model.kind),
            status=MediaStatus(model.status),
            url=model.url,
            thumbnail_url=model.thumbnail_url,
            caption=model.caption,
            display_order=model.display_order,
            duration=model.duration,
            latitude=model.latitude,
            longitude=model.longitude,
            taken_at=model.taken_at,
            created_at=model.created_at,
            original_filename=model.original_filename,
        )
