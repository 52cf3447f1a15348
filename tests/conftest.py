from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.trail_media.config import MediaPaths
from src.trail_media.db.db_init import init_db
from src.trail_media.media.media_storage import UploadStore
from src.trail_media.repositories.media_asset_repository import MediaAssetRepository


@pytest.fixture
def session_factory(tmp_path: Path) -> sessionmaker[Session]:
    # File-backed so pipeline work in worker threads gets its own connections.
    engine = create_engine(
        f"sqlite:///{tmp_path / 'journal.db'}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)
    init_db(engine, factory)
    yield factory
    engine.dispose()


@pytest.fixture
def media_paths(tmp_path: Path) -> MediaPaths:
    return MediaPaths(root=tmp_path, uploads=tmp_path / "uploads")


@pytest.fixture
def store(media_paths: MediaPaths) -> UploadStore:
    upload_store = UploadStore(media_paths)
    upload_store.ensure_structure()
    return upload_store


@pytest.fixture
def repository(session_factory: sessionmaker[Session]) -> MediaAssetRepository:
    return MediaAssetRepository(session_factory)


@pytest.fixture
def entry_id(repository: MediaAssetRepository) -> str:
    return repository.create_entry(title="Ridge loop")
