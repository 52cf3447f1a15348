from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker

from src.trail_media.config import DEFAULT_DATABASE_URL, load_database_url
from src.trail_media.db.db_init import init_db

pytestmark = pytest.mark.unit

PROJECT_ROOT = Path(__file__).resolve().parents[3]


def _columns(url: str) -> dict[str, set[str]]:
    inspector = inspect(create_engine(url))
    return {
        table: {column["name"] for column in inspector.get_columns(table)}
        for table in ("journal_entry", "media_asset")
    }


def test_init_db_is_repeatable(tmp_path: Path) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'fresh.db'}", future=True)
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    init_db(engine, session_factory)
    init_db(engine, session_factory)

    assert "status" in _columns(f"sqlite:///{tmp_path / 'fresh.db'}")["media_asset"]


def test_database_url_defaults_to_sqlite(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert load_database_url() == DEFAULT_DATABASE_URL

    monkeypatch.setenv("DATABASE_URL", "sqlite:///elsewhere.db")
    assert load_database_url() == "sqlite:///elsewhere.db"


def test_alembic_head_matches_models(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    migrated = f"sqlite:///{tmp_path / 'migrated.db'}"
    created = f"sqlite:///{tmp_path / 'created.db'}"
    monkeypatch.setenv("DATABASE_URL", migrated)

    command.upgrade(Config(str(PROJECT_ROOT / "alembic.ini")), "head")
    engine = create_engine(created, future=True)
    init_db(engine, sessionmaker(bind=engine))

    assert _columns(migrated) == _columns(created)
    assert "alembic_version" in inspect(create_engine(migrated)).get_table_names()
