"""Database initialization helpers."""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db_models import Base


def init_db(engine: Engine, session_factory: sessionmaker[Session]) -> None:
    """Create any missing tables; schema changes go through Alembic revisions."""
    Base.metadata.create_all(engine)
