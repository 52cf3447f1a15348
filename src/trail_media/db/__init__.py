"""Database models and initialization helpers."""

from .db_init import init_db
from .db_models import Base, JournalEntryModel, MediaAssetModel

__all__ = [
    "Base",
    "JournalEntryModel",
    "MediaAssetModel",
    "init_db",
]
