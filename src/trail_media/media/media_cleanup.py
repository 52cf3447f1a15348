"""Helpers for removing upload files no asset references."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from ..repositories.media_asset_repository import MediaAssetRepository
from .media_storage import UploadStore

logger = logging.getLogger(__name__)

# Files younger than this may belong to an upload whose row is not committed yet.
DEFAULT_GRACE_SECONDS = 300.0


@dataclass(slots=True)
class OrphanReport:
    orphans: list[Path] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)
    scanned: int = 0
    dry_run: bool = True


def find_orphans(
    repository: MediaAssetRepository,
    store: UploadStore,
    *,
    grace_seconds: float = DEFAULT_GRACE_SECONDS,
    now: float | None = None,
) -> tuple[list[Path], int]:
    """Return unreferenced upload files and the number of files scanned."""
    referenced = repository.list_referenced_filenames()
    current = time.time() if now is None else now
    files = store.list_files()
    orphans = []
    for path in files:
        if path.name in referenced:
            continue
        try:
            age = current - path.stat().st_mtime
        except FileNotFoundError:
            continue
        if age < grace_seconds:
            continue
        orphans.append(path)
    return orphans, len(files)


def cleanup_orphans(
    repository: MediaAssetRepository,
    store: UploadStore,
    *,
    delete: bool = False,
    grace_seconds: float = DEFAULT_GRACE_SECONDS,
    now: float | None = None,
) -> OrphanReport:
    """Report orphaned upload files, deleting them only when ``delete`` is set."""
    orphans, scanned = find_orphans(repository, store, grace_seconds=grace_seconds, now=now)
    report = OrphanReport(orphans=orphans, scanned=scanned, dry_run=not delete)
    if not delete:
        return report
    for path in orphans:
        if store.remove(path):
            report.removed.append(path)
            logger.info("media.cleanup.orphan_removed", extra={"path": str(path)})
    return report
