"""Cron entry point for removing upload files no media asset references."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path

from src.trail_media.config import load_config
from src.trail_media.media.media_cleanup import DEFAULT_GRACE_SECONDS, cleanup_orphans
from src.trail_media.media.media_storage import UploadStore
from src.trail_media.repositories.media_asset_repository import MediaAssetRepository


@dataclass(slots=True)
class CleanupSummary:
    orphans: list[Path]
    removed: int
    scanned: int
    dry_run: bool


def perform_cleanup(*, delete: bool, grace_seconds: float = DEFAULT_GRACE_SECONDS) -> CleanupSummary:
    """Execute the orphan sweep and return summary counters."""
    config = load_config()
    repository = MediaAssetRepository(config.session_factory)
    store = UploadStore(config.media_paths)
    report = cleanup_orphans(repository, store, delete=delete, grace_seconds=grace_seconds)
    return CleanupSummary(
        orphans=report.orphans,
        removed=len(report.removed),
        scanned=report.scanned,
        dry_run=report.dry_run,
    )


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Report or delete orphaned upload files.")
    parser.add_argument("--delete", action="store_true", help="Delete orphans instead of only listing them.")
    parser.add_argument(
        "--grace-seconds",
        type=float,
        default=DEFAULT_GRACE_SECONDS,
        help="Ignore files modified more recently than this.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    try:
        summary = perform_cleanup(delete=args.delete, grace_seconds=args.grace_seconds)
    except Exception as exc:
        print(f"cleanup failed: {exc}", file=sys.stderr)
        return 2

    for path in summary.orphans:
        print(path, file=sys.stdout)
    if summary.dry_run:
        print(
            f"cleanup dry-run, scanned={summary.scanned}, orphans={len(summary.orphans)}",
            file=sys.stdout,
        )
    else:
        print(
            f"cleanup done, scanned={summary.scanned}, removed={summary.removed}",
            file=sys.stdout,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
