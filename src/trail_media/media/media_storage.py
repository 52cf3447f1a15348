"""Filesystem storage for uploaded journal media."""

from __future__ import annotations

import errno
import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from fastapi import UploadFile

from ..config import MediaPaths
from .media_errors import FallbackCopyError
from .media_models import VideoPaths

CHUNK_SIZE = 1 * 1024 * 1024  # 1 MiB

_SAFE_EXTENSION = re.compile(r"^[a-z0-9]{1,8}$")


@dataclass(slots=True)
class UploadStore:
    """Owns the uploads directory and the identifier-derived file layout.

    Every file belonging to an asset is named after the asset identifier, so
    concurrent pipelines never touch each other's paths.
    """

    paths: MediaPaths
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    @property
    def directory(self) -> Path:
        return self.paths.uploads

    def ensure_structure(self) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory

    def video_paths(self, asset_id: str, original_extension: str) -> VideoPaths:
        return VideoPaths(
            raw=self.directory / f"{asset_id}_original.{original_extension}",
            video=self.directory / f"{asset_id}.mp4",
            thumbnail=self.directory / f"{asset_id}_thumb.jpg",
        )

    def photo_path(self, asset_id: str, extension: str) -> Path:
        return self.directory / f"{asset_id}.{extension}"

    def url_for(self, path: Path) -> str:
        return f"{self.paths.url_prefix}/{path.name}"

    def path_for_url(self, url: str | None) -> Path | None:
        """Map a public URL back to its file, ignoring URLs served elsewhere."""
        prefix = f"{self.paths.url_prefix}/"
        if not url or not url.startswith(prefix):
            return None
        name = url[len(prefix):]
        if not name or "/" in name or name in (".", ".."):
            return None
        return self.directory / name

    async def persist_upload(self, upload: UploadFile, target: Path) -> int:
        """Stream upload contents to ``target`` and return the number of bytes written."""
        self.ensure_structure()
        written = 0
        with target.open("wb") as sink:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                sink.write(chunk)
                written += len(chunk)
        await upload.seek(0)
        self.log.info(
            "media.upload.persisted",
            extra={"path": str(target), "size_bytes": written},
        )
        return written

    def write_bytes(self, target: Path, data: bytes) -> None:
        self.ensure_structure()
        target.write_bytes(data)
        self.log.info("media.upload.persisted", extra={"path": str(target), "size_bytes": len(data)})

    def move_into_place(self, source: Path, target: Path) -> None:
        """Move ``source`` to ``target``, copying when a rename cannot cross devices."""
        try:
            os.replace(source, target)
            return
        except OSError as exc:
            if exc.errno != errno.EXDEV:
                raise FallbackCopyError(f"cannot move {source} to {target}: {exc}") from exc

        try:
            shutil.copyfile(source, target)
        except OSError as exc:
            self.remove(target)
            raise FallbackCopyError(f"cannot copy {source} to {target}: {exc}") from exc
        self.remove(source)

    def remove(self, path: Path | None) -> bool:
        """Best-effort delete; a missing file is not an error."""
        if path is None:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            self.log.warning("media.file.remove_failed", extra={"path": str(path), "error": str(exc)})
            return False
        return True

    def list_files(self) -> list[Path]:
        if not self.directory.exists():
            return []
        return sorted(entry for entry in self.directory.iterdir() if entry.is_file())


def derive_extension(filename: str | None, default: str) -> str:
    """Return a lowercase, filesystem-safe extension from an uploaded filename."""
    if filename:
        suffix = Path(filename).suffix.lstrip(".").lower()
        if _SAFE_EXTENSION.match(suffix):
            return suffix
    return default
