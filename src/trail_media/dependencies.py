"""Dependency wiring helpers."""

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .config import AppConfig
from .ingest.ingest_api import router as ingest_router
from .ingest.ingest_service import MediaIngestService
from .ingest.validation import UploadValidator
from .media.ffmpeg import FFmpegToolchain, MediaToolchain
from .media.media_storage import UploadStore
from .media.pipeline import PipelineRunner, VideoPipeline
from .repositories.media_asset_repository import MediaAssetRepository


def include_routers(app: FastAPI, config: AppConfig, toolchain: MediaToolchain | None = None) -> None:
    """Mount routers, static uploads and attach services."""
    repository = MediaAssetRepository(config.session_factory)
    store = UploadStore(config.media_paths)
    store.ensure_structure()
    toolchain = toolchain or FFmpegToolchain(config.processing)
    runner = PipelineRunner()
    pipeline = VideoPipeline(
        toolchain=toolchain,
        store=store,
        repository=repository,
        settings=config.processing,
    )

    app.state.config = config
    app.state.media_repo = repository
    app.state.upload_store = store
    app.state.pipeline_runner = runner
    app.state.ingest_service = MediaIngestService(
        repository=repository,
        store=store,
        validator=UploadValidator(config.ingest_limits),
        pipeline=pipeline,
        runner=runner,
    )

    app.include_router(ingest_router)
    app.mount(
        config.media_paths.url_prefix,
        StaticFiles(directory=config.media_paths.uploads),
        name="uploads",
    )
