"""FastAPI application entry point."""

from fastapi import FastAPI

from .config import AppConfig, load_config
from .dependencies import include_routers
from .lifecycle import register_lifecycle
from .logging import configure_logging
from .media.ffmpeg import MediaToolchain


def create_app(config: AppConfig | None = None, toolchain: MediaToolchain | None = None) -> FastAPI:
    """Build FastAPI instance with configured dependencies."""
    configure_logging()
    cfg = config or load_config()
    app = FastAPI(title="Trail Journal Media")
    include_routers(app, cfg, toolchain=toolchain)
    register_lifecycle(app, sweep_interval_seconds=cfg.orphan_sweep_interval_seconds)
    return app
