"""Lifecycle helpers wiring background tasks for FastAPI startup."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from fastapi import FastAPI

from .media.media_cleanup import OrphanReport, cleanup_orphans
from .media.media_storage import UploadStore
from .media.pipeline import PipelineRunner
from .repositories.media_asset_repository import MediaAssetRepository

logger = logging.getLogger(__name__)

DRAIN_TIMEOUT_SECONDS = 30.0


def orphan_sweep_once(*, repository: MediaAssetRepository, store: UploadStore) -> OrphanReport:
    """Delete unreferenced upload files once and return the report."""
    return cleanup_orphans(repository, store, delete=True)


async def run_periodic_orphan_sweep(
    *,
    repository: MediaAssetRepository,
    store: UploadStore,
    shutdown_event: asyncio.Event,
    interval_seconds: float = 3600.0,
) -> None:
    """Sweep orphaned uploads until ``shutdown_event`` is signalled."""

    interval = max(1.0, float(interval_seconds))
    while not shutdown_event.is_set():
        try:
            report = await asyncio.to_thread(orphan_sweep_once, repository=repository, store=store)
        except Exception:
            logger.exception("media.cleanup.sweep_failed")
        else:
            if report.removed:
                logger.info(
                    "media.cleanup.sweep_completed",
                    extra={"removed": len(report.removed), "scanned": report.scanned},
                )
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue


def register_lifecycle(app: FastAPI, *, sweep_interval_seconds: float) -> None:
    """Attach startup/shutdown handlers for the sweep task and pipeline drain."""

    async def _startup_orphan_sweep() -> None:
        if sweep_interval_seconds <= 0:
            logger.info("media.cleanup.sweep_disabled")
            return
        shutdown_event = asyncio.Event()
        app.state.orphan_sweep_shutdown_event = shutdown_event
        app.state.orphan_sweep_task = asyncio.create_task(
            run_periodic_orphan_sweep(
                repository=app.state.media_repo,
                store=app.state.upload_store,
                shutdown_event=shutdown_event,
                interval_seconds=sweep_interval_seconds,
            ),
            name="trail-media-orphan-sweep",
        )

    async def _shutdown_orphan_sweep() -> None:
        shutdown_event = getattr(app.state, "orphan_sweep_shutdown_event", None)
        if shutdown_event is not None:
            shutdown_event.set()
        task: asyncio.Task[None] | None = getattr(app.state, "orphan_sweep_task", None)
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        app.state.orphan_sweep_task = None
        app.state.orphan_sweep_shutdown_event = None

    async def _drain_pipelines() -> None:
        runner: PipelineRunner | None = getattr(app.state, "pipeline_runner", None)
        if runner is not None:
            await runner.drain(timeout=DRAIN_TIMEOUT_SECONDS)

    app.add_event_handler("startup", _startup_orphan_sweep)
    app.add_event_handler("shutdown", _shutdown_orphan_sweep)
    app.add_event_handler("shutdown", _drain_pipelines)


__all__ = [
    "orphan_sweep_once",
    "register_lifecycle",
    "run_periodic_orphan_sweep",
]
