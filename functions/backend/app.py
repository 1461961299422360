"""
FastAPI application entry point for the flashcard backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from backend import __version__
from backend.config import Settings, get_settings
from backend.firebase import BackendContext, connect
from backend.host_document import HostDocument
from backend.routes import pwa_router, router
from backend.updates import PromptFn, install_update_watcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    monitor = getattr(app.state, "build_monitor", None)
    if monitor is not None:
        monitor.start()
    try:
        yield
    finally:
        if monitor is not None:
            monitor.stop()


def mount_ui(app: FastAPI, settings: Settings) -> None:
    """
    Serve the built UI, after checking the host page has its mount target.

    Raises:
        MountTargetMissing: If the host page or its mount target is absent.
    """
    dist_dir = Path(settings.dist_dir)
    document = HostDocument.load(dist_dir / settings.index_file, settings.mount_selector)
    document.find_mount_target(settings.mount_selector)
    app.mount("/", StaticFiles(directory=dist_dir, html=True), name="ui")
    logger.info("Mounted UI from %s on %s", dist_dir, settings.mount_selector)


def create_app(
    settings: Optional[Settings] = None,
    *,
    backend: Optional[BackendContext] = None,
    prompt: Optional[PromptFn] = None,
) -> FastAPI:
    """
    Build the service: connect the backend, construct the app, attach the UI,
    then install the update watcher. Startup errors propagate.
    """
    settings = settings or get_settings()
    if backend is None:
        backend = connect(settings)

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.backend = backend
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(pwa_router)

    mount_ui(app, settings)
    install_update_watcher(app, settings, prompt=prompt)
    return app
