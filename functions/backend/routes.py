"""
HTTP routes for the flashcard backend.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse

from backend.config import Settings
from backend.dependencies import (
    get_app_settings,
    get_backend,
    get_build_monitor,
    get_build_tracker,
    get_update_watcher,
)
from backend.errors import InvalidAuthToken, NoPendingUpdate
from backend.firebase import BackendContext
from backend.pwa import (
    MANIFEST_MEDIA_TYPE,
    CachePolicy,
    build_manifest,
    service_worker_config,
)
from backend.schemas import (
    HealthResponse,
    SessionResponse,
    UpdateCheckResponse,
    UpdateDecisionRequest,
    UpdateDecisionResponse,
    UpdateStatusResponse,
)
from backend.updates import UpdateWatcher
from backend.versioning import BuildMonitor, BuildTracker

logger = logging.getLogger(__name__)

router = APIRouter()
pwa_router = APIRouter()


@pwa_router.get("/manifest.webmanifest")
def web_manifest(settings: Settings = Depends(get_app_settings)):
    return JSONResponse(build_manifest(settings), media_type=MANIFEST_MEDIA_TYPE)


@router.get("/firebase-config")
def firebase_config(backend: BackendContext = Depends(get_backend)):
    return backend.identity.client_config()


@router.get("/sw-config")
def sw_config(
    settings: Settings = Depends(get_app_settings),
    tracker: BuildTracker = Depends(get_build_tracker),
):
    return service_worker_config(CachePolicy.from_settings(settings), tracker.active)


@router.get("/update", response_model=UpdateStatusResponse)
def update_status(
    watcher: UpdateWatcher = Depends(get_update_watcher),
    tracker: BuildTracker = Depends(get_build_tracker),
):
    waiting = tracker.waiting
    return UpdateStatusResponse(
        active_version=tracker.active.version,
        waiting_version=waiting.version if waiting else None,
        **watcher.snapshot(),
    )


@router.post("/update/check", response_model=UpdateCheckResponse)
def check_for_update(monitor: BuildMonitor = Depends(get_build_monitor)):
    """
    Run one build check now instead of waiting for the monitor.
    """
    snapshot = monitor.run_once()
    if snapshot is None:
        return UpdateCheckResponse(found=False)
    return UpdateCheckResponse(found=True, version=snapshot.version)


@router.post("/update/decision", response_model=UpdateDecisionResponse)
def decide_update(
    payload: UpdateDecisionRequest,
    watcher: UpdateWatcher = Depends(get_update_watcher),
):
    try:
        decision = watcher.resolve(payload.accept)
    except (NoPendingUpdate, LookupError) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return UpdateDecisionResponse(
        version=decision.version,
        state=watcher.state.value,
        reload=decision.reload,
    )


@router.get("/session", response_model=SessionResponse)
def session(
    authorization: str | None = Header(default=None),
    backend: BackendContext = Depends(get_backend),
):
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        claims = backend.auth.verify_id_token(token)
    except InvalidAuthToken as exc:
        logger.info("Rejected ID token: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid ID token") from exc
    return SessionResponse(uid=claims["uid"], claims=claims)


@router.get("/health", response_model=HealthResponse)
def health(
    backend: BackendContext = Depends(get_backend),
    tracker: BuildTracker = Depends(get_build_tracker),
):
    return HealthResponse(
        status="ok",
        project_id=backend.identity.project_id,
        active_version=tracker.active.version,
        store=type(backend.store).__name__,
        auth=type(backend.auth).__name__,
    )
