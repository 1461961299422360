"""
Dependency wiring for the FastAPI app.

Everything here is created once by `create_app` and kept on `app.state`;
the getters only hand it to the routes.
"""

from __future__ import annotations

from fastapi import Request

from backend.config import Settings
from backend.firebase import BackendContext
from backend.updates import UpdateWatcher
from backend.versioning import BuildMonitor, BuildTracker


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_backend(request: Request) -> BackendContext:
    return request.app.state.backend


def get_update_watcher(request: Request) -> UpdateWatcher:
    return request.app.state.update_watcher


def get_build_tracker(request: Request) -> BuildTracker:
    return request.app.state.build_tracker


def get_build_monitor(request: Request) -> BuildMonitor:
    return request.app.state.build_monitor
