"""
Pydantic schemas for the flashcard backend.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class UpdateStatusResponse(BaseModel):
    state: str
    message: str
    active_version: str
    waiting_version: Optional[str] = None
    pending_version: Optional[str] = None
    deferred_version: Optional[str] = None
    activated_version: Optional[str] = None


class UpdateCheckResponse(BaseModel):
    found: bool
    version: Optional[str] = None


class UpdateDecisionRequest(BaseModel):
    accept: bool


class UpdateDecisionResponse(BaseModel):
    version: str
    state: str
    reload: bool


class SessionResponse(BaseModel):
    uid: str
    claims: dict


class HealthResponse(BaseModel):
    status: str
    project_id: str
    active_version: str
    store: str
    auth: str
