"""
Firebase connector: the document-store and auth handles for one project.

The connector is parameterized by a `FirebaseIdentity` (the web app
coordinates) and returns a `BackendContext` that the application keeps for
the lifetime of the process. An in-memory variant is provided for tests and
local runs.
"""

from __future__ import annotations

import copy
import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials, firestore
from google.auth import exceptions as google_auth_exceptions
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from backend.config import Settings
from backend.errors import ConfigurationError, InvalidAuthToken

logger = logging.getLogger(__name__)

PROJECT_ID_PATTERN = re.compile(r"^[a-z][a-z0-9-]{4,28}[a-z0-9]$")
APP_ID_PATTERN = re.compile(r"^1:(\d+):(web|android|ios):[0-9a-f]+$")

IDENTITY_SETTINGS_FIELDS = (
    "api_key",
    "auth_domain",
    "project_id",
    "storage_bucket",
    "messaging_sender_id",
    "app_id",
)


class FirebaseIdentity(BaseModel):
    """Coordinates of the Firebase project the web client binds to."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )

    api_key: str = Field(..., min_length=1)
    auth_domain: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    storage_bucket: str = Field(..., min_length=1)
    messaging_sender_id: str = Field(..., min_length=1, pattern=r"^\d+$")
    app_id: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_resolvable(self) -> "FirebaseIdentity":
        if not PROJECT_ID_PATTERN.match(self.project_id):
            raise ValueError(f"invalid project id {self.project_id!r}")
        match = APP_ID_PATTERN.match(self.app_id)
        if not match:
            raise ValueError(f"invalid app id {self.app_id!r}")
        if match.group(1) != self.messaging_sender_id:
            raise ValueError("app id does not belong to the messaging sender id")
        return self

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FirebaseIdentity":
        """Validate a raw mapping in either web-config or snake_case keys."""
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid Firebase identity: {exc}") from exc

    def client_config(self) -> dict:
        """The identity in the key names the web SDK expects."""
        return self.model_dump(by_alias=True)


def load_identity(settings: Settings) -> FirebaseIdentity:
    """Build the identity from a config file or the FIREBASE_* settings."""
    if settings.firebase_config_file:
        path = Path(settings.firebase_config_file)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(
                f"Cannot read Firebase config file {path}: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Firebase config file {path} is not an object")
        return FirebaseIdentity.from_mapping(data)

    data = {}
    for name in IDENTITY_SETTINGS_FIELDS:
        value = getattr(settings, f"firebase_{name}")
        if value is not None:
            data[name] = value
    return FirebaseIdentity.from_mapping(data)


class StoreClient(Protocol):
    """Document store operations the service needs."""

    def get_document(self, path: str) -> Optional[dict]:
        ...

    def set_document(self, path: str, data: dict) -> None:
        ...


class AuthClient(Protocol):
    """Authentication operations the service needs."""

    def verify_id_token(self, token: str) -> dict:
        ...


@dataclass
class InMemoryStoreClient:
    """Test double for the document store."""

    documents: dict = field(default_factory=dict)

    def get_document(self, path: str) -> Optional[dict]:
        stored = self.documents.get(path)
        return copy.deepcopy(stored) if stored is not None else None

    def set_document(self, path: str, data: dict) -> None:
        self.documents[path] = copy.deepcopy(data)


@dataclass
class InMemoryAuthClient:
    """Test double for auth; tokens are issued locally."""

    tokens: dict = field(default_factory=dict)

    def issue_token(self, uid: str, **claims) -> str:
        token = uuid.uuid4().hex
        self.tokens[token] = {"uid": uid, **claims}
        return token

    def verify_id_token(self, token: str) -> dict:
        claims = self.tokens.get(token)
        if claims is None:
            raise InvalidAuthToken("Unknown ID token")
        return dict(claims)


class FirestoreStoreClient:
    """Document store backed by Cloud Firestore."""

    def __init__(self, client):
        self._client = client

    def get_document(self, path: str) -> Optional[dict]:
        snapshot = self._client.document(path).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def set_document(self, path: str, data: dict) -> None:
        self._client.document(path).set(data)


class FirebaseAuthClient:
    """Auth handle bound to one firebase-admin app."""

    def __init__(self, app: firebase_admin.App):
        self._app = app

    def verify_id_token(self, token: str) -> dict:
        try:
            return firebase_auth.verify_id_token(token, app=self._app)
        except (firebase_auth.InvalidIdTokenError, ValueError) as exc:
            raise InvalidAuthToken(str(exc)) from exc


@dataclass(frozen=True)
class BackendContext:
    """Handles shared by everything that talks to Firebase."""

    identity: FirebaseIdentity
    store: StoreClient
    auth: AuthClient


def _get_or_initialize_app(
    identity: FirebaseIdentity, credential: Optional[credentials.Base]
) -> firebase_admin.App:
    try:
        return firebase_admin.get_app(identity.app_id)
    except ValueError:
        pass
    options = {
        "projectId": identity.project_id,
        "storageBucket": identity.storage_bucket,
    }
    return firebase_admin.initialize_app(
        credential=credential, options=options, name=identity.app_id
    )


def initialize(
    identity: FirebaseIdentity, *, credential: Optional[credentials.Base] = None
) -> BackendContext:
    """
    Bind a firebase-admin app to `identity` and derive both client handles.

    Raises:
        ConfigurationError: If the app cannot be bound or the handles cannot
            be created (bad options, unresolvable credentials).
    """
    try:
        app = _get_or_initialize_app(identity, credential)
        store = FirestoreStoreClient(firestore.client(app))
    except (ValueError, google_auth_exceptions.GoogleAuthError) as exc:
        raise ConfigurationError(
            f"Cannot bind Firebase project {identity.project_id}: {exc}"
        ) from exc
    logger.info("Bound Firebase project %s", identity.project_id)
    return BackendContext(
        identity=identity, store=store, auth=FirebaseAuthClient(app)
    )


def initialize_in_memory(identity: FirebaseIdentity) -> BackendContext:
    """Same contract as `initialize`, with in-memory store and auth handles."""
    return BackendContext(
        identity=identity, store=InMemoryStoreClient(), auth=InMemoryAuthClient()
    )


def load_credential(path: str) -> credentials.Certificate:
    try:
        return credentials.Certificate(path)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Cannot load Firebase credential {path}: {exc}") from exc


def connect(settings: Settings) -> BackendContext:
    """Create the backend context described by `settings`."""
    identity = load_identity(settings)
    if settings.use_in_memory_backends:
        logger.info("Using in-memory backends for %s", identity.project_id)
        return initialize_in_memory(identity)
    credential = None
    if settings.firebase_credentials_path:
        credential = load_credential(settings.firebase_credentials_path)
    return initialize(identity, credential=credential)
