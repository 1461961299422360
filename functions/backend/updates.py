"""
Update-notification lifecycle.

When a newer build is announced the watcher asks the user whether to reload
and, if they accept, activates the new build. The question is either asked
synchronously through a `prompt` callable, which blocks the signalling
thread until answered, or published for the page to answer later through
`resolve`.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import FastAPI

from backend.config import Settings
from backend.errors import NoPendingUpdate
from backend.versioning import BuildMonitor, BuildTracker

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_MESSAGE = "Yeni içerik mevcut. Yenilemek ister misiniz?"

PromptFn = Callable[[str], bool]
ActivateFn = Callable[[str], object]


class UpdateState(str, enum.Enum):
    IDLE = "IDLE"
    UPDATE_AVAILABLE = "UPDATE_AVAILABLE"
    DEFERRED = "DEFERRED"
    ACTIVATING = "ACTIVATING"


@dataclass(frozen=True)
class UpdateDecision:
    version: str
    accepted: bool

    @property
    def reload(self) -> bool:
        return self.accepted


class UpdateWatcher:
    """Tracks one update instance at a time through its prompt."""

    def __init__(
        self,
        activate: ActivateFn,
        prompt: Optional[PromptFn] = None,
        message: str = DEFAULT_PROMPT_MESSAGE,
    ):
        self._activate = activate
        self._prompt = prompt
        self.message = message
        self._lock = threading.Lock()
        self.state = UpdateState.IDLE
        self.transitions: list[UpdateState] = [UpdateState.IDLE]
        self.pending_version: Optional[str] = None
        self.deferred_version: Optional[str] = None
        self.activated_version: Optional[str] = None
        self.coalesced_signals = 0
        self.activations = 0
        self._prompt_serial = 0

    def _enter(self, state: UpdateState) -> None:
        logger.info("Update state %s -> %s", self.state.value, state.value)
        self.state = state
        self.transitions.append(state)

    def on_need_refresh(self, version: str) -> bool:
        """
        Handle an update-availability signal for `version`.

        Returns True if the signal opened a new prompt. Signals that arrive
        while a prompt is outstanding are folded into it.
        """
        with self._lock:
            if version == self.activated_version:
                logger.debug("Ignoring signal for already active build %s", version)
                return False
            if self.state is UpdateState.UPDATE_AVAILABLE:
                if version != self.pending_version:
                    logger.info(
                        "Coalescing update %s into pending prompt (was %s)",
                        version,
                        self.pending_version,
                    )
                    self.pending_version = version
                self.coalesced_signals += 1
                return False
            self.pending_version = version
            self._prompt_serial += 1
            serial = self._prompt_serial
            self._enter(UpdateState.UPDATE_AVAILABLE)

        if self._prompt is not None:
            accepted = bool(self._prompt(self.message))
            self._resolve(accepted, serial=serial)
        return True

    def on_update_withdrawn(self, version: str) -> bool:
        """
        Close the prompt for `version` because that build is no longer waiting.

        Returns True if an outstanding prompt was withdrawn.
        """
        with self._lock:
            if (
                self.state is not UpdateState.UPDATE_AVAILABLE
                or self.pending_version != version
            ):
                return False
            logger.info("Build %s withdrawn before a decision", version)
            self.pending_version = None
            self._enter(UpdateState.IDLE)
            return True

    def resolve(self, accepted: bool) -> UpdateDecision:
        """
        Answer the outstanding prompt.

        Raises:
            NoPendingUpdate: If no prompt is outstanding.
        """
        decision = self._resolve(accepted)
        if decision is None:
            raise NoPendingUpdate("No update is waiting for a decision")
        return decision

    def _resolve(
        self, accepted: bool, serial: Optional[int] = None
    ) -> Optional[UpdateDecision]:
        with self._lock:
            if self.state is not UpdateState.UPDATE_AVAILABLE:
                if serial is not None:
                    logger.info("Prompt was answered elsewhere; ignoring answer")
                return None
            if serial is not None and serial != self._prompt_serial:
                logger.info("Prompt was replaced; ignoring stale answer")
                return None
            version = self.pending_version
            self.pending_version = None
            if not accepted:
                self.deferred_version = version
                self._enter(UpdateState.DEFERRED)
                self._enter(UpdateState.IDLE)
                return UpdateDecision(version=version, accepted=False)
            self.deferred_version = None
            self._enter(UpdateState.ACTIVATING)
            self.activations += 1

        try:
            self._activate(version)
        except Exception:
            logger.exception("Activating build %s failed", version)
            raise
        with self._lock:
            self.activated_version = version
        return UpdateDecision(version=version, accepted=True)

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "state": self.state.value,
                "pending_version": self.pending_version,
                "deferred_version": self.deferred_version,
                "activated_version": self.activated_version,
                "message": self.message,
            }


def install_update_watcher(
    app: FastAPI, settings: Settings, prompt: Optional[PromptFn] = None
) -> UpdateWatcher:
    """
    Attach the build tracker, monitor and update watcher to `app`.

    Installing again returns the watcher already installed, so a signal is
    never delivered twice.
    """
    existing = getattr(app.state, "update_watcher", None)
    if existing is not None:
        logger.debug("Update watcher already installed")
        return existing

    tracker = BuildTracker(
        settings.dist_dir,
        settings.include_assets,
        cleanup_outdated_caches=settings.cleanup_outdated_caches,
    )
    watcher = UpdateWatcher(
        activate=tracker.activate,
        prompt=prompt,
        message=settings.update_prompt_message,
    )
    tracker.subscribe(watcher.on_need_refresh, withdrawn=watcher.on_update_withdrawn)
    app.state.build_tracker = tracker
    app.state.build_monitor = BuildMonitor(
        tracker, settings.update_check_interval_seconds
    )
    app.state.update_watcher = watcher
    return watcher
