"""
Build versioning for the served UI.

A build is identified by its precache manifest: every cached file with a
content revision. The tracker compares fresh scans against the active
build and announces new versions to its subscribers, which is how open
pages learn that a newer build has been installed.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

logger = logging.getLogger(__name__)

DEFAULT_GLOB_PATTERNS = ("**/*.js", "**/*.css", "**/*.html")
REVISION_LENGTH = 16
VERSION_LENGTH = 8

UpdateCallback = Callable[[str], None]


@dataclass(frozen=True)
class PrecacheEntry:
    url: str
    revision: str


@dataclass(frozen=True)
class BuildSnapshot:
    version: str
    entries: tuple[PrecacheEntry, ...] = ()

    def manifest(self) -> list[dict]:
        return [{"url": e.url, "revision": e.revision} for e in self.entries]


def _file_revision(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()[:REVISION_LENGTH]


def _build_version(entries: Iterable[PrecacheEntry]) -> str:
    digest = hashlib.sha256()
    for entry in entries:
        digest.update(f"{entry.url}:{entry.revision}\n".encode("utf-8"))
    return digest.hexdigest()[:VERSION_LENGTH]


def scan_build(
    dist_dir: Path | str,
    include_assets: Iterable[str] = (),
    glob_patterns: Iterable[str] = DEFAULT_GLOB_PATTERNS,
) -> BuildSnapshot:
    """
    Compute the precache manifest of the build in `dist_dir`.

    Files matching `glob_patterns` are always cached; `include_assets` are
    extra files relative to the build root. Missing extra assets are skipped.

    Raises:
        FileNotFoundError: If `dist_dir` is not a directory.
    """
    root = Path(dist_dir)
    if not root.is_dir():
        raise FileNotFoundError(f"Build directory not found: {root}")

    paths: set[Path] = set()
    for pattern in glob_patterns:
        paths.update(p for p in root.glob(pattern) if p.is_file())
    for asset in include_assets:
        candidate = root / asset
        if candidate.is_file():
            paths.add(candidate)
        else:
            logger.warning("Included asset %s not found in %s", asset, root)

    entries = tuple(
        PrecacheEntry(url=p.relative_to(root).as_posix(), revision=_file_revision(p))
        for p in sorted(paths)
    )
    return BuildSnapshot(version=_build_version(entries), entries=entries)


class BuildTracker:
    """Keeps the active build and the newer build waiting to be activated."""

    def __init__(
        self,
        dist_dir: Path | str,
        include_assets: Iterable[str] = (),
        *,
        cleanup_outdated_caches: bool = True,
    ):
        self.dist_dir = Path(dist_dir)
        self.include_assets = tuple(include_assets)
        self.cleanup_outdated_caches = cleanup_outdated_caches
        self._lock = threading.Lock()
        self._subscribers: list[UpdateCallback] = []
        self._withdrawn_subscribers: list[UpdateCallback] = []
        self.active = scan_build(self.dist_dir, self.include_assets)
        self.waiting: Optional[BuildSnapshot] = None
        self.retired: list[BuildSnapshot] = []
        logger.info("Active build %s (%d files)", self.active.version, len(self.active.entries))

    def subscribe(
        self, callback: UpdateCallback, withdrawn: Optional[UpdateCallback] = None
    ) -> bool:
        """
        Register `callback` for new versions, and optionally `withdrawn` for
        waiting builds that disappear before activation. Returns False if
        `callback` is already registered.
        """
        with self._lock:
            if callback in self._subscribers:
                return False
            self._subscribers.append(callback)
            if withdrawn is not None:
                self._withdrawn_subscribers.append(withdrawn)
            return True

    def check(self) -> Optional[BuildSnapshot]:
        """
        Rescan the build directory.

        Returns the snapshot that became the waiting build, or None when
        nothing new was found. Subscribers hear about each version once.
        """
        snapshot = scan_build(self.dist_dir, self.include_assets)
        with self._lock:
            if snapshot.version == self.active.version:
                # A rebuild back to the active version drops any waiting build.
                dropped = self.waiting
                self.waiting = None
                withdrawn = list(self._withdrawn_subscribers)
            elif self.waiting is not None and snapshot.version == self.waiting.version:
                return None
            else:
                self.waiting = snapshot
                subscribers = list(self._subscribers)
                dropped = withdrawn = None

        if withdrawn is not None:
            if dropped is not None:
                logger.info("Waiting build %s withdrawn", dropped.version)
                for callback in withdrawn:
                    callback(dropped.version)
            return None

        logger.info("New build %s is waiting", snapshot.version)
        for callback in subscribers:
            callback(snapshot.version)
        return snapshot

    def activate(self, version: str) -> BuildSnapshot:
        """
        Promote the waiting build `version` to active.

        Raises:
            LookupError: If `version` is not the waiting build.
        """
        with self._lock:
            if self.waiting is None or self.waiting.version != version:
                raise LookupError(f"Build {version} is not waiting for activation")
            previous = self.active
            self.active = self.waiting
            self.waiting = None
            if self.cleanup_outdated_caches:
                self.retired.clear()
            else:
                self.retired.append(previous)
        logger.info("Activated build %s (was %s)", version, previous.version)
        return self.active


@dataclass
class BuildMonitor:
    """Background loop that checks the build directory for new versions."""

    tracker: BuildTracker
    interval_seconds: float
    _stop: threading.Event = field(default_factory=threading.Event, init=False)
    _thread: Optional[threading.Thread] = field(default=None, init=False)

    def run_once(self) -> Optional[BuildSnapshot]:
        try:
            return self.tracker.check()
        except Exception as exc:
            logger.exception("Build check failed: %s", exc)
            return None

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_once()

    def start(self) -> bool:
        if self.interval_seconds <= 0:
            logger.info("Build monitor disabled")
            return False
        if self._thread is not None and self._thread.is_alive():
            return False
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, name="build-monitor", daemon=True
        )
        self._thread.start()
        logger.info("Build monitor checking every %.1fs", self.interval_seconds)
        return True

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
