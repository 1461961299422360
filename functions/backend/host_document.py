"""
The host page the single-page UI mounts on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from bs4 import BeautifulSoup, Tag

from backend.errors import MountTargetMissing

logger = logging.getLogger(__name__)


@dataclass
class HostDocument:
    path: Path
    soup: BeautifulSoup

    @classmethod
    def load(cls, path: Path | str, selector: str = "#app") -> "HostDocument":
        """
        Parse the host page at `path`.

        A page that does not exist cannot hold the mount target, so a missing
        file raises MountTargetMissing for `selector` as well.
        """
        path = Path(path)
        try:
            markup = path.read_bytes()
        except FileNotFoundError as exc:
            raise MountTargetMissing(selector, str(path)) from exc
        return cls(path=path, soup=BeautifulSoup(markup, "html.parser"))

    def find_mount_target(self, selector: str) -> Tag:
        target = self.soup.select_one(selector)
        if target is None:
            raise MountTargetMissing(selector, str(self.path))
        logger.debug("Found mount target %s in %s", selector, self.path)
        return target
