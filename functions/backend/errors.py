"""
Error types raised by the backend.
"""

from __future__ import annotations


class StartupError(RuntimeError):
    """Fatal error while bringing the service up."""


class ConfigurationError(StartupError):
    """The Firebase identity is malformed or cannot be resolved."""


class MountTargetMissing(StartupError):
    """The host document has no element to mount the UI on."""

    def __init__(self, selector: str, document: str):
        super().__init__(f"Mount target {selector!r} not found in {document}")
        self.selector = selector
        self.document = document


class NoPendingUpdate(RuntimeError):
    """A decision was submitted while no update prompt is outstanding."""


class InvalidAuthToken(ValueError):
    """The auth backend rejected an ID token."""
