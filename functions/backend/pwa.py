"""
Installable-app manifest and offline-cache policy.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

from backend.config import Settings
from backend.versioning import BuildSnapshot

MANIFEST_MEDIA_TYPE = "application/manifest+json"


def build_manifest(settings: Settings) -> dict:
    return {
        "name": settings.app_name,
        "short_name": settings.app_short_name,
        "description": settings.app_description,
        "theme_color": settings.theme_color,
        "background_color": settings.background_color,
        "display": settings.display,
        "scope": settings.scope,
        "start_url": settings.start_url,
        "icons": [
            {
                "src": settings.icon_src,
                "sizes": settings.icon_sizes,
                "type": settings.icon_type,
            }
        ],
    }


@dataclass(frozen=True)
class CachePolicy:
    """How the page's service worker caches and swaps builds."""

    register_type: str = "autoUpdate"
    skip_waiting: bool = True
    clients_claim: bool = True
    cleanup_outdated_caches: bool = True
    include_assets: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CachePolicy":
        return cls(
            register_type=settings.register_type,
            skip_waiting=settings.skip_waiting,
            clients_claim=settings.clients_claim,
            cleanup_outdated_caches=settings.cleanup_outdated_caches,
            include_assets=tuple(settings.include_assets),
        )


def service_worker_config(policy: CachePolicy, snapshot: BuildSnapshot) -> dict:
    config = asdict(policy)
    config["include_assets"] = list(policy.include_assets)
    config["version"] = snapshot.version
    config["precache"] = snapshot.manifest()
    return config
