"""
Configuration and settings for the flashcard backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Firebase identity (client-exposed web app coordinates)
    firebase_api_key: Optional[str] = Field(default=None)
    firebase_auth_domain: Optional[str] = Field(default=None)
    firebase_project_id: Optional[str] = Field(default=None)
    firebase_storage_bucket: Optional[str] = Field(default=None)
    firebase_messaging_sender_id: Optional[str] = Field(default=None)
    firebase_app_id: Optional[str] = Field(default=None)
    # JSON file in web-config key names; takes precedence over the fields above.
    firebase_config_file: Optional[str] = Field(default=None)
    # Service account JSON; application default credentials when unset.
    firebase_credentials_path: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Built UI
    dist_dir: str = Field(default="dist")
    index_file: str = Field(default="index.html")
    mount_selector: str = Field(default="#app")

    # Update lifecycle
    update_check_interval_seconds: float = Field(default=60.0, ge=0)
    update_prompt_message: str = Field(
        default="Yeni içerik mevcut. Yenilemek ister misiniz?"
    )

    # Installable-app manifest
    app_name: str = Field(default="KPSS Bilgi Kartları")
    app_short_name: str = Field(default="KPSS Kartları")
    app_description: str = Field(
        default="KPSS Tarih, Coğrafya ve Vatandaşlık Çalışma Kartları"
    )
    theme_color: str = Field(default="#4f46e5")
    background_color: str = Field(default="#ffffff")
    display: str = Field(default="standalone")
    scope: str = Field(default="/")
    start_url: str = Field(default="/")
    icon_src: str = Field(default="pwa-icon.svg")
    icon_sizes: str = Field(default="192x192 512x512")
    icon_type: str = Field(default="image/svg+xml")

    # Offline cache policy
    register_type: str = Field(default="autoUpdate")
    skip_waiting: bool = Field(default=True)
    clients_claim: bool = Field(default=True)
    cleanup_outdated_caches: bool = Field(default=True)
    include_assets: list[str] = Field(
        default_factory=lambda: [
            "favicon.ico",
            "apple-touch-icon.png",
            "masked-icon.svg",
        ]
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
