"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from recycling_assistant.adapters.csv_catalog_repository import DEFAULT_CATALOG_PATH

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

KNOWN_VISION_PROVIDERS = ("google-vision", "clarifai", "openai-vision")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    google_vision_api_key: str | None = None
    openai_api_key: str | None = None
    clarifai_pat: str | None = None
    openai_model: str = "gpt-4o-mini"
    vision_provider_order: str = ",".join(KNOWN_VISION_PROVIDERS)
    vision_timeout_seconds: float = 15.0
    vision_retry_attempts: int = 1
    vision_retry_delay_seconds: float = 0.5
    cache_max_entries: int = 100
    cache_ttl_seconds: int = 3600
    cache_fingerprint_chars: int = 1000
    rate_limit_requests: int = 10
    rate_limit_window_seconds: int = 60
    daily_request_limit: int = 1000
    sweep_interval_seconds: int = 60
    max_image_bytes: int = 4 * 1024 * 1024
    catalog_path: Path = DEFAULT_CATALOG_PATH
    admin_token: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_provider_order(raw: str | None) -> list[str]:
    """Parse the comma-separated vision provider order from env."""
    if raw is None:
        return list(KNOWN_VISION_PROVIDERS)
    order: list[str] = []
    for chunk in raw.split(","):
        value = chunk.strip().lower()
        if value in KNOWN_VISION_PROVIDERS and value not in order:
            order.append(value)
    return order or list(KNOWN_VISION_PROVIDERS)
