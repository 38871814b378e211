"""
Configuration and settings for the scholarship backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="")

    # Document store (MongoDB)
    mongodb_uri: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("MONGODB_URI", "mongodb_uri")
    )
    mongodb_db_name: str = Field(default="elevate_scholarship")

    # Firebase Authentication; the service key is a base64-encoded JSON blob.
    firebase_service_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("FB_SERVICE_KEY", "firebase_service_key"),
    )
    firebase_credentials_path: Optional[str] = Field(default=None)

    # Stripe Checkout
    stripe_secret_key: Optional[str] = Field(default=None)
    stripe_currency: str = Field(default="usd")
    client_domain: str = Field(default="http://localhost:5173")

    page_size: int = Field(default=10, ge=1)
    log_level: str = Field(default="INFO")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "ELEVATE_USE_IN_MEMORY_BACKENDS", "use_in_memory_backends"
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
