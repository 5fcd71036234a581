"""
Configuration and settings for the entry sync service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="")

    # Entry store (Postgres expected, any SQLAlchemy URL with ON CONFLICT support)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    # Firebase service account used to verify ID tokens
    firebase_project_id: Optional[str] = Field(
        default=None, alias="FIREBASE_PROJECT_ID"
    )
    firebase_client_email: Optional[str] = Field(
        default=None, alias="FIREBASE_CLIENT_EMAIL"
    )
    firebase_private_key: Optional[str] = Field(
        default=None, alias="FIREBASE_PRIVATE_KEY"
    )
    firebase_credentials_path: str = Field(
        default="serviceAccountKey.json", alias="FIREBASE_CREDENTIALS_PATH"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, alias="ENTRY_SYNC_USE_IN_MEMORY_BACKENDS"
    )
    # JSON object mapping bearer tokens to user ids; replaces Firebase when set.
    static_tokens: Optional[dict[str, str]] = Field(
        default=None, alias="ENTRY_SYNC_STATIC_TOKENS"
    )

    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=4000, alias="PORT")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
