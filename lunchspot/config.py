"""
Configuration and settings for the lunch spot backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Signs tokens anyone can forge; only for local development.
DEV_JWT_SECRET = "dev-only-secret-change-me-in-production"


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Database (any SQLAlchemy URL; unset means in-memory)
    database_url: Optional[str] = Field(default=None)
    use_in_memory_backends: bool = Field(default=False)

    # Auth
    jwt_secret: str = Field(default=DEV_JWT_SECRET)
    jwt_algorithm: str = Field(default="HS256")
    token_ttl_days: int = Field(default=7, ge=1)
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # Cards
    card_list_limit: int = Field(default=50, ge=1)

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5000"]
    )
    static_dir: str = Field(default="public")

    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
