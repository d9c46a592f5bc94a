"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files.
"""

import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Bearer token (required - the service refuses to start without it)
    auth_token: str = Field(..., min_length=1)

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    # Uploads and extraction
    max_upload_bytes: int = Field(default=MAX_UPLOAD_BYTES, gt=0)
    temp_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))
    extraction_timeout_seconds: float = Field(default=30.0, gt=0)
    provider_max_threads: int = Field(default=8, gt=0)

    cors_origins: list[str] = ["*"]

    model_config = SettingsConfigDict(
        # Load from .env file in the package directory
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.

    Raises:
        pydantic.ValidationError: If AUTH_TOKEN is missing or empty.
    """
    return Settings()
