"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (unset -> in-memory repository)
    database_url: str | None = None

    # Logging
    log_level: str = "INFO"

    # Extraction collaborator
    openai_api_key: SecretStr | None = None
    extraction_model: str = "gpt-4o"
    extraction_timeout_sec: float = 60.0
    extraction_max_tokens: int = 4096

    # Upload guard
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_mime_types: list[str] = [
        "image/jpeg",
        "image/png",
        "image/webp",
        "application/pdf",
    ]

    # Image normalization
    image_max_dimension: int = 2048
    jpeg_quality: int = 85

    # Raw upload storage, served back by the preview endpoint
    upload_dir: str = "uploads"

    # Stats placeholder (not measured)
    avg_process_time_placeholder: str = "2.4s"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
