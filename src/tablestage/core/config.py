"""Configuration management.

Uses pydantic-settings for type-safe configuration from environment variables.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MEBIBYTE = 1024 * 1024


class Settings(BaseSettings):
    """Application settings.

    All settings can be overridden via environment variables.
    Prefix: TABLESTAGE_
    """

    model_config = SettingsConfigDict(
        env_prefix="TABLESTAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Collaborator API
    api_base_url: str = Field(
        default="http://localhost:8000/api",
        description="Base URL of the ingestion API (pattern matching, catalog, schema, upload)",
    )
    request_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout for catalog, pattern matching and schema detection calls",
    )
    upload_timeout_seconds: float = Field(
        default=600.0,
        description="Timeout for a single file upload",
    )

    # Admission limits
    max_files: int = Field(
        default=10,
        ge=1,
        description="Maximum number of files staged in one batch",
    )
    max_file_bytes: int = Field(
        default=300 * MEBIBYTE,
        ge=1,
        description="Maximum size of a single staged file in bytes",
    )

    # Upload
    max_concurrent_uploads: int = Field(
        default=10,
        ge=1,
        description="Upper bound on uploads in flight at once",
    )
    upload_chunk_bytes: int = Field(
        default=64 * 1024,
        ge=1,
        description="Read size used when streaming file content (one progress tick per chunk)",
    )

    # Catalog
    catalog_ttl_seconds: float | None = Field(
        default=None,
        description="Seconds before the dataset catalog is refetched (None = once per session)",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")  # 'json' or 'console'


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
