"""
Configuration and settings for the travel journal backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="")
    public_base_url: str = Field(default="http://localhost:8000")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")

    # Database (any SQLAlchemy URL; Postgres expected in production)
    database_url: Optional[str] = Field(default=None)

    # Tokens and passwords
    access_token_secret: Optional[SecretStr] = Field(default=None)
    access_token_algorithm: str = Field(default="HS256")
    access_token_ttl_hours: int = Field(default=72, ge=1)
    password_hash_rounds: int = Field(default=10, ge=4, le=31)

    # Local blob storage and static assets
    uploads_dir: str = Field(default="uploads")
    assets_dir: str = Field(default="assets")
    placeholder_image: str = Field(default="placeholder.png")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, ge=1)

    # S3-compatible storage (Tencent COS, MinIO, AWS)
    cos_endpoint: Optional[str] = Field(default=None)
    cos_region: Optional[str] = Field(default=None)
    cos_bucket: Optional[str] = Field(default=None)
    cos_public_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    @property
    def placeholder_image_url(self) -> str:
        return f"{self.public_base_url.rstrip('/')}/assets/{self.placeholder_image}"

    @property
    def uploads_base_url(self) -> str:
        return f"{self.public_base_url.rstrip('/')}/uploads"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
