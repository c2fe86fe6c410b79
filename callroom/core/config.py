"""Application configuration for the call room service."""
from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_env: str = Field(default="development")
    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])

    daily_api_key: str = Field(default="")
    daily_domain: str = Field(default="")
    daily_api_url: str = Field(default="https://api.daily.co/v1")
    daily_http_timeout: float | None = Field(default=None, gt=0)

    room_ttl_seconds: int = Field(default=3600, ge=60)
    room_max_participants: int = Field(default=20, ge=1)
    default_user_name: str = Field(default="Guest")

    public_base_url: str = Field(default="http://localhost:3000")
    call_mount_point: str = Field(default="call-container")

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        """Allow comma-separated env values for CORS origins."""

        if isinstance(value, str):
            parts = [item.strip() for item in value.split(",") if item.strip()]
            return parts
        return value


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()
