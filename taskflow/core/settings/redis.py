"""Redis settings (dead-letter store)."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """Redis connection settings.

    Environment variables use REDIS_ prefix.
    Example: REDIS_URL="redis://localhost:6379/0"
    """

    redis_url: str | None = Field(
        default=None,
        alias="REDIS_URL",
        description="Redis connection URL. Leave empty to disable Redis-backed features.",
    )
    max_connections: int = Field(default=5, ge=1, le=100)
    socket_timeout: float = Field(default=5.0, gt=0, le=60.0)

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @property
    def is_configured(self) -> bool:
        """Check if a Redis URL is set."""
        return bool(self.redis_url)

    def get_url(self) -> str:
        """Return the Redis URL or raise if unset."""
        if not self.redis_url:
            raise ValueError("REDIS_URL is not configured")
        return self.redis_url
