"""Logging settings for the worker, the scheduler and the CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseSettings):
    """Where records go and how they are rendered.

    Environment variables use LOG_ prefix.
    Example: LOG_LEVEL=DEBUG LOG_JSON=false LOG_FILE_ENABLED=true
    """

    service_name: str = Field(default="taskflow", description="Static ``service`` field of JSON records")
    level: LogLevel = Field(default="INFO", description="Root logger level")
    json_logs: bool = Field(
        default=True,
        validation_alias=AliasChoices("LOG_JSON", "json"),
        description="JSON Lines output; plain text otherwise",
    )

    console_enabled: bool = Field(default=True, description="Write records to stderr")

    file_enabled: bool = Field(default=False, description="Also write records to a rotating file")
    file_path: Path = Field(default=Path("logs/taskflow.log.jsonl"))
    file_max_bytes: int = Field(default=10 * 1024 * 1024, ge=1024, le=1024**3)
    file_backup_count: int = Field(default=5, ge=0, le=100)

    include_context: bool = Field(
        default=True,
        description="Copy log_context() fields (job_id, task_id, ...) onto every record",
    )
    capture_warnings: bool = Field(default=True, description="Route the warnings module through logging")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        env_ignore_empty=True,
    )

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @property
    def effective_file_path(self) -> Path | None:
        """``file_path`` when file logging is enabled, else ``None``."""
        return self.file_path if self.file_enabled else None
