"""Task dispatch configuration settings.

This module provides settings for the job queue, the worker's retry and
fan-out limits, the overdue scan schedule, and the dead-letter store.

Environment variables use TASK_ prefix.
Example: TASK_OVERDUE_SCAN_CRON="*/15 * * * *"
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._sanitizers import sanitize_inline_numeric, strip_inline_comment


class TaskSettings(BaseSettings):
    """Job queue, worker and scanner configuration.

    Environment variables use TASK_ prefix.
    Example: TASK_MAX_RETRIES=5
    """

    # ──────────────────────────────────────────────────────────────
    # Queue
    # ──────────────────────────────────────────────────────────────

    queue_name: str = Field(
        default="task-processing",
        min_length=1,
        max_length=100,
        pattern=r"^[a-zA-Z0-9_.:-]+$",
        description="Logical queue (taskiq task) name shared by producers and the worker",
    )

    max_retries: int = Field(
        default=3,
        ge=0,
        le=50,
        description="Maximum redeliveries of a job whose handler raised",
    )

    # ──────────────────────────────────────────────────────────────
    # Worker
    # ──────────────────────────────────────────────────────────────

    notification_concurrency: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Maximum concurrent overdue notifications per job",
    )

    # ──────────────────────────────────────────────────────────────
    # Overdue scanner
    # ──────────────────────────────────────────────────────────────

    overdue_scan_enabled: bool = Field(
        default=True,
        description="Register the overdue scan with the scheduler",
    )

    overdue_scan_cron: str = Field(
        default="0 * * * *",
        min_length=9,
        description="Crontab expression (5 fields) for the overdue scan",
    )

    # ──────────────────────────────────────────────────────────────
    # Dead-letter store
    # ──────────────────────────────────────────────────────────────

    dead_letter_enabled: bool = Field(
        default=True,
        description="Record unroutable jobs in Redis (requires REDIS_URL)",
    )

    dead_letter_retention_hours: int = Field(
        default=168,  # 7 days
        ge=1,
        le=720,
        description="How long dead-letter entries are retained (hours)",
    )

    dead_letter_key_prefix: str = Field(
        default="taskflow:dlq",
        min_length=1,
        max_length=50,
        pattern=r"^[a-zA-Z0-9_:-]+$",
        description="Redis key prefix for dead-letter entries",
    )

    model_config = SettingsConfigDict(
        env_prefix="TASK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator("max_retries", "notification_concurrency", "dead_letter_retention_hours", mode="before")
    @classmethod
    def _strip_numeric_comments(cls, value: Any) -> Any:
        return sanitize_inline_numeric(value)

    @field_validator("overdue_scan_cron", mode="before")
    @classmethod
    def _validate_cron(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = strip_inline_comment(value)
            if len(value.split()) != 5:
                msg = f"overdue_scan_cron must have 5 fields, got {value!r}"
                raise ValueError(msg)
        return value

    @property
    def dead_letter_ttl_seconds(self) -> int:
        """Retention period in seconds."""
        return self.dead_letter_retention_hours * 3600
