"""Database connection settings.

Either a full ``DATABASE_URL`` or the ``DB_*`` components. A postgres URL
is split into the components, so logs and the CLI can show the target
without the password. Any other URL (``sqlite+aiosqlite:///./local.db``)
is used verbatim.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

from ._sanitizers import sanitize_inline_numeric


class PostgresSettings(BaseSettings):
    """Connection target and pool sizing for the task store.

    Environment variables use DB_ prefix (the URL itself is DATABASE_URL).
    Example: DATABASE_URL="postgresql+psycopg://app:secret@db:5432/taskflow"
    """

    dsn: str | None = Field(default=None, alias="DATABASE_URL")

    host: str = Field(default="localhost", min_length=1, max_length=255)
    port: int = Field(default=5432, ge=1, le=65535)
    user: str = Field(default="postgres", min_length=1, max_length=100)
    password: SecretStr = Field(default=SecretStr("postgres"))
    name: str = Field(default="taskflow", min_length=1, max_length=100)
    driver: str = Field(default="psycopg", description="Async SQLAlchemy driver")
    application_name: str = Field(default="taskflow", max_length=64)

    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=10, ge=0, le=100)
    pool_timeout: float = Field(default=30.0, gt=0, le=300.0)
    pool_recycle: int = Field(default=1800, ge=-1, description="Seconds; -1 disables recycling")
    pool_pre_ping: bool = True
    echo: bool = Field(default=False, description="Log every SQL statement")

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator("pool_size", "max_overflow", "pool_recycle", mode="before")
    @classmethod
    def _strip_comments(cls, value: Any) -> Any:
        return sanitize_inline_numeric(value)

    @model_validator(mode="after")
    def _split_postgres_dsn(self) -> PostgresSettings:
        if not self.dsn or not self.dsn.startswith("postgres"):
            return self
        parsed = make_url(self.dsn)
        components = {
            "host": parsed.host,
            "port": parsed.port,
            "user": parsed.username,
            "password": SecretStr(parsed.password) if parsed.password else None,
            "name": parsed.database,
            "driver": parsed.get_driver_name() if "+" in parsed.drivername else None,
        }
        # The model is frozen; validators write through object.__setattr__.
        for field, value in components.items():
            if value:
                object.__setattr__(self, field, value)
        return self

    @property
    def url(self) -> str:
        """Async SQLAlchemy URL, password included."""
        if self.dsn and not self.dsn.startswith("postgres"):
            return self.dsn
        return URL.create(
            f"postgresql+{self.driver}",
            username=self.user,
            password=self.password.get_secret_value(),
            host=self.host,
            port=self.port,
            database=self.name,
            query={"application_name": self.application_name},
        ).render_as_string(hide_password=False)

    @property
    def is_configured(self) -> bool:
        return bool(self.dsn or self.host)

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def sqlalchemy_engine_kwargs(self) -> dict[str, Any]:
        """``create_async_engine`` keyword arguments; SQLite gets no pool sizing."""
        if self.is_sqlite:
            return {"echo": self.echo}
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_recycle": self.pool_recycle,
            "pool_pre_ping": self.pool_pre_ping,
            "echo": self.echo,
        }

    def get_sqlalchemy_url(self) -> str:
        return self.url
