"""Programmatic Alembic API.

Runs Alembic commands in a worker thread so CLI commands can stay async,
and hands the project's engine to ``alembic/env.py`` through
``Config.attributes``.

Usage:
    from taskflow.infra.database.migrations import get_migration_commands

    commands = get_migration_commands()
    output = await commands.upgrade("head")
"""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from alembic import command
from alembic.config import Config

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[3]


@dataclass(slots=True)
class MigrationConfig:
    """Configuration for Alembic commands.

    Attributes:
        engine: SQLAlchemy async engine migrations run against
        script_location: Path to the alembic scripts directory
        compare_type: Enable type comparison in autogenerate
    """

    engine: AsyncEngine
    script_location: Path = PROJECT_ROOT / "alembic"
    compare_type: bool = True

    def get_alembic_config(self, output_buffer: io.StringIO | None = None) -> Config:
        ini_path = PROJECT_ROOT / "alembic.ini"
        config = Config(
            str(ini_path) if ini_path.exists() else None,
            stdout=output_buffer or io.StringIO(),
        )
        config.set_main_option("script_location", str(self.script_location))
        config.set_main_option("sqlalchemy.url", self.engine.url.render_as_string(hide_password=False))
        config.attributes["engine"] = self.engine
        config.attributes["compare_type"] = self.compare_type
        return config


class MigrationCommands:
    """Async wrappers around ``alembic.command``."""

    def __init__(self, config: MigrationConfig) -> None:
        self.config = config

    async def upgrade(self, revision: str = "head", *, sql: bool = False) -> str:
        """Upgrade the database to ``revision`` (default: latest)."""
        logger.info("Upgrading database", extra={"revision": revision})
        output = io.StringIO()
        alembic_config = self.config.get_alembic_config(output)
        await asyncio.to_thread(command.upgrade, alembic_config, revision, sql=sql)
        return output.getvalue()

    async def downgrade(self, revision: str = "-1", *, sql: bool = False) -> str:
        logger.info("Downgrading database", extra={"revision": revision})
        output = io.StringIO()
        alembic_config = self.config.get_alembic_config(output)
        await asyncio.to_thread(command.downgrade, alembic_config, revision, sql=sql)
        return output.getvalue()

    async def current(self, *, verbose: bool = False) -> str:
        output = io.StringIO()
        alembic_config = self.config.get_alembic_config(output)
        await asyncio.to_thread(command.current, alembic_config, verbose=verbose)
        return output.getvalue()

    async def revision(self, message: str, *, autogenerate: bool = True) -> str:
        """Create a new migration script."""
        output = io.StringIO()
        alembic_config = self.config.get_alembic_config(output)
        await asyncio.to_thread(command.revision, alembic_config, message=message, autogenerate=autogenerate)
        return output.getvalue()


def get_migration_commands(engine: AsyncEngine | None = None) -> MigrationCommands:
    """MigrationCommands bound to ``engine`` (default: the process-wide engine)."""
    from taskflow.infra.database.session import get_engine

    return MigrationCommands(MigrationConfig(engine=engine or get_engine()))
