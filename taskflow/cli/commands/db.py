"""Database management commands.

Example:
    # Apply all pending migrations
    taskflow db upgrade

    # Create tables directly (local SQLite runs)
    taskflow db create-tables
"""

import sys

import click

from taskflow.cli.utils import coro, error, info, success


@click.group(name="db")
def db() -> None:
    """Database management commands."""


@db.command()
@coro
async def init() -> None:
    """Verify database connectivity."""
    from taskflow.core.settings import get_db_settings
    from taskflow.infra.database import close_database, init_database

    db_settings = get_db_settings()
    info(f"Connecting to: {db_settings.url.split('@')[-1]}")
    try:
        await init_database()
        success("Database connected successfully!")
    except Exception as e:
        error(f"Failed to connect to database: {e}")
        sys.exit(1)
    finally:
        await close_database()


@db.command(name="create-tables")
@coro
async def create_tables_cmd() -> None:
    """Create all tables without running migrations."""
    from taskflow.infra.database import close_database, create_tables

    try:
        await create_tables()
        success("Tables created")
    except Exception as e:
        error(f"Failed to create tables: {e}")
        sys.exit(1)
    finally:
        await close_database()


@db.command()
@click.option("--revision", default="head", help="Target revision (default: head)")
@click.option("--sql/--no-sql", default=False, help="Output SQL without executing")
@coro
async def upgrade(revision: str, sql: bool) -> None:
    """Apply database migrations."""
    from taskflow.infra.database.migrations import get_migration_commands

    info(f"Upgrading database to: {revision}")
    try:
        output = await get_migration_commands().upgrade(revision, sql=sql)
        if output:
            click.echo(output)
        if not sql:
            success("Database upgraded successfully!")
    except Exception as e:
        error(f"Failed to upgrade database: {e}")
        sys.exit(1)


@db.command()
@click.option("--revision", default="-1", help="Target revision (default: one step back)")
@coro
async def downgrade(revision: str) -> None:
    """Revert database migrations."""
    from taskflow.infra.database.migrations import get_migration_commands

    if not click.confirm(f"Downgrade database to {revision}?"):
        info("Aborted")
        return
    try:
        output = await get_migration_commands().downgrade(revision)
        if output:
            click.echo(output)
        success("Database downgraded")
    except Exception as e:
        error(f"Failed to downgrade database: {e}")
        sys.exit(1)


@db.command()
@coro
async def current() -> None:
    """Show the current migration revision."""
    from taskflow.infra.database.migrations import get_migration_commands

    try:
        output = await get_migration_commands().current(verbose=True)
        click.echo(output or "No revision applied")
    except Exception as e:
        error(f"Failed to read current revision: {e}")
        sys.exit(1)


@db.command()
@click.option("-m", "--message", required=True, help="Migration message")
@click.option("--autogenerate/--no-autogenerate", default=True, help="Compare models to the database")
@coro
async def migrate(message: str, autogenerate: bool) -> None:
    """Create a new migration."""
    from taskflow.infra.database.migrations import get_migration_commands

    try:
        output = await get_migration_commands().revision(message, autogenerate=autogenerate)
        if output:
            click.echo(output)
        success("Migration created")
    except Exception as e:
        error(f"Failed to create migration: {e}")
        sys.exit(1)
