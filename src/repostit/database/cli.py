"""
`repostit-migrate`: Alembic migrations for the Repostit schema.

The database URL comes from `REPOSTIT_DATABASE_URL` (see alembic/env.py), so
the same command migrates PostgreSQL in production and a SQLite file in
development.
"""

from pathlib import Path
from typing import Any

import click
from alembic import command
from alembic.config import Config

from repostit import __version__
from repostit.logging import configure_logging, get_logger

logger = get_logger(__name__)

# Source checkout root, used when alembic.ini is not in the working directory
PROJECT_DIR = Path(__file__).resolve().parents[3]


def find_alembic_ini(explicit: str | None = None) -> Path:
    if explicit:
        candidates = [Path(explicit)]
    else:
        candidates = [Path.cwd() / "alembic.ini", PROJECT_DIR / "alembic.ini"]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise click.ClickException(
        "alembic.ini not found (looked in: " + ", ".join(str(c) for c in candidates) + ")"
    )


def load_alembic_config(ini_path: Path) -> Config:
    config = Config(str(ini_path))
    # script_location in alembic.ini is relative to the ini file, not the cwd
    config.set_main_option("script_location", str(ini_path.parent / "alembic"))
    return config


def run_alembic(ctx: click.Context, name: str, *args: Any, **kwargs: Any) -> None:
    logger.info("Running migration command", command=name, args=args, **kwargs)
    try:
        getattr(command, name)(ctx.obj, *args, **kwargs)
    except Exception as e:
        logger.error("Migration command failed", command=name, error=str(e))
        raise click.ClickException(f"{name} failed: {e}") from e


@click.group()
@click.option("--config", "config_path", default=None, help="Path to alembic.ini")
@click.option("--debug", is_flag=True, default=False, help="Verbose console logging")
@click.version_option(version=__version__, prog_name="repostit-migrate")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, debug: bool) -> None:
    """Manage the Repostit database schema."""
    configure_logging(debug=debug)
    ctx.obj = load_alembic_config(find_alembic_ini(config_path))


@main.command()
@click.argument("revision", default="head")
@click.pass_context
def upgrade(ctx: click.Context, revision: str) -> None:
    """Apply migrations up to REVISION (default: head)."""
    run_alembic(ctx, "upgrade", revision)


@main.command()
@click.argument("revision", default="-1")
@click.pass_context
def downgrade(ctx: click.Context, revision: str) -> None:
    """Revert migrations down to REVISION (default: one step)."""
    run_alembic(ctx, "downgrade", revision)


@main.command()
@click.option("-m", "--message", required=True, help="Revision message")
@click.option("--autogenerate/--empty", default=True, help="Diff the models against the database")
@click.pass_context
def revision(ctx: click.Context, message: str, autogenerate: bool) -> None:
    """Create a migration script from the model changes."""
    run_alembic(ctx, "revision", message=message, autogenerate=autogenerate)


@main.command()
@click.pass_context
def current(ctx: click.Context) -> None:
    """Show the revision the database is at."""
    run_alembic(ctx, "current")


@main.command()
@click.pass_context
def history(ctx: click.Context) -> None:
    """List migration scripts."""
    run_alembic(ctx, "history")
