#!/usr/bin/env python3
"""
Main CLI entry point for the Repostit server.
"""

import asyncio
import os
import sys

import click
import uvicorn

from repostit import __version__
from repostit.logging import configure_logging, get_logger

logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="repostit")
def cli() -> None:
    """Repostit CLI - run the server and manage development data."""
    pass


@cli.command()
@click.option("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
@click.option("--port", default=4000, type=int, help="Port to bind to (default: 4000)")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development")
@click.option(
    "--workers", default=1, type=int, help="Number of worker processes (default: 1)"
)
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level (default: info)",
)
def serve(host: str, port: int, reload: bool, workers: int, log_level: str) -> None:
    """Start the Repostit API server."""
    configure_logging(debug=(log_level == "debug"))

    logger.info(
        "Starting Repostit API server",
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level,
    )

    # Settings are read at import, so export them before the app module loads
    if log_level == "debug":
        os.environ["REPOSTIT_DEBUG"] = "true"
        os.environ["REPOSTIT_LOG_LEVEL"] = "debug"
    else:
        os.environ.setdefault("REPOSTIT_DEBUG", "false")
        os.environ.setdefault("REPOSTIT_LOG_LEVEL", log_level)

    if workers > 1 and os.getenv("REPOSTIT_SESSION_BACKEND", "redis") == "memory":
        raise click.UsageError("The memory session backend cannot be shared between workers")

    try:
        if reload or workers > 1:
            uvicorn.run(
                "repostit.api.app:app",
                host=host,
                port=port,
                reload=reload,
                workers=(workers if not reload else 1),
                log_level=log_level,
                access_log=True,
            )
        else:
            from repostit.api.app import app

            uvicorn.run(app, host=host, port=port, log_level=log_level, access_log=True)
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.error("Server startup failed", error=str(e))
        sys.exit(1)


@cli.command("init-db")
def init_db() -> None:
    """Create all tables directly from the models (use migrations in production)."""
    from repostit.database.connection import create_all

    configure_logging(debug=False)
    asyncio.run(create_all())
    click.echo("Tables created")


@cli.command()
@click.option("--creator-id", required=True, type=int, help="User that will own the posts")
@click.option("--count", default=100, type=int, help="Number of posts (default: 100)")
@click.option("--seed", default=None, type=int, help="Random seed for repeatable data")
def seed(creator_id: int, count: int, seed: int | None) -> None:
    """Insert sample posts for a development feed."""
    from repostit.database.connection import get_async_session
    from repostit.database.seed_data import seed_posts

    configure_logging(debug=False)

    async def _run() -> int:
        async with get_async_session() as session:
            return await seed_posts(session, creator_id=creator_id, count=count, seed=seed)

    try:
        inserted = asyncio.run(_run())
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Inserted {inserted} posts")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
