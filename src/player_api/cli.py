"""`player-api` command line interface."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer

from player_api.settings import get_settings

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Player API service commands.",
)


@app.command()
def start(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "0.0.0.0",
    port: Annotated[int, typer.Option(help="Port to listen on.")] = 4300,
    reload: Annotated[bool, typer.Option(help="Reload on code changes.")] = False,
) -> None:
    """Serve the API with uvicorn."""

    import uvicorn

    uvicorn.run("player_api.main:app", host=host, port=port, reload=reload, log_config=None)


@app.command()
def migrate(
    revision: Annotated[str, typer.Argument(help="Target revision.")] = "head",
) -> None:
    """Apply database migrations."""

    from player_api.common.logging import setup_logging
    from player_api.db.migrations import run_migrations

    settings = get_settings()
    setup_logging(settings)
    typer.echo(f"-> upgrading database to {revision}", err=True)
    run_migrations(settings, revision)


@app.command("sync-catalog")
def sync_catalog_command() -> None:
    """Seed built-in permissions and roles."""

    from player_api.common.logging import setup_logging
    from player_api.db import DatabaseConfig, db
    from player_api.features.authorization.catalog import sync_catalog

    settings = get_settings()
    setup_logging(settings)

    async def _run() -> None:
        db.init(DatabaseConfig.from_settings(settings))
        try:
            async with db.sessionmaker() as session:
                await sync_catalog(session, system_admin_ids=settings.seed_system_admin_ids)
                await session.commit()
        finally:
            await db.dispose()

    asyncio.run(_run())
    typer.echo("-> catalog synchronized", err=True)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
