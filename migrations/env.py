"""Alembic entry point for the Player API schema.

``player-api migrate`` hands over a config whose ``sqlalchemy.url`` already
points at the configured database; running ``alembic`` by hand falls back to
the ``PLAYER_*`` settings.
"""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import Connection, make_url

import player_api.models  # noqa: F401  (registers every table on the metadata)
from player_api.db.base import metadata
from player_api.db.database import DatabaseConfig, build_sync_url
from player_api.settings import get_settings

config = context.config

# The CLI sets up logging itself and switches the ini loggers off.
if config.config_file_name and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name)


def database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or build_sync_url(
        DatabaseConfig.from_settings(get_settings())
    )


def migration_options(url: str) -> dict:
    # SQLite can only alter tables by copying them.
    return {
        "target_metadata": metadata,
        "render_as_batch": make_url(url).get_backend_name() == "sqlite",
    }


def upgrade_with(connection: Connection, url: str) -> None:
    context.configure(connection=connection, **migration_options(url))
    with context.begin_transaction():
        context.run_migrations()


def emit_sql(url: str) -> None:
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **migration_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def upgrade_database(url: str) -> None:
    engine = create_engine(url, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            upgrade_with(connection, url)
    finally:
        engine.dispose()


if context.is_offline_mode():
    emit_sql(database_url())
else:
    upgrade_database(database_url())
