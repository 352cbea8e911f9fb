"""Alembic helpers used by the CLI and the test-suite."""

from __future__ import annotations

import logging

from alembic import command
from alembic.config import Config

from player_api.common.logging import log_context
from player_api.settings import Settings

from .database import DatabaseConfig, build_sync_url

logger = logging.getLogger(__name__)


def alembic_config(settings: Settings) -> Config:
    """Alembic config pointing at the configured database and migrations."""

    config_path = settings.alembic_ini_path
    if not config_path.exists():
        msg = f"Alembic configuration not found at {config_path}"
        raise FileNotFoundError(msg)
    config = Config(str(config_path))
    config.attributes["configure_logger"] = False
    config.set_main_option("script_location", str(settings.alembic_migrations_dir))
    config.set_main_option(
        "sqlalchemy.url",
        build_sync_url(DatabaseConfig.from_settings(settings)).replace("%", "%%"),
    )
    return config


def run_migrations(settings: Settings, revision: str = "head") -> None:
    logger.info("db.migrate.start", extra=log_context(revision=revision))
    command.upgrade(alembic_config(settings), revision)
    logger.info("db.migrate.complete", extra=log_context(revision=revision))


__all__ = ["alembic_config", "run_migrations"]
