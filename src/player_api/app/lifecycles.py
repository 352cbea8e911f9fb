"""FastAPI lifespan helpers for the Player application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import Lifespan
from sqlalchemy import text
from sqlalchemy.engine import make_url

from player_api.db import DatabaseConfig, db
from player_api.features.authorization.catalog import sync_catalog
from player_api.features.webhooks.runtime import WebhookRuntime
from player_api.settings import Settings

logger = logging.getLogger(__name__)


async def _check_schema() -> None:
    async with db.engine.connect() as conn:
        await conn.execute(text("SELECT 1 FROM alembic_version"))


async def _sync_catalog(settings: Settings) -> None:
    async with db.sessionmaker() as session:
        await sync_catalog(session, system_admin_ids=settings.seed_system_admin_ids)
        await session.commit()


def create_application_lifespan(
    *,
    settings: Settings,
) -> Lifespan[FastAPI]:
    """Return the FastAPI lifespan handler used by the app factory."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.settings = settings
        app.state.webhooks = None

        safe_url = make_url(settings.database_url).render_as_string(hide_password=True)
        logger.info("db.init.start", extra={"database_url": safe_url})
        db.init(DatabaseConfig.from_settings(settings))
        logger.info("db.init.complete", extra={"database_url": safe_url})

        try:
            # Fail fast if the schema hasn't been migrated.
            try:
                await _check_schema()
            except Exception as exc:
                logger.error("db.schema.missing", extra={"database_url": safe_url}, exc_info=True)
                raise RuntimeError(
                    "Database schema is not initialized. "
                    "Run `player-api migrate` before starting the API."
                ) from exc

            await _sync_catalog(settings)

            runtime: WebhookRuntime | None = None
            if settings.webhook_enabled:
                runtime = WebhookRuntime(settings=settings, sessionmaker=db.sessionmaker)
                await runtime.start()
            else:
                logger.warning("webhook.runtime.disabled")
            app.state.webhooks = runtime

            try:
                yield
            finally:
                if runtime is not None:
                    await runtime.stop()
                app.state.webhooks = None
        finally:
            await db.dispose()

    return lifespan


__all__ = ["create_application_lifespan"]
