"""Service layer for the health module."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from player_api.common.logging import log_context
from player_api.features.webhooks.runtime import WebhookRuntime
from player_api.settings import Settings

from .schemas import HealthCheckResponse, HealthComponentStatus

logger = logging.getLogger(__name__)


class HealthService:
    """Compute health responses for readiness/liveness checks."""

    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        webhooks: WebhookRuntime | None = None,
    ) -> None:
        self._session = session
        self._settings = settings
        self._webhooks = webhooks

    async def status(self) -> HealthCheckResponse:
        components = [
            HealthComponentStatus(
                name="api",
                status="available",
                detail=f"v{self._settings.app_version}",
            ),
            await self._database_status(),
            self._webhook_status(),
        ]
        overall = "error" if any(c.status == "unavailable" for c in components) else "ok"
        if overall != "ok":
            logger.warning(
                "health.status.degraded",
                extra=log_context(
                    components=",".join(c.name for c in components if c.status != "available")
                ),
            )
        return HealthCheckResponse(
            status=overall,
            timestamp=datetime.now(tz=UTC),
            components=components,
        )

    async def _database_status(self) -> HealthComponentStatus:
        try:
            await self._session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.exception("health.database.failed")
            return HealthComponentStatus(name="database", status="unavailable", detail=str(exc))
        return HealthComponentStatus(name="database", status="available")

    def _webhook_status(self) -> HealthComponentStatus:
        if self._webhooks is None:
            return HealthComponentStatus(name="webhooks", status="degraded", detail="disabled")
        if not self._webhooks.dispatcher.running:
            return HealthComponentStatus(name="webhooks", status="unavailable", detail="stopped")
        return HealthComponentStatus(name="webhooks", status="available")
