"""Process-wide webhook delivery runtime."""

from __future__ import annotations

import asyncio
import logging

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from player_api.settings import Settings

from .dispatcher import EventDispatcher
from .events import WebhookEvent
from .sender import SenderRegistry, Sleep, WebhookSender
from .token_cache import OAuthTokenCache

logger = logging.getLogger(__name__)


class WebhookRuntime:
    """Owns the HTTP client, token cache, sender registry and dispatcher.

    Built once in the application lifespan and kept on ``app.state``.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        sessionmaker: async_sessionmaker[AsyncSession],
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=settings.webhook_http_timeout.total_seconds()
        )
        self.token_cache = OAuthTokenCache(client=self.client)
        self.sender = WebhookSender(
            sessionmaker=sessionmaker,
            client=self.client,
            token_cache=self.token_cache,
            token_url=settings.oauth_token_url,
            backoff_initial=settings.webhook_backoff_initial,
            backoff_step=settings.webhook_backoff_step,
            backoff_max=settings.webhook_backoff_max,
            stall_alert_attempts=settings.webhook_stall_alert_attempts,
            sleep=sleep,
        )
        self.registry = SenderRegistry(sender=self.sender)
        self.dispatcher = EventDispatcher(sessionmaker=sessionmaker, registry=self.registry)

    def dispatch(self, event: WebhookEvent) -> None:
        self.dispatcher.dispatch(event)

    async def start(self) -> None:
        logger.info("webhook.runtime.start")
        await self.dispatcher.start()

    async def stop(self) -> None:
        await self.dispatcher.stop()
        await self.registry.close()
        if self._owns_client:
            await self.client.aclose()
        logger.info("webhook.runtime.stop")

    async def drain(self) -> None:
        """Wait for intake and every sender queue to go idle."""

        await self.dispatcher.join()
        await self.registry.join()


__all__ = ["WebhookRuntime"]
