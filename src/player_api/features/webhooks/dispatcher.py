"""Fan-out of domain events into durable pending deliveries."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from player_api.common.logging import log_context
from player_api.models import (
    EventType,
    PendingEvent,
    WebhookSubscription,
    WebhookSubscriptionEventType,
)

from .events import WebhookEvent
from .sender import SenderRegistry

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Single-consumer intake queue in front of the per-subscription senders.

    Events handed to :meth:`dispatch` are processed one at a time in
    submission order. Once the PendingEvent rows are committed, delivery is
    retried until it succeeds, across restarts.
    """

    def __init__(
        self,
        *,
        sessionmaker: async_sessionmaker[AsyncSession],
        registry: SenderRegistry,
    ) -> None:
        self._sessionmaker = sessionmaker
        self._registry = registry
        self._queue: asyncio.Queue[WebhookEvent] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def dispatch(self, event: WebhookEvent) -> None:
        """Queue ``event`` for fan-out without waiting for it."""

        self._queue.put_nowait(event)
        logger.debug(
            "webhook.dispatch.queued",
            extra=log_context(event_id=event.id, event_type=event.type),
        )

    async def start(self) -> None:
        if self.running:
            return
        await self.recover()
        self._task = asyncio.create_task(self._consume(), name="webhook-dispatcher")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def join(self) -> None:
        """Wait until every queued event has been fanned out."""

        await self._queue.join()

    async def recover(self) -> int:
        """Re-enqueue every stored PendingEvent, oldest first."""

        async with self._sessionmaker() as session:
            result = await session.execute(
                select(PendingEvent.id, PendingEvent.subscription_id).order_by(
                    PendingEvent.timestamp, PendingEvent.id
                )
            )
            rows = result.all()

        for pending_event_id, subscription_id in rows:
            self._registry.enqueue(subscription_id, pending_event_id)

        logger.info("webhook.recovery.complete", extra=log_context(count=len(rows)))
        return len(rows)

    async def process(self, event: WebhookEvent) -> list[PendingEvent]:
        """Persist one PendingEvent per matching subscription, then hand them off."""

        event_type = EventType(event.type)
        payload = event.model_dump_json()

        async with self._sessionmaker() as session:
            result = await session.execute(
                select(WebhookSubscription.id)
                .join(
                    WebhookSubscriptionEventType,
                    WebhookSubscriptionEventType.subscription_id == WebhookSubscription.id,
                )
                .where(WebhookSubscriptionEventType.event_type == event_type)
                .order_by(WebhookSubscription.id)
            )
            subscription_ids = list(result.scalars().all())
            if not subscription_ids:
                logger.debug(
                    "webhook.dispatch.no_subscribers",
                    extra=log_context(event_id=event.id, event_type=event_type.value),
                )
                return []

            pending = [
                PendingEvent(
                    event_type=event_type,
                    timestamp=event.timestamp,
                    subscription_id=subscription_id,
                    payload=payload,
                )
                for subscription_id in subscription_ids
            ]
            session.add_all(pending)
            await session.commit()

        for row in pending:
            self._registry.enqueue(row.subscription_id, row.id)

        logger.info(
            "webhook.dispatch.success",
            extra=log_context(
                event_id=event.id,
                event_type=event_type.value,
                subscriptions=len(pending),
            ),
        )
        return pending

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.process(event)
            except Exception:
                logger.exception(
                    "webhook.dispatch.failed",
                    extra=log_context(event_id=event.id, event_type=event.type),
                )
            finally:
                self._queue.task_done()


__all__ = ["EventDispatcher"]
