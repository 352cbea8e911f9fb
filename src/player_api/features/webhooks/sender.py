"""Per-subscription ordered webhook delivery with retry and backoff."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from uuid import UUID

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from player_api.common.logging import log_context
from player_api.models import PendingEvent, WebhookSubscription

from .token_cache import OAuthTokenCache

logger = logging.getLogger(__name__)

SUCCESS_STATUS_CODES = frozenset({200, 202})
EVICT_TOKEN_STATUS_CODES = frozenset({401, 403})

TOKEN_UNAVAILABLE_ERROR = "Unable to acquire an access token from the token endpoint"

Sleep = Callable[[float], Awaitable[None]]


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    EVENT_GONE = "event_gone"
    SUBSCRIPTION_GONE = "subscription_gone"
    RETRY = "retry"


@dataclass(frozen=True, slots=True)
class DeliveryTarget:
    """Everything one attempt needs, copied out of the database."""

    pending_event_id: UUID
    subscription_id: UUID
    callback_uri: str
    client_id: str
    client_secret: str
    payload: str


class Backoff:
    """Linear backoff: ``initial``, ``initial + step``, ... capped at ``maximum``."""

    def __init__(self, *, initial: timedelta, step: timedelta, maximum: timedelta) -> None:
        self._current = initial.total_seconds()
        self._step = step.total_seconds()
        self._maximum = maximum.total_seconds()

    def next_delay(self) -> float:
        delay = min(self._current, self._maximum)
        self._current = min(self._current + self._step, self._maximum)
        return delay


class WebhookSender:
    """Delivers one pending event until the callback accepts it.

    No database session is held across the token request or the callback
    POST; each attempt reads its target in one short session and records the
    result in another.
    """

    def __init__(
        self,
        *,
        sessionmaker: async_sessionmaker[AsyncSession],
        client: httpx.AsyncClient,
        token_cache: OAuthTokenCache,
        token_url: str | None,
        backoff_initial: timedelta = timedelta(seconds=5),
        backoff_step: timedelta = timedelta(seconds=5),
        backoff_max: timedelta = timedelta(seconds=60),
        stall_alert_attempts: int = 10,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._sessionmaker = sessionmaker
        self._client = client
        self._token_cache = token_cache
        self._token_url = token_url
        self._backoff_initial = backoff_initial
        self._backoff_step = backoff_step
        self._backoff_max = backoff_max
        self._stall_alert_attempts = stall_alert_attempts
        self._sleep = sleep

    async def send(self, pending_event_id: UUID) -> DeliveryOutcome:
        """Retry delivery of ``pending_event_id`` until it is delivered or gone.

        There is no retry limit. Every ``stall_alert_attempts`` consecutive
        failures a ``webhook.delivery.stalled`` warning is logged.
        """

        backoff = Backoff(
            initial=self._backoff_initial,
            step=self._backoff_step,
            maximum=self._backoff_max,
        )
        failures = 0
        while True:
            try:
                outcome = await self._attempt(pending_event_id)
            except Exception:
                logger.exception(
                    "webhook.delivery.error",
                    extra=log_context(event_id=pending_event_id),
                )
                outcome = DeliveryOutcome.RETRY
            if outcome is not DeliveryOutcome.RETRY:
                return outcome

            failures += 1
            if failures % self._stall_alert_attempts == 0:
                logger.warning(
                    "webhook.delivery.stalled",
                    extra=log_context(event_id=pending_event_id, attempts=failures),
                )
            delay = backoff.next_delay()
            logger.debug(
                "webhook.delivery.retry_scheduled",
                extra=log_context(event_id=pending_event_id, attempt=failures, delay_seconds=delay),
            )
            await self._sleep(delay)

    async def subscription_exists(self, subscription_id: UUID) -> bool:
        async with self._sessionmaker() as session:
            return await session.get(WebhookSubscription, subscription_id) is not None

    async def _attempt(self, pending_event_id: UUID) -> DeliveryOutcome:
        target = await self._load(pending_event_id)
        if isinstance(target, DeliveryOutcome):
            return target

        context = log_context(subscription_id=target.subscription_id, event_id=pending_event_id)

        token = None
        if self._token_url:
            token = await self._token_cache.get_token(
                target.client_id, target.client_secret, self._token_url
            )
        if token is None:
            logger.warning("webhook.delivery.failed", extra={**context, "reason": "token"})
            return await self._record_failure(target, TOKEN_UNAVAILABLE_ERROR)

        try:
            response = await self._client.post(
                target.callback_uri,
                content=target.payload,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "webhook.delivery.failed",
                extra={**context, "reason": "transport", "error": str(exc)},
            )
            return await self._record_failure(
                target, f"Error sending message to callback endpoint: {exc}"
            )

        if response.status_code in SUCCESS_STATUS_CODES:
            await self._record_success(target)
            logger.info(
                "webhook.delivery.success",
                extra={**context, "status_code": response.status_code},
            )
            return DeliveryOutcome.DELIVERED

        if response.status_code in EVICT_TOKEN_STATUS_CODES:
            self._token_cache.evict(target.client_id)
        logger.warning(
            "webhook.delivery.failed",
            extra={**context, "reason": "status", "status_code": response.status_code},
        )
        return await self._record_failure(
            target, f"Callback endpoint returned status code {response.status_code}"
        )

    async def _load(self, pending_event_id: UUID) -> DeliveryTarget | DeliveryOutcome:
        async with self._sessionmaker() as session:
            pending = await session.get(PendingEvent, pending_event_id)
            if pending is None:
                logger.debug("webhook.delivery.gone", extra=log_context(event_id=pending_event_id))
                return DeliveryOutcome.EVENT_GONE
            subscription = await session.get(WebhookSubscription, pending.subscription_id)
            if subscription is None:
                logger.debug(
                    "webhook.delivery.subscription_gone",
                    extra=log_context(
                        event_id=pending_event_id,
                        subscription_id=pending.subscription_id,
                    ),
                )
                return DeliveryOutcome.SUBSCRIPTION_GONE
            return DeliveryTarget(
                pending_event_id=pending.id,
                subscription_id=subscription.id,
                callback_uri=subscription.callback_uri,
                client_id=subscription.client_id,
                client_secret=subscription.client_secret,
                payload=pending.payload,
            )

    async def _record_success(self, target: DeliveryTarget) -> None:
        async with self._sessionmaker() as session:
            pending = await session.get(PendingEvent, target.pending_event_id)
            if pending is not None:
                await session.delete(pending)
            subscription = await session.get(WebhookSubscription, target.subscription_id)
            if subscription is not None:
                subscription.last_error = None
            await session.commit()

    async def _record_failure(self, target: DeliveryTarget, error: str) -> DeliveryOutcome:
        """Store ``error`` on the subscription unless the delivery vanished meanwhile."""

        async with self._sessionmaker() as session:
            subscription = await session.get(WebhookSubscription, target.subscription_id)
            if subscription is None:
                return DeliveryOutcome.SUBSCRIPTION_GONE
            if await session.get(PendingEvent, target.pending_event_id) is None:
                return DeliveryOutcome.EVENT_GONE
            subscription.last_error = error
            await session.commit()
        return DeliveryOutcome.RETRY


class SenderRegistry:
    """One FIFO queue and one worker task per subscription.

    A worker that dies mid-delivery is restarted on the next enqueue and
    resumes with the event it was sending. Workers whose subscription has
    been deleted exit once their queue is drained.
    """

    def __init__(self, *, sender: WebhookSender) -> None:
        self._sender = sender
        self._queues: dict[UUID, asyncio.Queue[UUID]] = {}
        self._workers: dict[UUID, asyncio.Task[None]] = {}
        self._in_flight: dict[UUID, UUID] = {}

    def __contains__(self, subscription_id: UUID) -> bool:
        return subscription_id in self._queues

    def get_or_create_queue(self, subscription_id: UUID) -> asyncio.Queue[UUID]:
        queue = self._queues.get(subscription_id)
        if queue is None:
            queue = asyncio.Queue()
            self._queues[subscription_id] = queue

        worker = self._workers.get(subscription_id)
        if worker is None or worker.done():
            if worker is not None:
                error = None if worker.cancelled() else worker.exception()
                logger.warning(
                    "webhook.sender.restarted",
                    extra=log_context(
                        subscription_id=subscription_id,
                        resumed_event_id=self._in_flight.get(subscription_id),
                        error=repr(error) if error is not None else None,
                    ),
                )
            self._workers[subscription_id] = asyncio.create_task(
                self._run(subscription_id, queue),
                name=f"webhook-sender-{subscription_id}",
            )
        return queue

    def enqueue(self, subscription_id: UUID, pending_event_id: UUID) -> None:
        self.get_or_create_queue(subscription_id).put_nowait(pending_event_id)

    async def join(self) -> None:
        """Wait until every queued event has been handled."""

        for queue in list(self._queues.values()):
            await queue.join()

    async def close(self) -> None:
        workers = list(self._workers.values())
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        self._workers.clear()
        self._queues.clear()
        self._in_flight.clear()

    async def _run(self, subscription_id: UUID, queue: asyncio.Queue[UUID]) -> None:
        logger.debug("webhook.sender.started", extra=log_context(subscription_id=subscription_id))
        while True:
            # Left behind by a worker that died before finishing it.
            pending_event_id = self._in_flight.get(subscription_id)
            if pending_event_id is None:
                pending_event_id = await queue.get()
                self._in_flight[subscription_id] = pending_event_id

            outcome = await self._sender.send(pending_event_id)
            del self._in_flight[subscription_id]
            queue.task_done()

            if outcome is DeliveryOutcome.DELIVERED or not queue.empty():
                continue
            if await self._sender.subscription_exists(subscription_id):
                continue
            if queue.empty() and self._queues.get(subscription_id) is queue:
                del self._queues[subscription_id]
                del self._workers[subscription_id]
                logger.debug(
                    "webhook.sender.retired",
                    extra=log_context(subscription_id=subscription_id),
                )
                return


__all__ = [
    "Backoff",
    "DeliveryOutcome",
    "DeliveryTarget",
    "SenderRegistry",
    "TOKEN_UNAVAILABLE_ERROR",
    "WebhookSender",
]
