"""Fakes and seeding helpers for webhook delivery tests."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from typing import Any
from urllib.parse import parse_qsl
from uuid import UUID

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from player_api.features.webhooks.events import WebhookEvent, view_created
from player_api.models import (
    EventType,
    PendingEvent,
    WebhookSubscription,
    WebhookSubscriptionEventType,
)
from tests.utils import TOKEN_URL


class FakeIdentityAndCallbacks:
    """httpx handler standing in for the token endpoint and subscriber callbacks.

    ``statuses`` scripts callback responses in order; once exhausted every
    callback is accepted with 202. The first ``token_failures`` token requests
    are rejected.
    """

    def __init__(self, *, statuses: list[int] | None = None, token_failures: int = 0) -> None:
        self.statuses = list(statuses or [])
        self.token_failures = token_failures
        self.token_requests: list[dict[str, str]] = []
        self.attempts: list[tuple[str, UUID, int]] = []
        self.authorizations: list[str] = []
        self.delivered: list[dict[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == TOKEN_URL:
            self.token_requests.append(dict(parse_qsl(request.content.decode())))
            if len(self.token_requests) <= self.token_failures:
                return httpx.Response(400, json={"error": "invalid_client"})
            return httpx.Response(
                200,
                json={"access_token": f"token-{len(self.token_requests)}", "expires_in": 3600},
            )

        body = json.loads(request.content)
        status = self.statuses.pop(0) if self.statuses else 202
        self.attempts.append((str(request.url), UUID(body["id"]), status))
        self.authorizations.append(request.headers["Authorization"])
        if status in (200, 202):
            self.delivered.append(body)
        return httpx.Response(status)

    @property
    def delivered_ids(self) -> list[UUID]:
        return [UUID(body["id"]) for body in self.delivered]


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


async def add_subscription(
    sessionmaker: async_sessionmaker[AsyncSession],
    *,
    name: str = "range-controller",
    callback_uri: str = "https://subscriber.test/hooks",
    event_types: tuple[EventType, ...] = (EventType.VIEW_CREATED, EventType.VIEW_DELETED),
) -> WebhookSubscription:
    async with sessionmaker() as session:
        subscription = WebhookSubscription(
            name=name,
            callback_uri=callback_uri,
            client_id=f"{name}-client",
            client_secret="s3cret",
        )
        subscription.event_types = [
            WebhookSubscriptionEventType(event_type=event_type) for event_type in event_types
        ]
        session.add(subscription)
        await session.commit()
        return subscription


async def add_pending(
    sessionmaker: async_sessionmaker[AsyncSession],
    subscription: WebhookSubscription,
    *,
    timestamp: datetime | None = None,
) -> tuple[PendingEvent, WebhookEvent]:
    event = view_created(subscription.id)
    if timestamp is not None:
        event.timestamp = timestamp
    async with sessionmaker() as session:
        pending = PendingEvent(
            event_type=EventType.VIEW_CREATED,
            timestamp=event.timestamp,
            subscription_id=subscription.id,
            payload=event.model_dump_json(),
        )
        session.add(pending)
        await session.commit()
        return pending, event


__all__ = ["FakeIdentityAndCallbacks", "RecordingSleep", "add_pending", "add_subscription"]
