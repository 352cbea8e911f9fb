from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from uuid import uuid4

import httpx
from sqlalchemy import func, select

from player_api.db import utc_now
from player_api.features.webhooks.dispatcher import EventDispatcher
from player_api.features.webhooks.events import WebhookEvent, view_created, view_deleted
from player_api.features.webhooks.runtime import WebhookRuntime
from player_api.models import EventType, PendingEvent
from tests.unit.webhooks.helpers import add_pending, add_subscription


class RecordingRegistry:
    def __init__(self) -> None:
        self.enqueued: list[tuple] = []

    def enqueue(self, subscription_id, pending_event_id) -> None:
        self.enqueued.append((subscription_id, pending_event_id))


async def test_process_fans_out_to_matching_subscriptions(sessionmaker) -> None:
    created_only = await add_subscription(
        sessionmaker, name="created", event_types=(EventType.VIEW_CREATED,)
    )
    both = await add_subscription(sessionmaker, name="both")
    deleted_only = await add_subscription(
        sessionmaker, name="deleted", event_types=(EventType.VIEW_DELETED,)
    )
    registry = RecordingRegistry()
    dispatcher = EventDispatcher(sessionmaker=sessionmaker, registry=registry)

    event = view_created(created_only.id)
    rows = await dispatcher.process(event)

    assert {row.subscription_id for row in rows} == {created_only.id, both.id}
    assert deleted_only.id not in {subscription_id for subscription_id, _ in registry.enqueued}
    assert all(row.timestamp == event.timestamp for row in rows)
    assert all(row.payload == event.model_dump_json() for row in rows)
    async with sessionmaker() as session:
        assert await session.scalar(select(func.count()).select_from(PendingEvent)) == 2


async def test_event_without_subscribers_is_dropped(sessionmaker) -> None:
    await add_subscription(sessionmaker, event_types=(EventType.VIEW_CREATED,))
    registry = RecordingRegistry()

    rows = await EventDispatcher(sessionmaker=sessionmaker, registry=registry).process(
        view_deleted(uuid4())
    )

    assert rows == []
    assert registry.enqueued == []


async def test_per_subscription_order_survives_retries(
    sessionmaker, settings, client, endpoints, sleep
) -> None:
    subscription = await add_subscription(sessionmaker)
    endpoints.statuses = [500, 500]
    runtime = WebhookRuntime(
        settings=settings, sessionmaker=sessionmaker, client=client, sleep=sleep
    )
    await runtime.start()
    try:
        events = [view_created(subscription.id) for _ in range(3)]
        for event in events:
            runtime.dispatch(event)
        await runtime.drain()
    finally:
        await runtime.stop()

    first_id = events[0].id
    assert [event_id for _, event_id, _ in endpoints.attempts[:3]] == [first_id] * 3
    assert [status for _, _, status in endpoints.attempts[:3]] == [500, 500, 202]
    assert endpoints.delivered_ids == [event.id for event in events]
    assert len(sleep.delays) == 2


async def test_recovered_events_go_out_before_new_ones(
    sessionmaker, settings, client, endpoints, sleep
) -> None:
    subscription = await add_subscription(sessionmaker)
    now = utc_now()
    _, later = await add_pending(sessionmaker, subscription, timestamp=now - timedelta(minutes=1))
    _, earlier = await add_pending(sessionmaker, subscription, timestamp=now - timedelta(hours=1))

    runtime = WebhookRuntime(
        settings=settings, sessionmaker=sessionmaker, client=client, sleep=sleep
    )
    await runtime.start()
    try:
        fresh = view_created(subscription.id)
        runtime.dispatch(fresh)
        await runtime.drain()
    finally:
        await runtime.stop()

    assert endpoints.delivered_ids == [earlier.id, later.id, fresh.id]
    async with sessionmaker() as session:
        assert await session.scalar(select(func.count()).select_from(PendingEvent)) == 0


async def test_each_subscription_receives_the_event(
    sessionmaker, settings, client, endpoints, sleep
) -> None:
    slow = await add_subscription(sessionmaker, name="slow", callback_uri="https://slow.test/hook")
    await add_subscription(sessionmaker, name="fast", callback_uri="https://fast.test/hook")

    runtime = WebhookRuntime(
        settings=settings, sessionmaker=sessionmaker, client=client, sleep=sleep
    )
    await runtime.start()
    try:
        runtime.dispatch(view_deleted(slow.id))
        await runtime.drain()
    finally:
        await runtime.stop()

    assert sorted(url for url, _, _ in endpoints.attempts) == [
        "https://fast.test/hook",
        "https://slow.test/hook",
    ]
    assert not runtime.dispatcher.running


class FailingDispatcher(EventDispatcher):
    def __init__(self, *, failing_id, **kwargs) -> None:
        super().__init__(**kwargs)
        self.failing_id = failing_id

    async def process(self, event):
        if event.id == self.failing_id:
            raise RuntimeError("fan-out failed")
        return await super().process(event)


async def test_failed_event_is_logged_and_intake_continues(sessionmaker, caplog) -> None:
    subscription = await add_subscription(sessionmaker)
    bad, good = view_created(subscription.id), view_created(subscription.id)
    registry = RecordingRegistry()
    dispatcher = FailingDispatcher(
        failing_id=bad.id, sessionmaker=sessionmaker, registry=registry
    )

    await dispatcher.start()
    try:
        with caplog.at_level(logging.ERROR, logger="player_api.features.webhooks.dispatcher"):
            dispatcher.dispatch(bad)
            dispatcher.dispatch(good)
            await asyncio.wait_for(dispatcher.join(), 5)
        assert dispatcher.running
    finally:
        await dispatcher.stop()

    failures = [record for record in caplog.records if record.msg == "webhook.dispatch.failed"]
    assert [record.event_id for record in failures] == [str(bad.id)]
    async with sessionmaker() as session:
        payloads = (await session.scalars(select(PendingEvent.payload))).all()
    assert [WebhookEvent.model_validate_json(payload).id for payload in payloads] == [good.id]
    assert [subscription_id for subscription_id, _ in registry.enqueued] == [subscription.id]


async def test_hung_callback_does_not_block_other_subscriptions(
    sessionmaker, settings, endpoints, sleep
) -> None:
    await add_subscription(
        sessionmaker,
        name="slow",
        callback_uri="https://slow.test/hook",
        event_types=(EventType.VIEW_CREATED,),
    )
    await add_subscription(
        sessionmaker,
        name="fast",
        callback_uri="https://fast.test/hook",
        event_types=(EventType.VIEW_DELETED,),
    )
    slow_in_flight = asyncio.Event()
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "slow.test":
            slow_in_flight.set()
            await release.wait()
        return endpoints(request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        runtime = WebhookRuntime(
            settings=settings, sessionmaker=sessionmaker, client=client, sleep=sleep
        )
        await runtime.start()
        try:
            runtime.dispatch(view_created(uuid4()))
            await asyncio.wait_for(slow_in_flight.wait(), 5)

            deleted = view_deleted(uuid4())
            runtime.dispatch(deleted)
            await asyncio.wait_for(_delivered(endpoints, deleted.id), 5)

            assert [url for url, _, _ in endpoints.attempts] == ["https://fast.test/hook"]
        finally:
            release.set()
            await runtime.stop()


async def _delivered(endpoints, event_id) -> None:
    while event_id not in endpoints.delivered_ids:
        await asyncio.sleep(0.01)
