"""Webhook event envelopes and after-commit publication."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID, uuid4

from pydantic import Field
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from player_api.common.logging import log_context
from player_api.common.schema import BaseSchema
from player_api.db import utc_now
from player_api.models import EventType

logger = logging.getLogger(__name__)

_PENDING_KEY = "webhook_events"
_HOOKED_KEY = "webhook_events_hooked"


class WebhookEvent(BaseSchema):
    """Body POSTed to subscriber callbacks."""

    id: UUID = Field(default_factory=uuid4)
    type: EventType
    timestamp: datetime = Field(default_factory=utc_now)
    payload: dict[str, Any] = Field(default_factory=dict)


class ViewCreatedPayload(BaseSchema):
    view_id: UUID
    parent_id: UUID | None = None


class ViewDeletedPayload(BaseSchema):
    view_id: UUID


def view_created(view_id: UUID, parent_id: UUID | None = None) -> WebhookEvent:
    payload = ViewCreatedPayload(view_id=view_id, parent_id=parent_id)
    return WebhookEvent(type=EventType.VIEW_CREATED, payload=payload.model_dump(mode="json"))


def view_deleted(view_id: UUID) -> WebhookEvent:
    payload = ViewDeletedPayload(view_id=view_id)
    return WebhookEvent(type=EventType.VIEW_DELETED, payload=payload.model_dump(mode="json"))


class EventPublisher(Protocol):
    def dispatch(self, event: WebhookEvent) -> None: ...


def publish_after_commit(
    session: AsyncSession,
    publisher: EventPublisher | None,
    webhook_event: WebhookEvent,
) -> None:
    """Hand ``webhook_event`` to ``publisher`` once the session commits.

    A rollback discards everything queued since the last commit.
    """

    if publisher is None:
        logger.debug(
            "webhook.publish.skipped",
            extra=log_context(event_id=webhook_event.id, event_type=webhook_event.type),
        )
        return

    sync_session = session.sync_session
    pending: list[tuple[EventPublisher, WebhookEvent]] = sync_session.info.setdefault(
        _PENDING_KEY, []
    )
    pending.append((publisher, webhook_event))

    if not sync_session.info.get(_HOOKED_KEY):
        event.listen(sync_session, "after_commit", _flush_pending)
        event.listen(sync_session, "after_soft_rollback", _discard_pending)
        sync_session.info[_HOOKED_KEY] = True


def _flush_pending(session: Session) -> None:
    pending = session.info.pop(_PENDING_KEY, [])
    for publisher, webhook_event in pending:
        publisher.dispatch(webhook_event)


def _discard_pending(session: Session, previous_transaction: Any) -> None:
    dropped = session.info.pop(_PENDING_KEY, [])
    if dropped:
        logger.debug("webhook.publish.discarded", extra=log_context(count=len(dropped)))


__all__ = [
    "EventPublisher",
    "ViewCreatedPayload",
    "ViewDeletedPayload",
    "WebhookEvent",
    "publish_after_commit",
    "view_created",
    "view_deleted",
]
