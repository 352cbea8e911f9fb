"""Webhook subscriptions and the durable pending-event queue."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from player_api.db import Base, UTCDateTime, UUIDPrimaryKeyMixin, UUIDType, utc_now


class EventType(str, Enum):
    """Closed set of events subscribers may register for."""

    VIEW_CREATED = "ViewCreated"
    VIEW_DELETED = "ViewDeleted"


event_type_enum = SAEnum(
    EventType,
    name="webhook_event_type",
    native_enum=False,
    length=50,
    values_callable=lambda enum: [member.value for member in enum],
)


class WebhookSubscription(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "webhook_subscriptions"

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    callback_uri: Mapped[str] = mapped_column(String(2048), nullable=False)
    client_id: Mapped[str] = mapped_column(String(255), nullable=False)
    client_secret: Mapped[str] = mapped_column(String(1024), nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    event_types: Mapped[list[WebhookSubscriptionEventType]] = relationship(
        "WebhookSubscriptionEventType",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="WebhookSubscriptionEventType.event_type",
    )


class WebhookSubscriptionEventType(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "webhook_subscription_event_types"
    __table_args__ = (UniqueConstraint("subscription_id", "event_type"),)

    subscription_id: Mapped[UUID] = mapped_column(
        UUIDType(),
        ForeignKey("webhook_subscriptions.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type: Mapped[EventType] = mapped_column(event_type_enum, nullable=False)


class PendingEvent(UUIDPrimaryKeyMixin, Base):
    """An undelivered notification; the row is removed only after delivery."""

    __tablename__ = "pending_events"
    __table_args__ = (Index("pending_events_timestamp_idx", "timestamp"),)

    event_type: Mapped[EventType] = mapped_column(event_type_enum, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)
    subscription_id: Mapped[UUID] = mapped_column(
        UUIDType(),
        ForeignKey("webhook_subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    payload: Mapped[str] = mapped_column(Text, nullable=False)


__all__ = [
    "EventType",
    "PendingEvent",
    "WebhookSubscription",
    "WebhookSubscriptionEventType",
]
