"""Pydantic schemas for webhook subscriptions."""

from __future__ import annotations

from uuid import UUID

from pydantic import Field, field_validator

from player_api.common.schema import BaseSchema
from player_api.models import EventType

REDACTED = "REDACTED"


class WebhookSubscriptionForm(BaseSchema):
    """Create/replace payload. ``event_types`` replaces the stored set."""

    name: str | None = Field(default=None, max_length=255)
    callback_uri: str = Field(min_length=1, max_length=2048)
    client_id: str = Field(min_length=1, max_length=255)
    client_secret: str = Field(min_length=1, max_length=1024)
    event_types: list[EventType] = Field(default_factory=list)

    @field_validator("callback_uri")
    @classmethod
    def _v_callback_uri(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned.startswith(("http://", "https://")):
            raise ValueError("callback_uri must be an http(s) URL")
        return cleaned

    @field_validator("event_types")
    @classmethod
    def _v_event_types(cls, value: list[EventType]) -> list[EventType]:
        return list(dict.fromkeys(value))


class WebhookSubscriptionOut(BaseSchema):
    id: UUID
    name: str | None = None
    callback_uri: str
    client_id: str
    client_secret: str = REDACTED
    event_types: list[EventType] = Field(default_factory=list)
    last_error: str | None = None


__all__ = ["REDACTED", "WebhookSubscriptionForm", "WebhookSubscriptionOut"]
