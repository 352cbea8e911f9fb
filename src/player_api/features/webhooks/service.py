"""Webhook subscription management."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from player_api.common.logging import log_context
from player_api.features.authorization.catalog import SystemPermissions
from player_api.features.authorization.service import AuthorizationService
from player_api.models import EventType, WebhookSubscription, WebhookSubscriptionEventType

from .schemas import REDACTED, WebhookSubscriptionForm, WebhookSubscriptionOut

logger = logging.getLogger(__name__)

_READ = (
    SystemPermissions.VIEW_WEBHOOK_SUBSCRIPTIONS,
    SystemPermissions.MANAGE_WEBHOOK_SUBSCRIPTIONS,
)
_WRITE = (SystemPermissions.MANAGE_WEBHOOK_SUBSCRIPTIONS,)


class SubscriptionNotFoundError(ValueError):
    """Raised when a webhook subscription cannot be located."""


def _event_types(form: WebhookSubscriptionForm) -> list[EventType]:
    return [EventType(value) for value in form.event_types]


def _serialize(subscription: WebhookSubscription) -> WebhookSubscriptionOut:
    return WebhookSubscriptionOut(
        id=subscription.id,
        name=subscription.name,
        callback_uri=subscription.callback_uri,
        client_id=subscription.client_id,
        client_secret=REDACTED,
        event_types=[EventType(row.event_type) for row in subscription.event_types],
        last_error=subscription.last_error,
    )


class WebhookSubscriptionsService:
    def __init__(self, *, session: AsyncSession, authorization: AuthorizationService) -> None:
        self._session = session
        self._authz = authorization

    async def list_subscriptions(self) -> list[WebhookSubscriptionOut]:
        await self._authz.ensure(system_permissions=_READ)
        result = await self._session.execute(
            select(WebhookSubscription).order_by(WebhookSubscription.name, WebhookSubscription.id)
        )
        return [_serialize(row) for row in result.scalars().all()]

    async def get_subscription(self, *, subscription_id: UUID) -> WebhookSubscriptionOut:
        await self._authz.ensure(system_permissions=_READ)
        return _serialize(await self._require(subscription_id))

    async def subscribe(self, *, form: WebhookSubscriptionForm) -> WebhookSubscriptionOut:
        await self._authz.ensure(system_permissions=_WRITE)
        subscription = WebhookSubscription(
            name=form.name,
            callback_uri=form.callback_uri,
            client_id=form.client_id,
            client_secret=form.client_secret,
        )
        subscription.event_types = [
            WebhookSubscriptionEventType(event_type=event_type)
            for event_type in _event_types(form)
        ]
        self._session.add(subscription)
        await self._session.flush()
        logger.info(
            "webhook.subscription.created",
            extra=log_context(
                subscription_id=subscription.id,
                user_id=self._authz.user_id,
                event_types=",".join(t.value for t in _event_types(form)),
            ),
        )
        return _serialize(subscription)

    async def update_subscription(
        self,
        *,
        subscription_id: UUID,
        form: WebhookSubscriptionForm,
    ) -> WebhookSubscriptionOut:
        await self._authz.ensure(system_permissions=_WRITE)
        subscription = await self._require(subscription_id)
        subscription.name = form.name
        subscription.callback_uri = form.callback_uri
        subscription.client_id = form.client_id
        # Clients echo the redacted placeholder back when the secret is unchanged.
        if form.client_secret != REDACTED:
            subscription.client_secret = form.client_secret

        wanted = _event_types(form)
        kept = [row for row in subscription.event_types if EventType(row.event_type) in wanted]
        kept_types = {EventType(row.event_type) for row in kept}
        subscription.event_types = kept + [
            WebhookSubscriptionEventType(event_type=event_type)
            for event_type in wanted
            if event_type not in kept_types
        ]
        await self._session.flush()
        logger.info(
            "webhook.subscription.updated",
            extra=log_context(subscription_id=subscription.id, user_id=self._authz.user_id),
        )
        return _serialize(subscription)

    async def delete_subscription(self, *, subscription_id: UUID) -> None:
        await self._authz.ensure(system_permissions=_WRITE)
        subscription = await self._require(subscription_id)
        await self._session.delete(subscription)
        await self._session.flush()
        logger.info(
            "webhook.subscription.deleted",
            extra=log_context(subscription_id=subscription_id, user_id=self._authz.user_id),
        )

    async def _require(self, subscription_id: UUID) -> WebhookSubscription:
        subscription = await self._session.get(WebhookSubscription, subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(f"Webhook subscription {subscription_id} not found")
        return subscription


__all__ = ["SubscriptionNotFoundError", "WebhookSubscriptionsService"]
