"""FastAPI router for webhook subscriptions."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status

from player_api.app.dependencies import get_webhook_subscriptions_service

from .schemas import WebhookSubscriptionForm, WebhookSubscriptionOut
from .service import SubscriptionNotFoundError, WebhookSubscriptionsService

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

ServiceDep = Annotated[WebhookSubscriptionsService, Depends(get_webhook_subscriptions_service)]

_RESPONSES = {
    status.HTTP_401_UNAUTHORIZED: {"description": "Authentication required."},
    status.HTTP_403_FORBIDDEN: {"description": "Insufficient permissions."},
}


@router.get(
    "",
    response_model=list[WebhookSubscriptionOut],
    summary="List webhook subscriptions",
    responses=_RESPONSES,
)
async def list_subscriptions(service: ServiceDep) -> list[WebhookSubscriptionOut]:
    return await service.list_subscriptions()


@router.post(
    "",
    response_model=WebhookSubscriptionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Subscribe a callback to events",
    responses=_RESPONSES,
)
async def subscribe(
    payload: WebhookSubscriptionForm,
    service: ServiceDep,
) -> WebhookSubscriptionOut:
    return await service.subscribe(form=payload)


@router.get(
    "/{subscription_id}",
    response_model=WebhookSubscriptionOut,
    summary="Get a webhook subscription",
    responses={**_RESPONSES, status.HTTP_404_NOT_FOUND: {"description": "Not found."}},
)
async def get_subscription(subscription_id: UUID, service: ServiceDep) -> WebhookSubscriptionOut:
    try:
        return await service.get_subscription(subscription_id=subscription_id)
    except SubscriptionNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.put(
    "/{subscription_id}",
    response_model=WebhookSubscriptionOut,
    summary="Replace a webhook subscription",
    responses={**_RESPONSES, status.HTTP_404_NOT_FOUND: {"description": "Not found."}},
)
async def update_subscription(
    subscription_id: UUID,
    payload: WebhookSubscriptionForm,
    service: ServiceDep,
) -> WebhookSubscriptionOut:
    try:
        return await service.update_subscription(subscription_id=subscription_id, form=payload)
    except SubscriptionNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.delete(
    "/{subscription_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a webhook subscription",
    responses={**_RESPONSES, status.HTTP_404_NOT_FOUND: {"description": "Not found."}},
)
async def delete_subscription(subscription_id: UUID, service: ServiceDep) -> Response:
    try:
        await service.delete_subscription(subscription_id=subscription_id)
    except SubscriptionNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
