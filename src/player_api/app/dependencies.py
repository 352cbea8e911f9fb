"""Service factories used by API routers.

Routers import their per-request service constructors from here.
"""

from __future__ import annotations

from fastapi import Request

from player_api.core.http import AuthorizationDep, PublisherDep, SessionDep, SettingsDep


def get_health_service(request: Request, session: SessionDep, settings: SettingsDep):
    from player_api.features.health.service import HealthService

    return HealthService(
        session=session,
        settings=settings,
        webhooks=getattr(request.app.state, "webhooks", None),
    )


def get_users_service(session: SessionDep, settings: SettingsDep):
    from player_api.features.users.service import UsersService

    return UsersService(session=session, settings=settings)


def get_permissions_service(session: SessionDep, authorization: AuthorizationDep):
    from player_api.features.permissions.service import PermissionsService

    return PermissionsService(session=session, authorization=authorization)


def get_team_permissions_service(session: SessionDep, authorization: AuthorizationDep):
    from player_api.features.team_permissions.service import TeamPermissionsService

    return TeamPermissionsService(session=session, authorization=authorization)


def get_views_service(
    session: SessionDep,
    settings: SettingsDep,
    authorization: AuthorizationDep,
    publisher: PublisherDep,
):
    from player_api.features.views.service import ViewsService

    return ViewsService(
        session=session,
        settings=settings,
        authorization=authorization,
        publisher=publisher,
    )


def get_teams_service(session: SessionDep, settings: SettingsDep, authorization: AuthorizationDep):
    from player_api.features.teams.service import TeamsService

    return TeamsService(session=session, settings=settings, authorization=authorization)


def get_webhook_subscriptions_service(session: SessionDep, authorization: AuthorizationDep):
    from player_api.features.webhooks.service import WebhookSubscriptionsService

    return WebhookSubscriptionsService(session=session, authorization=authorization)


__all__ = [
    "get_health_service",
    "get_permissions_service",
    "get_team_permissions_service",
    "get_teams_service",
    "get_users_service",
    "get_views_service",
    "get_webhook_subscriptions_service",
]
