"""FastAPI dependencies that bridge HTTP requests to authentication and authorization."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from player_api.common.logging import log_context
from player_api.db import get_db_session
from player_api.features.authorization.service import AuthorizationService
from player_api.features.webhooks.events import EventPublisher
from player_api.settings import Settings, get_settings

from ..auth import AuthenticatedPrincipal, AuthenticationError
from ..security import decode_token

logger = logging.getLogger(__name__)

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
SettingsDep = Annotated[Settings, Depends(get_settings)]

_bearer_scheme = HTTPBearer(auto_error=False, description="Identity provider JWT")


async def get_current_principal(
    db: SessionDep,
    settings: SettingsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(_bearer_scheme)],
) -> AuthenticatedPrincipal:
    """Authenticate the bearer JWT and provision the user on first sight."""

    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")

    secret = settings.jwt_secret_value
    if secret is None:
        raise AuthenticationError("Bearer authentication is not configured")

    try:
        payload = decode_token(
            credentials.credentials,
            secret=secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
        user_id = UUID(str(payload["sub"]))
    except (jwt.PyJWTError, ValueError) as exc:
        logger.info("auth.token.invalid", extra=log_context(error=type(exc).__name__))
        raise AuthenticationError("Invalid bearer token") from exc

    name = payload.get("name")

    from player_api.features.users.service import UsersService

    await UsersService(session=db, settings=settings).ensure_user(
        user_id=user_id,
        name=name if isinstance(name, str) else None,
    )
    return AuthenticatedPrincipal(user_id=user_id, name=name if isinstance(name, str) else None)


PrincipalDep = Annotated[AuthenticatedPrincipal, Security(get_current_principal)]


def get_authorization_service(
    principal: PrincipalDep,
    db: SessionDep,
) -> AuthorizationService:
    return AuthorizationService(session=db, user_id=principal.user_id)


def get_event_publisher(request: Request) -> EventPublisher | None:
    """The process webhook runtime, or ``None`` when webhooks are disabled."""

    return getattr(request.app.state, "webhooks", None)


AuthorizationDep = Annotated[AuthorizationService, Depends(get_authorization_service)]
PublisherDep = Annotated[EventPublisher | None, Depends(get_event_publisher)]


__all__ = [
    "AuthorizationDep",
    "PrincipalDep",
    "PublisherDep",
    "SessionDep",
    "SettingsDep",
    "get_authorization_service",
    "get_current_principal",
    "get_event_publisher",
]
