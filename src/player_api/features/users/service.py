"""User provisioning and self lookup."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from player_api.common.logging import log_context
from player_api.features.authorization.catalog import ADMINISTRATOR_ROLE, SystemPermissions
from player_api.features.authorization.resolver import PermissionResolver
from player_api.models import Role, User
from player_api.settings import Settings

from .schemas import MeOut

logger = logging.getLogger(__name__)


class UserNotFoundError(ValueError):
    """Raised when a user cannot be located."""


class UsersService:
    """Provision identities on first sight and describe the caller."""

    def __init__(self, *, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings

    async def ensure_user(self, *, user_id: UUID, name: str | None = None) -> User:
        """Return the user, creating it on first authentication.

        The very first user receives the ``Administrator`` role when
        ``first_user_is_admin`` is enabled. A changed display name is updated.
        """

        user = await self._session.get(User, user_id)
        if user is not None:
            if name and user.name != name:
                user.name = name
                await self._session.flush()
            return user

        is_first = not await self._session.scalar(select(func.count()).select_from(User))
        user = User(id=user_id, name=name)
        if is_first and self._settings.first_user_is_admin:
            user.role_id = await self._session.scalar(
                select(Role.id).where(Role.name == ADMINISTRATOR_ROLE)
            )
        self._session.add(user)
        await self._session.flush()
        logger.info(
            "user.provisioned",
            extra=log_context(user_id=user_id, administrator=user.role_id is not None),
        )
        return user

    async def get_me(self, *, user_id: UUID) -> MeOut:
        user = await self._session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        permissions = await PermissionResolver(session=self._session).top_level_permissions(
            user_id
        )
        return MeOut(
            id=user.id,
            name=user.name,
            role_id=user.role_id,
            is_system_admin=SystemPermissions.SYSTEM_ADMIN in permissions,
            permissions=sorted(permissions),
        )


__all__ = ["UserNotFoundError", "UsersService"]
