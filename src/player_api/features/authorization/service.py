"""Authorization decisions consumed by every feature service."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any
from uuid import UUID

from sqlalchemy import Select, literal, select
from sqlalchemy.ext.asyncio import AsyncSession

from player_api.common.logging import log_context
from player_api.core.auth.errors import ForbiddenError
from player_api.models import (
    Application,
    ApplicationInstance,
    Team,
    TeamMembership,
    View,
    ViewMembership,
)

from .catalog import SystemPermissions, ViewPermissions
from .resolver import PermissionResolver, SystemScope, TeamPermissionsClaim

logger = logging.getLogger(__name__)

_NO_TEAM = literal(None)

# entity type -> query yielding (owning view id, owning team id or NULL)
_OWNER_QUERIES: dict[type, Callable[[UUID], Select[Any]]] = {
    View: lambda entity_id: select(View.id, _NO_TEAM).where(View.id == entity_id),
    Team: lambda entity_id: select(Team.view_id, Team.id).where(Team.id == entity_id),
    Application: lambda entity_id: select(Application.view_id, _NO_TEAM).where(
        Application.id == entity_id
    ),
    ApplicationInstance: lambda entity_id: (
        select(Team.view_id, ApplicationInstance.team_id)
        .join(Team, Team.id == ApplicationInstance.team_id)
        .where(ApplicationInstance.id == entity_id)
    ),
    TeamMembership: lambda entity_id: (
        select(Team.view_id, TeamMembership.team_id)
        .join(Team, Team.id == TeamMembership.team_id)
        .where(TeamMembership.id == entity_id)
    ),
    ViewMembership: lambda entity_id: select(ViewMembership.view_id, _NO_TEAM).where(
        ViewMembership.id == entity_id
    ),
}


class AuthorizationService:
    """Boolean and raising authorization checks for one caller."""

    def __init__(self, *, session: AsyncSession, user_id: UUID) -> None:
        self._session = session
        self._user_id = user_id
        self._resolver = PermissionResolver(session=session)

    @property
    def user_id(self) -> UUID:
        return self._user_id

    @property
    def resolver(self) -> PermissionResolver:
        return self._resolver

    # ------------- system level -------------------

    async def get_system_permissions(self) -> frozenset[str]:
        return await self._resolver.resolve(self._user_id, SystemScope())

    async def is_system_admin(self) -> bool:
        return SystemPermissions.SYSTEM_ADMIN in await self.get_system_permissions()

    async def get_team_permissions(self) -> list[TeamPermissionsClaim]:
        return await self._resolver.team_permission_claims(self._user_id)

    async def get_authorized_view_ids(self) -> list[UUID]:
        """Views the caller is a member of."""

        result = await self._session.execute(
            select(ViewMembership.view_id).where(ViewMembership.user_id == self._user_id)
        )
        return list(result.scalars().all())

    # ------------- decisions ----------------------

    async def authorize(
        self,
        *,
        system_permissions: Iterable[str] = (),
        view_permissions: Iterable[str] = (),
        team_permissions: Iterable[str] = (),
        view_id: UUID | None = None,
        team_id: UUID | None = None,
    ) -> bool:
        """Return True if any allowed permission is held in the relevant scope.

        ``SystemAdmin`` short-circuits. View permissions are checked against
        the resolved set for the owning view; team permissions only count on
        the caller's primary team of that view. When neither a view nor a team
        is given, any primary-team claim of the caller may satisfy them.
        """

        system_allowed = frozenset(system_permissions)
        view_allowed = frozenset(view_permissions)
        team_allowed = frozenset(team_permissions)

        top_level = await self.get_system_permissions()
        if SystemPermissions.SYSTEM_ADMIN in top_level or top_level & system_allowed:
            return True
        if not view_allowed and not team_allowed:
            return False

        if team_id is not None and view_id is None:
            view_id = await self._resolver.view_id_for_team(team_id)
            if view_id is None:
                return False

        if view_id is None:
            return any(
                claim.is_primary
                and (claim.permissions & view_allowed or claim.permissions & team_allowed)
                for claim in await self.get_team_permissions()
            )

        resolution = await self._resolver.resolve_view(self._user_id, view_id)
        if resolution.permissions & view_allowed:
            return True
        if team_id is not None and team_allowed:
            on_team = not resolution.is_member or resolution.primary_team_id == team_id
            return on_team and bool(resolution.permissions & team_allowed)
        return False

    async def authorize_entity(
        self,
        entity: type,
        entity_id: UUID,
        *,
        system_permissions: Iterable[str] = (),
        view_permissions: Iterable[str] = (),
        team_permissions: Iterable[str] = (),
    ) -> bool:
        """Resolve ``entity_id`` to its owning view/team, then :meth:`authorize`.

        Returns False when the entity does not exist.
        """

        system_allowed = frozenset(system_permissions)
        top_level = await self.get_system_permissions()
        if SystemPermissions.SYSTEM_ADMIN in top_level or top_level & system_allowed:
            return True

        owner = await self.owning_scope(entity, entity_id)
        if owner is None:
            return False
        view_id, team_id = owner
        return await self.authorize(
            view_permissions=view_permissions,
            team_permissions=team_permissions,
            view_id=view_id,
            team_id=team_id,
        )

    async def owning_scope(self, entity: type, entity_id: UUID) -> tuple[UUID, UUID | None] | None:
        try:
            build_query = _OWNER_QUERIES[entity]
        except KeyError:
            raise TypeError(f"No ownership mapping for {entity.__name__}") from None
        row = (await self._session.execute(build_query(entity_id))).first()
        if row is None:
            return None
        return row[0], row[1]

    async def is_same_user(self, user_id: UUID) -> bool:
        return user_id == self._user_id or await self.is_system_admin()

    async def is_same_user_or_view_admin(self, user_id: UUID, view_id: UUID) -> bool:
        """Caller is the target user, manages the view, or is a system admin.

        A member of the view needs ``ManageView`` there; a non-member needs
        ``SystemAdmin``.
        """

        if user_id == self._user_id:
            return True
        resolution = await self._resolver.resolve_view(self._user_id, view_id)
        if resolution.is_member:
            return ViewPermissions.MANAGE_VIEW in resolution.permissions
        return SystemPermissions.SYSTEM_ADMIN in resolution.permissions

    # ------------- raising variants ---------------

    async def ensure(self, **kwargs: Any) -> None:
        if not await self.authorize(**kwargs):
            self._deny(**kwargs)

    async def ensure_entity(self, entity: type, entity_id: UUID, **kwargs: Any) -> None:
        if not await self.authorize_entity(entity, entity_id, **kwargs):
            self._deny(entity=entity.__name__, entity_id=entity_id, **kwargs)

    async def ensure_system_admin(self) -> None:
        if not await self.is_system_admin():
            self._deny(system_permissions=(SystemPermissions.SYSTEM_ADMIN,))

    async def ensure_same_user(self, user_id: UUID) -> None:
        if not await self.is_same_user(user_id):
            self._deny(target_user_id=user_id)

    async def ensure_same_user_or_view_admin(self, user_id: UUID, view_id: UUID) -> None:
        if not await self.is_same_user_or_view_admin(user_id, view_id):
            self._deny(target_user_id=user_id, view_id=view_id)

    def _deny(self, **details: Any) -> None:
        logger.info(
            "authorization.denied",
            extra=log_context(
                user_id=self._user_id,
                **{key: _render(value) for key, value in details.items()},
            ),
        )
        raise ForbiddenError()


def _render(value: Any) -> Any:
    if isinstance(value, (set, frozenset, tuple, list)):
        return ",".join(sorted(str(item) for item in value))
    return value


__all__ = ["AuthorizationService"]
