"""Effective-permission resolution over the entitlement store.

One resolver answers "what may this user do here?" for three scope shapes:

* ``SystemScope()``: the user's top-level grants (direct user permissions plus
  the permissions bundled in the user's role).
* ``ViewScope(view_id)`` / ``TeamScope(team_id)``: if the user has no
  membership in the view the answer falls back to the top-level grants;
  otherwise it is computed *only* from the membership's primary team:
  the ``TeamMember`` marker, the membership's override team role, the team's
  own team role and the team's direct permission assignments.

Role and team-role bundles are two instances of the same grant-bundle walk
(:class:`BundleKind`). Wildcard bundles (``all_permissions``) expand against
the live catalog on every call; nothing is cached across calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from player_api.common.logging import log_context
from player_api.models import (
    Permission,
    Team,
    TeamMembership,
    TeamPermission,
    TeamPermissionAssignment,
    User,
    UserPermission,
    ViewMembership,
)

from .catalog import (
    SYSTEM_BUNDLES,
    TEAM_BUNDLES,
    TEAM_MEMBER,
    BundleKind,
    TeamPermissions,
    ViewPermissions,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Scope union
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SystemScope:
    pass


@dataclass(frozen=True, slots=True)
class ViewScope:
    view_id: UUID


@dataclass(frozen=True, slots=True)
class TeamScope:
    team_id: UUID


Scope = SystemScope | ViewScope | TeamScope


# ---------------------------------------------------------------------------
# ---------------------------------------------------------------------------
# Claims
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TeamPermissionsClaim:
    """Permissions a user holds through one team membership."""

    view_id: UUID
    team_id: UUID
    is_primary: bool
    permissions: frozenset[str]

    @property
    def view_permissions(self) -> frozenset[str]:
        return self.permissions & ViewPermissions.ALL

    @property
    def team_permissions(self) -> frozenset[str]:
        return self.permissions & TeamPermissions.ALL


@dataclass(frozen=True, slots=True)
class ViewResolution:
    """Resolved set for a view plus where it came from."""

    permissions: frozenset[str]
    is_member: bool
    primary_team_id: UUID | None = None


class PermissionResolver:
    """Read-only resolver bound to one database session."""

    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session

    # ------------- public API ---------------------

    async def resolve(self, user_id: UUID, scope: Scope) -> frozenset[str]:
        """Return the effective permission names for ``user_id`` in ``scope``."""

        if isinstance(scope, SystemScope):
            return await self.top_level_permissions(user_id)
        if isinstance(scope, ViewScope):
            view_id: UUID | None = scope.view_id
        else:
            view_id = await self.view_id_for_team(scope.team_id)
            if view_id is None:
                return frozenset()
        resolution = await self.resolve_view(user_id, view_id)
        return resolution.permissions

    async def resolve_view(self, user_id: UUID, view_id: UUID) -> ViewResolution:
        membership = await self.view_membership(user_id, view_id)
        if membership is None:
            logger.debug(
                "authorization.resolve.top_level_fallback",
                extra=log_context(user_id=user_id, view_id=view_id),
            )
            return ViewResolution(
                permissions=await self.top_level_permissions(user_id),
                is_member=False,
            )

        primary = await self._primary_team_membership(membership)
        if primary is None:
            return ViewResolution(permissions=frozenset(), is_member=True)
        return ViewResolution(
            permissions=await self._team_membership_permissions(primary),
            is_member=True,
            primary_team_id=primary.team_id,
        )

    async def top_level_permissions(self, user_id: UUID) -> frozenset[str]:
        user = await self._session.get(User, user_id)
        if user is None:
            return frozenset()

        result = await self._session.execute(
            select(Permission.name)
            .join(UserPermission, UserPermission.permission_id == Permission.id)
            .where(UserPermission.user_id == user_id)
        )
        granted = set(result.scalars().all())
        if user.role_id is not None:
            granted |= await self.bundle_permissions(SYSTEM_BUNDLES, user.role_id)
        return frozenset(granted)

    async def bundle_permissions(self, kind: BundleKind, bundle_id: UUID) -> frozenset[str]:
        """Expand a role or team role into permission names.

        A missing bundle contributes nothing.
        """

        bundle = await self._session.get(kind.bundle, bundle_id)
        if bundle is None:
            return frozenset()
        if bundle.all_permissions:
            stmt = select(kind.catalog.name)
        else:
            stmt = (
                select(kind.catalog.name)
                .join(kind.link, kind.permission_fk == kind.catalog.id)
                .where(kind.bundle_fk == bundle_id)
            )
        result = await self._session.execute(stmt)
        return frozenset(result.scalars().all())

    async def team_permission_claims(self, user_id: UUID) -> list[TeamPermissionsClaim]:
        """One claim per team the user belongs to.

        Only the primary membership of each view carries grants; the others
        carry just the ``TeamMember`` marker.
        """

        result = await self._session.execute(
            select(TeamMembership, ViewMembership)
            .join(ViewMembership, ViewMembership.id == TeamMembership.view_membership_id)
            .where(TeamMembership.user_id == user_id)
        )
        claims: list[TeamPermissionsClaim] = []
        for team_membership, view_membership in result.all():
            is_primary = view_membership.primary_team_membership_id == team_membership.id
            if is_primary:
                permissions = await self._team_membership_permissions(team_membership)
            else:
                permissions = frozenset({TEAM_MEMBER})
            claims.append(
                TeamPermissionsClaim(
                    view_id=view_membership.view_id,
                    team_id=team_membership.team_id,
                    is_primary=is_primary,
                    permissions=permissions,
                )
            )
        return claims

    # ------------- lookups ------------------------

    async def view_membership(self, user_id: UUID, view_id: UUID) -> ViewMembership | None:
        return await self._session.scalar(
            select(ViewMembership).where(
                ViewMembership.user_id == user_id,
                ViewMembership.view_id == view_id,
            )
        )

    async def view_id_for_team(self, team_id: UUID) -> UUID | None:
        return await self._session.scalar(select(Team.view_id).where(Team.id == team_id))

    # ------------- helpers ------------------------

    async def _primary_team_membership(
        self, membership: ViewMembership
    ) -> TeamMembership | None:
        if membership.primary_team_membership_id is None:
            return None
        return await self._session.get(TeamMembership, membership.primary_team_membership_id)

    async def _team_membership_permissions(
        self, membership: TeamMembership
    ) -> frozenset[str]:
        granted: set[str] = {TEAM_MEMBER}

        if membership.role_id is not None:
            granted |= await self.bundle_permissions(TEAM_BUNDLES, membership.role_id)

        team = await self._session.get(Team, membership.team_id)
        if team is not None and team.role_id is not None:
            granted |= await self.bundle_permissions(TEAM_BUNDLES, team.role_id)

        result = await self._session.execute(
            select(TeamPermission.name)
            .join(
                TeamPermissionAssignment,
                TeamPermissionAssignment.team_permission_id == TeamPermission.id,
            )
            .where(TeamPermissionAssignment.team_id == membership.team_id)
        )
        granted.update(result.scalars().all())
        return frozenset(granted)


__all__ = [
    "BundleKind",
    "PermissionResolver",
    "SYSTEM_BUNDLES",
    "Scope",
    "SystemScope",
    "TEAM_BUNDLES",
    "TeamPermissionsClaim",
    "TeamScope",
    "ViewResolution",
    "ViewScope",
]
