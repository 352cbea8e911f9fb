"""Team permission catalog, team-role bundles and team assignments."""

from __future__ import annotations

import logging
from uuid import UUID

from player_api.common.logging import log_context
from player_api.features.authorization.catalog import (
    SystemPermissions,
    TeamPermissions,
    ViewPermissions,
)
from player_api.features.authorization.resolver import TeamPermissionsClaim
from player_api.features.permissions.base import CatalogEntryService
from player_api.models import (
    Team,
    TeamPermission,
    TeamPermissionAssignment,
    TeamRole,
    TeamRolePermission,
)

logger = logging.getLogger(__name__)


class TeamPermissionsService(CatalogEntryService):
    model = TeamPermission
    label = "TeamPermission"
    read_system_permissions = (SystemPermissions.VIEW_ROLES, SystemPermissions.VIEW_VIEWS)
    read_view_permissions = (ViewPermissions.VIEW_VIEW,)
    read_team_permissions = (TeamPermissions.MANAGE_TEAM,)
    write_system_permissions = (SystemPermissions.MANAGE_ROLES,)

    async def list_mine(
        self,
        *,
        view_id: UUID | None = None,
        team_id: UUID | None = None,
        include_all_view_teams: bool = False,
    ) -> list[TeamPermissionsClaim]:
        """The caller's per-team claims, optionally narrowed.

        ``view_id`` wins over ``team_id``. With ``include_all_view_teams`` a
        ``team_id`` selects every claim in that team's view.
        """

        claims = await self._authz.get_team_permissions()
        if view_id is not None:
            return [claim for claim in claims if claim.view_id == view_id]
        if team_id is None:
            return claims
        if not include_all_view_teams:
            return [claim for claim in claims if claim.team_id == team_id]

        match = next((claim for claim in claims if claim.team_id == team_id), None)
        owning_view = (
            match.view_id
            if match is not None
            else await self._authz.resolver.view_id_for_team(team_id)
        )
        return [claim for claim in claims if claim.view_id == owning_view]

    async def add_to_team_role(self, *, team_role_id: UUID, permission_id: UUID) -> None:
        await self._authz.ensure(system_permissions=(SystemPermissions.MANAGE_ROLES,))
        role = await self._require(TeamRole, team_role_id, "TeamRole")
        permission = await self._require_entry(permission_id)
        if await self._add_link(
            TeamRolePermission, team_role_id=team_role_id, team_permission_id=permission_id
        ):
            logger.warning(
                "team_permissions.role.granted",
                extra=log_context(
                    team_role=role.name,
                    permission=permission.name,
                    user_id=self._authz.user_id,
                ),
            )

    async def remove_from_team_role(self, *, team_role_id: UUID, permission_id: UUID) -> None:
        await self._authz.ensure(system_permissions=(SystemPermissions.MANAGE_ROLES,))
        role = await self._require(TeamRole, team_role_id, "TeamRole")
        permission = await self._require_entry(permission_id)
        if await self._remove_link(
            TeamRolePermission, team_role_id=team_role_id, team_permission_id=permission_id
        ):
            logger.warning(
                "team_permissions.role.revoked",
                extra=log_context(
                    team_role=role.name,
                    permission=permission.name,
                    user_id=self._authz.user_id,
                ),
            )

    async def add_to_team(self, *, team_id: UUID, permission_id: UUID) -> None:
        await self._ensure_team_manager(team_id)
        await self._require(Team, team_id, "Team")
        permission = await self._require_entry(permission_id)
        if await self._add_link(
            TeamPermissionAssignment, team_id=team_id, team_permission_id=permission_id
        ):
            logger.warning(
                "team_permissions.team.granted",
                extra=log_context(
                    team_id=team_id,
                    permission=permission.name,
                    user_id=self._authz.user_id,
                ),
            )

    async def remove_from_team(self, *, team_id: UUID, permission_id: UUID) -> None:
        await self._ensure_team_manager(team_id)
        await self._require(Team, team_id, "Team")
        permission = await self._require_entry(permission_id)
        if await self._remove_link(
            TeamPermissionAssignment, team_id=team_id, team_permission_id=permission_id
        ):
            logger.warning(
                "team_permissions.team.revoked",
                extra=log_context(
                    team_id=team_id,
                    permission=permission.name,
                    user_id=self._authz.user_id,
                ),
            )

    async def _ensure_team_manager(self, team_id: UUID) -> None:
        await self._authz.ensure_entity(
            Team,
            team_id,
            system_permissions=(SystemPermissions.MANAGE_ROLES,),
            view_permissions=(ViewPermissions.MANAGE_VIEW,),
        )


__all__ = ["TeamPermissionsService"]
