"""Teams and the membership graph.

A user's first team in a view creates their view membership and becomes the
primary team. Leaving the primary team hands the primary role to another of
the user's teams in that view; leaving the last one removes the view
membership entirely.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from player_api.common.logging import log_context
from player_api.features.authorization.catalog import (
    SystemPermissions,
    TeamPermissions,
    ViewPermissions,
)
from player_api.features.authorization.service import AuthorizationService
from player_api.features.users.service import UserNotFoundError
from player_api.models import Team, TeamMembership, TeamRole, User, View, ViewMembership
from player_api.settings import Settings

from .schemas import TeamForm, TeamMembershipOut, TeamOut

logger = logging.getLogger(__name__)


class TeamNotFoundError(ValueError):
    """Raised when a team or view cannot be located."""


class MembershipConflictError(ValueError):
    """Raised when a membership change contradicts the membership graph."""


def _membership_out(
    membership: TeamMembership, view_membership: ViewMembership
) -> TeamMembershipOut:
    return TeamMembershipOut(
        id=membership.id,
        team_id=membership.team_id,
        user_id=membership.user_id,
        view_membership_id=membership.view_membership_id,
        role_id=membership.role_id,
        is_primary=view_membership.primary_team_membership_id == membership.id,
    )


class TeamsService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        authorization: AuthorizationService,
    ) -> None:
        self._session = session
        self._settings = settings
        self._authz = authorization

    # ------------- teams --------------------------

    async def list_teams(self, *, view_id: UUID) -> list[TeamOut]:
        await self._authz.ensure_entity(
            View,
            view_id,
            system_permissions=(SystemPermissions.VIEW_VIEWS,),
            view_permissions=(ViewPermissions.VIEW_VIEW,),
        )
        result = await self._session.execute(
            select(Team).where(Team.view_id == view_id).order_by(Team.name, Team.id)
        )
        return [TeamOut.model_validate(team) for team in result.scalars().all()]

    async def create_team(self, *, view_id: UUID, form: TeamForm) -> TeamOut:
        await self._authz.ensure_entity(
            View,
            view_id,
            system_permissions=(SystemPermissions.MANAGE_VIEWS,),
            view_permissions=(ViewPermissions.MANAGE_VIEW,),
        )
        if await self._session.get(View, view_id) is None:
            raise TeamNotFoundError(f"View {view_id} not found")

        role_id = form.role_id
        if role_id is None:
            role_id = await self._session.scalar(
                select(TeamRole.id).where(TeamRole.name == self._settings.default_team_role)
            )
        elif await self._session.get(TeamRole, role_id) is None:
            raise TeamNotFoundError(f"TeamRole {role_id} not found")

        team = Team(name=form.name, view_id=view_id, role_id=role_id)
        self._session.add(team)
        await self._session.flush()
        logger.info(
            "team.created",
            extra=log_context(view_id=view_id, team_id=team.id, user_id=self._authz.user_id),
        )
        return TeamOut.model_validate(team)

    # ------------- memberships --------------------

    async def add_user_to_team(self, *, team_id: UUID, user_id: UUID) -> TeamMembershipOut:
        team = await self._require_team(team_id)
        await self._require_user(user_id)
        await self._ensure_team_admin(team)

        existing = await self._session.scalar(
            select(TeamMembership).where(
                TeamMembership.team_id == team_id,
                TeamMembership.user_id == user_id,
            )
        )
        if existing is not None:
            raise MembershipConflictError(f"User {user_id} is already on team {team_id}")

        view_membership = await self._view_membership(user_id, team.view_id)
        set_primary = view_membership is None
        if view_membership is None:
            view_membership = ViewMembership(view_id=team.view_id, user_id=user_id)
            self._session.add(view_membership)
            await self._session.flush()

        membership = TeamMembership(
            team_id=team_id,
            user_id=user_id,
            view_membership_id=view_membership.id,
        )
        self._session.add(membership)
        await self._session.flush()

        if set_primary:
            view_membership.primary_team_membership_id = membership.id
            await self._session.flush()

        logger.info(
            "team.member.added",
            extra=log_context(
                view_id=team.view_id,
                team_id=team_id,
                target_user_id=str(user_id),
                user_id=self._authz.user_id,
                primary=set_primary,
            ),
        )
        return _membership_out(membership, view_membership)

    async def remove_user_from_team(self, *, team_id: UUID, user_id: UUID) -> None:
        team = await self._require_team(team_id)
        await self._require_user(user_id)
        await self._ensure_team_admin(team)

        membership = await self._session.scalar(
            select(TeamMembership).where(
                TeamMembership.team_id == team_id,
                TeamMembership.user_id == user_id,
            )
        )
        if membership is None:
            return

        view_membership = await self._session.get(ViewMembership, membership.view_membership_id)
        siblings = await self._view_team_memberships(view_membership)
        others = [row for row in siblings if row.id != membership.id]

        if not others:
            view_membership.primary_team_membership_id = None
            await self._session.flush()
            await self._session.delete(membership)
            await self._session.flush()
            await self._session.delete(view_membership)
        elif view_membership.primary_team_membership_id == membership.id:
            view_membership.primary_team_membership_id = others[0].id
            await self._session.flush()
            await self._session.delete(membership)
        else:
            await self._session.delete(membership)
        await self._session.flush()

        logger.info(
            "team.member.removed",
            extra=log_context(
                view_id=team.view_id,
                team_id=team_id,
                target_user_id=str(user_id),
                user_id=self._authz.user_id,
                left_view=not others,
            ),
        )

    async def set_primary_team(
        self,
        *,
        user_id: UUID,
        view_id: UUID,
        team_id: UUID,
    ) -> TeamMembershipOut:
        await self._authz.ensure_same_user(user_id)

        view_membership = await self._view_membership(user_id, view_id)
        if view_membership is None:
            raise MembershipConflictError(f"User {user_id} is not a member of view {view_id}")

        membership = await self._session.scalar(
            select(TeamMembership).where(
                TeamMembership.view_membership_id == view_membership.id,
                TeamMembership.team_id == team_id,
            )
        )
        if membership is None:
            raise MembershipConflictError(
                "The primary team must be one of the user's teams in this view"
            )

        view_membership.primary_team_membership_id = membership.id
        await self._session.flush()
        logger.info(
            "team.primary.changed",
            extra=log_context(view_id=view_id, team_id=team_id, user_id=user_id),
        )
        return _membership_out(membership, view_membership)

    async def list_user_memberships(
        self,
        *,
        user_id: UUID,
        view_id: UUID,
    ) -> list[TeamMembershipOut]:
        """A user's team memberships in one view (self, view managers, admins)."""

        await self._authz.ensure_same_user_or_view_admin(user_id, view_id)
        view_membership = await self._view_membership(user_id, view_id)
        if view_membership is None:
            return []
        return [
            _membership_out(row, view_membership)
            for row in await self._view_team_memberships(view_membership)
        ]

    # ------------- helpers ------------------------

    async def _ensure_team_admin(self, team: Team) -> None:
        await self._authz.ensure(
            system_permissions=(SystemPermissions.MANAGE_VIEWS,),
            view_permissions=(ViewPermissions.MANAGE_VIEW,),
            team_permissions=(TeamPermissions.MANAGE_TEAM,),
            view_id=team.view_id,
            team_id=team.id,
        )

    async def _require_team(self, team_id: UUID) -> Team:
        team = await self._session.get(Team, team_id)
        if team is None:
            raise TeamNotFoundError(f"Team {team_id} not found")
        return team

    async def _require_user(self, user_id: UUID) -> User:
        user = await self._session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def _view_membership(self, user_id: UUID, view_id: UUID) -> ViewMembership | None:
        return await self._authz.resolver.view_membership(user_id, view_id)

    async def _view_team_memberships(
        self, view_membership: ViewMembership
    ) -> list[TeamMembership]:
        result = await self._session.execute(
            select(TeamMembership)
            .where(TeamMembership.view_membership_id == view_membership.id)
            .order_by(TeamMembership.id)
        )
        return list(result.scalars().all())


__all__ = ["MembershipConflictError", "TeamNotFoundError", "TeamsService"]
