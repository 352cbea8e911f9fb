"""View lifecycle: creation with an optional admin team, lookup and deletion."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from player_api.common.logging import log_context
from player_api.features.authorization.catalog import (
    TEAM_MEMBER,
    SystemPermissions,
    ViewPermissions,
)
from player_api.features.authorization.service import AuthorizationService
from player_api.features.webhooks.events import (
    EventPublisher,
    publish_after_commit,
    view_created,
    view_deleted,
)
from player_api.models import (
    Team,
    TeamMembership,
    TeamPermission,
    TeamPermissionAssignment,
    TeamRole,
    View,
    ViewMembership,
)
from player_api.settings import Settings

from .schemas import ViewForm, ViewOut

logger = logging.getLogger(__name__)

ADMIN_TEAM_NAME = "Admin"


class ViewNotFoundError(ValueError):
    """Raised when a view cannot be located."""


class ViewsService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        authorization: AuthorizationService,
        publisher: EventPublisher | None = None,
    ) -> None:
        self._session = session
        self._settings = settings
        self._authz = authorization
        self._publisher = publisher

    async def list_views(self) -> list[ViewOut]:
        """Every view for ``ViewViews`` holders, otherwise the caller's views."""

        stmt = select(View).order_by(View.name, View.id)
        if not await self._authz.authorize(system_permissions=(SystemPermissions.VIEW_VIEWS,)):
            stmt = stmt.where(View.id.in_(await self._authz.get_authorized_view_ids()))
        result = await self._session.execute(stmt)
        return [ViewOut.model_validate(view) for view in result.scalars().all()]

    async def get_view(self, *, view_id: UUID) -> ViewOut:
        await self._authz.ensure_entity(
            View,
            view_id,
            system_permissions=(SystemPermissions.VIEW_VIEWS,),
            view_permissions=(ViewPermissions.VIEW_VIEW, TEAM_MEMBER),
        )
        return ViewOut.model_validate(await self._require_view(view_id))

    async def create_view(self, *, form: ViewForm) -> ViewOut:
        """Create a view; with ``create_admin_team`` the caller becomes its admin.

        The admin team gets the configured view-creator team role plus a direct
        ``ManageView`` assignment, and becomes the caller's primary team.
        """

        await self._authz.ensure(system_permissions=(SystemPermissions.CREATE_VIEWS,))
        if form.parent_view_id is not None:
            await self._require_view(form.parent_view_id)

        view = View(
            name=form.name,
            description=form.description,
            status=form.status,
            parent_view_id=form.parent_view_id,
        )
        self._session.add(view)
        await self._session.flush()

        if form.create_admin_team:
            await self._create_admin_team(view)

        publish_after_commit(
            self._session,
            self._publisher,
            view_created(view.id, parent_id=view.parent_view_id),
        )
        logger.info(
            "view.created",
            extra=log_context(
                view_id=view.id,
                user_id=self._authz.user_id,
                admin_team=form.create_admin_team,
            ),
        )
        return ViewOut.model_validate(view)

    async def delete_view(self, *, view_id: UUID) -> None:
        await self._authz.ensure_entity(
            View,
            view_id,
            system_permissions=(SystemPermissions.MANAGE_VIEWS,),
            view_permissions=(ViewPermissions.MANAGE_VIEW,),
        )
        await self._require_view(view_id)

        # Primary pointers are RESTRICT; clear them before the cascade runs.
        await self._session.execute(
            update(ViewMembership)
            .where(ViewMembership.view_id == view_id)
            .values(primary_team_membership_id=None)
        )
        await self._session.execute(delete(View).where(View.id == view_id))

        publish_after_commit(self._session, self._publisher, view_deleted(view_id))
        logger.info("view.deleted", extra=log_context(view_id=view_id, user_id=self._authz.user_id))

    # ------------- helpers ------------------------

    async def _require_view(self, view_id: UUID) -> View:
        view = await self._session.get(View, view_id)
        if view is None:
            raise ViewNotFoundError(f"View {view_id} not found")
        return view

    async def _create_admin_team(self, view: View) -> Team:
        user_id = self._authz.user_id
        role_id = await self._session.scalar(
            select(TeamRole.id).where(TeamRole.name == self._settings.default_view_creator_role)
        )
        team = Team(name=ADMIN_TEAM_NAME, view_id=view.id, role_id=role_id)
        membership = ViewMembership(view_id=view.id, user_id=user_id)
        self._session.add_all([team, membership])
        await self._session.flush()

        manage_view_id = await self._session.scalar(
            select(TeamPermission.id).where(TeamPermission.name == ViewPermissions.MANAGE_VIEW)
        )
        if manage_view_id is not None:
            self._session.add(
                TeamPermissionAssignment(team_id=team.id, team_permission_id=manage_view_id)
            )

        team_membership = TeamMembership(
            team_id=team.id,
            user_id=user_id,
            view_membership_id=membership.id,
        )
        self._session.add(team_membership)
        await self._session.flush()

        membership.primary_team_membership_id = team_membership.id
        await self._session.flush()
        return team


__all__ = ["ADMIN_TEAM_NAME", "ViewNotFoundError", "ViewsService"]
