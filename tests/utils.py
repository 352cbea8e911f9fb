"""Helper functions shared across tests."""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from player_api.models import (
    Permission,
    Role,
    Team,
    TeamMembership,
    TeamPermission,
    TeamPermissionAssignment,
    TeamRole,
    User,
    UserPermission,
    View,
    ViewMembership,
)

JWT_SECRET = "test-jwt-secret-for-tests-please-change"
TOKEN_URL = "https://identity.test/connect/token"


async def create_user(
    session: AsyncSession,
    *,
    name: str = "user",
    role: str | None = None,
    user_id: UUID | None = None,
) -> User:
    user = User(id=user_id or uuid4(), name=name)
    if role is not None:
        user.role_id = await session.scalar(select(Role.id).where(Role.name == role))
    session.add(user)
    await session.flush()
    return user


async def grant_permission(session: AsyncSession, user: User, name: str) -> None:
    permission_id = await session.scalar(select(Permission.id).where(Permission.name == name))
    assert permission_id is not None, name
    session.add(UserPermission(user_id=user.id, permission_id=permission_id))
    await session.flush()


async def create_view(session: AsyncSession, *, name: str = "Exercise") -> View:
    view = View(name=name)
    session.add(view)
    await session.flush()
    return view


async def create_team(
    session: AsyncSession,
    view: View,
    *,
    name: str = "Blue",
    role: str | None = None,
) -> Team:
    team = Team(name=name, view_id=view.id)
    if role is not None:
        team.role_id = await session.scalar(select(TeamRole.id).where(TeamRole.name == role))
    session.add(team)
    await session.flush()
    return team


async def add_member(
    session: AsyncSession,
    user: User,
    team: Team,
    *,
    primary: bool = True,
    role: str | None = None,
) -> TeamMembership:
    """Put ``user`` on ``team``; the first team in a view is always primary."""

    view_membership = await session.scalar(
        select(ViewMembership).where(
            ViewMembership.user_id == user.id,
            ViewMembership.view_id == team.view_id,
        )
    )
    if view_membership is None:
        view_membership = ViewMembership(user_id=user.id, view_id=team.view_id)
        session.add(view_membership)
        await session.flush()
        primary = True

    membership = TeamMembership(
        team_id=team.id,
        user_id=user.id,
        view_membership_id=view_membership.id,
    )
    if role is not None:
        membership.role_id = await session.scalar(select(TeamRole.id).where(TeamRole.name == role))
    session.add(membership)
    await session.flush()

    if primary:
        view_membership.primary_team_membership_id = membership.id
        await session.flush()
    return membership


async def assign_team_permission(session: AsyncSession, team: Team, name: str) -> None:
    permission_id = await session.scalar(
        select(TeamPermission.id).where(TeamPermission.name == name)
    )
    assert permission_id is not None, name
    session.add(TeamPermissionAssignment(team_id=team.id, team_permission_id=permission_id))
    await session.flush()


__all__ = [
    "JWT_SECRET",
    "TOKEN_URL",
    "add_member",
    "assign_team_permission",
    "create_team",
    "create_user",
    "create_view",
    "grant_permission",
]
