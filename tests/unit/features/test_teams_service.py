from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy import select

from player_api.core.auth import ForbiddenError
from player_api.features.authorization import AuthorizationService, TeamPermissions
from player_api.features.teams.schemas import TeamForm
from player_api.features.teams.service import (
    MembershipConflictError,
    TeamNotFoundError,
    TeamsService,
)
from player_api.features.users.service import UserNotFoundError
from player_api.models import TeamRole, ViewMembership
from tests.utils import (
    add_member,
    assign_team_permission,
    create_team,
    create_user,
    create_view,
)


def _service(session, settings, user) -> TeamsService:
    return TeamsService(
        session=session,
        settings=settings,
        authorization=AuthorizationService(session=session, user_id=user.id),
    )


@pytest.fixture()
async def range_view(session):
    """A view whose 'Admin' team holds ManageView, with one manager on it."""

    view = await create_view(session)
    admin_team = await create_team(session, view, name="Admin")
    await assign_team_permission(session, admin_team, "ManageView")
    manager = await create_user(session, name="manager")
    await add_member(session, manager, admin_team)
    return view, manager


async def test_create_team_uses_default_role(session, settings, range_view) -> None:
    view, manager = range_view

    team = await _service(session, settings, manager).create_team(
        view_id=view.id, form=TeamForm(name="Red")
    )

    view_member_id = await session.scalar(
        select(TeamRole.id).where(TeamRole.name == settings.default_team_role)
    )
    assert team.role_id == view_member_id
    teams = await _service(session, settings, manager).list_teams(view_id=view.id)
    assert [t.name for t in teams] == ["Admin", "Red"]


async def test_membership_graph_lifecycle(session, settings, range_view) -> None:
    view, manager = range_view
    service = _service(session, settings, manager)
    red = await service.create_team(view_id=view.id, form=TeamForm(name="Red"))
    blue = await service.create_team(view_id=view.id, form=TeamForm(name="Blue"))
    player = await create_user(session, name="player")

    first = await service.add_user_to_team(team_id=red.id, user_id=player.id)
    second = await service.add_user_to_team(team_id=blue.id, user_id=player.id)
    assert first.is_primary
    assert not second.is_primary
    assert first.view_membership_id == second.view_membership_id

    with pytest.raises(MembershipConflictError):
        await service.add_user_to_team(team_id=red.id, user_id=player.id)

    # Leaving the primary team hands the role to the remaining team.
    await service.remove_user_from_team(team_id=red.id, user_id=player.id)
    (remaining,) = await service.list_user_memberships(user_id=player.id, view_id=view.id)
    assert remaining.team_id == blue.id
    assert remaining.is_primary

    await service.remove_user_from_team(team_id=blue.id, user_id=player.id)
    assert await session.get(ViewMembership, first.view_membership_id) is None
    assert await service.list_user_memberships(user_id=player.id, view_id=view.id) == []


async def test_set_primary_team(session, settings) -> None:
    view = await create_view(session)
    red = await create_team(session, view, name="Red")
    blue = await create_team(session, view, name="Blue")
    other = await create_team(session, await create_view(session, name="Other"), name="Green")
    player = await create_user(session, name="player")
    await add_member(session, player, red)
    await add_member(session, player, blue, primary=False)
    service = _service(session, settings, player)

    changed = await service.set_primary_team(user_id=player.id, view_id=view.id, team_id=blue.id)
    assert changed.is_primary
    assert changed.team_id == blue.id

    with pytest.raises(MembershipConflictError):
        await service.set_primary_team(user_id=player.id, view_id=view.id, team_id=other.id)

    stranger = await create_user(session, name="stranger")
    with pytest.raises(ForbiddenError):
        await _service(session, settings, stranger).set_primary_team(
            user_id=player.id, view_id=view.id, team_id=red.id
        )


async def test_team_manager_may_add_members_to_own_team(session, settings) -> None:
    view = await create_view(session)
    red = await create_team(session, view, name="Red")
    blue = await create_team(session, view, name="Blue")
    captain = await create_user(session, name="captain")
    await add_member(session, captain, red)
    await assign_team_permission(session, red, TeamPermissions.MANAGE_TEAM)
    recruit = await create_user(session, name="recruit")
    service = _service(session, settings, captain)

    added = await service.add_user_to_team(team_id=red.id, user_id=recruit.id)
    assert added.team_id == red.id

    with pytest.raises(ForbiddenError):
        await service.add_user_to_team(team_id=blue.id, user_id=recruit.id)


async def test_missing_targets(session, settings, range_view) -> None:
    view, manager = range_view
    service = _service(session, settings, manager)
    team = await service.create_team(view_id=view.id, form=TeamForm(name="Red"))

    with pytest.raises(UserNotFoundError):
        await service.add_user_to_team(team_id=team.id, user_id=uuid4())
    with pytest.raises(TeamNotFoundError):
        await service.add_user_to_team(team_id=uuid4(), user_id=manager.id)
