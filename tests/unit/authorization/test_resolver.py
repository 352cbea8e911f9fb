"""Permission resolution across system, view and team scopes."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import select

from player_api.features.authorization.catalog import (
    TEAM_MEMBER,
    TEAM_PERMISSIONS,
    SystemPermissions,
    TeamPermissions,
    ViewPermissions,
)
from player_api.features.authorization.resolver import (
    TEAM_BUNDLES,
    PermissionResolver,
    SystemScope,
    TeamScope,
    ViewScope,
)
from player_api.models import Permission, Role, TeamPermission, TeamRole
from tests.utils import (
    add_member,
    assign_team_permission,
    create_team,
    create_user,
    create_view,
    grant_permission,
)


async def _catalog_names(session, model) -> frozenset[str]:
    return frozenset((await session.execute(select(model.name))).scalars().all())


async def test_non_member_falls_back_to_top_level_wildcard(session) -> None:
    admin = await create_user(session, role="Administrator")
    view = await create_view(session)
    team = await create_team(session, view)

    resolver = PermissionResolver(session=session)

    expected = await _catalog_names(session, Permission)
    assert await resolver.resolve(admin.id, ViewScope(view.id)) == expected
    assert await resolver.resolve(admin.id, TeamScope(team.id)) == expected


async def test_member_ignores_top_level_grants_in_view(session) -> None:
    admin = await create_user(session, role="Administrator")
    view = await create_view(session)
    team = await create_team(session, view)
    await add_member(session, admin, team)

    resolver = PermissionResolver(session=session)

    assert await resolver.resolve(admin.id, ViewScope(view.id)) == {TEAM_MEMBER}
    assert SystemPermissions.SYSTEM_ADMIN in await resolver.resolve(admin.id, SystemScope())


async def test_member_without_roles_gets_marker_and_direct_assignments(session) -> None:
    user = await create_user(session)
    view = await create_view(session)
    team = await create_team(session, view)
    await add_member(session, user, team)
    await assign_team_permission(session, team, TeamPermissions.UPLOAD_VM_FILES)

    resolved = await PermissionResolver(session=session).resolve(user.id, TeamScope(team.id))

    assert resolved == {TEAM_MEMBER, TeamPermissions.UPLOAD_VM_FILES}


async def test_primary_team_chain_combines_roles_and_assignments(session) -> None:
    user = await create_user(session)
    view = await create_view(session)
    team = await create_team(session, view, role="Observer")
    await add_member(session, user, team, role="View Member")
    await assign_team_permission(session, team, ViewPermissions.EDIT_VIEW)

    resolved = await PermissionResolver(session=session).resolve(user.id, ViewScope(view.id))

    assert resolved == {
        TEAM_MEMBER,
        ViewPermissions.VIEW_VIEW,
        ViewPermissions.EDIT_VIEW,
        TeamPermissions.VIEW_TEAM,
        TeamPermissions.EDIT_TEAM,
        TeamPermissions.UPLOAD_TEAM_ISOS,
        TeamPermissions.UPLOAD_VM_FILES,
    }


async def test_only_the_primary_team_counts(session) -> None:
    user = await create_user(session)
    view = await create_view(session)
    primary = await create_team(session, view, name="Primary")
    secondary = await create_team(session, view, name="Secondary", role="View Admin")
    await add_member(session, user, primary)
    await add_member(session, user, secondary, primary=False)

    resolver = PermissionResolver(session=session)

    assert await resolver.resolve(user.id, TeamScope(secondary.id)) == {TEAM_MEMBER}

    claims = {claim.team_id: claim for claim in await resolver.team_permission_claims(user.id)}
    assert claims[primary.id].is_primary
    assert not claims[secondary.id].is_primary
    assert claims[secondary.id].permissions == {TEAM_MEMBER}


async def test_member_without_primary_team_resolves_empty(session) -> None:
    user = await create_user(session)
    view = await create_view(session)
    team = await create_team(session, view)
    await add_member(session, user, team)
    view_membership = await PermissionResolver(session=session).view_membership(user.id, view.id)
    assert view_membership is not None
    view_membership.primary_team_membership_id = None
    await session.flush()

    resolution = await PermissionResolver(session=session).resolve_view(user.id, view.id)

    assert resolution.is_member
    assert resolution.permissions == frozenset()


async def test_wildcard_role_tracks_catalog_growth(session) -> None:
    user = await create_user(session, role="Administrator")
    session.add(Permission(name="LaunchRockets", description="added later"))
    await session.flush()

    resolved = await PermissionResolver(session=session).resolve(user.id, SystemScope())

    assert "LaunchRockets" in resolved
    assert resolved == await _catalog_names(session, Permission)


async def test_wildcard_team_role_expands_to_whole_team_catalog(session) -> None:
    view_admin_id = await session.scalar(select(TeamRole.id).where(TeamRole.name == "View Admin"))
    session.add(TeamPermission(name="ResetConsoles"))
    await session.flush()

    resolved = await PermissionResolver(session=session).bundle_permissions(
        TEAM_BUNDLES, view_admin_id
    )

    assert resolved == await _catalog_names(session, TeamPermission)
    assert len(resolved) == len(TEAM_PERMISSIONS) + 1


async def test_top_level_combines_role_and_direct_grants(session) -> None:
    user = await create_user(session, role="Content Developer")
    await grant_permission(session, user, SystemPermissions.VIEW_USERS)

    resolved = await PermissionResolver(session=session).resolve(user.id, SystemScope())

    assert resolved == {SystemPermissions.CREATE_VIEWS, SystemPermissions.VIEW_USERS}


async def test_unknown_user_and_team_resolve_empty(session) -> None:
    resolver = PermissionResolver(session=session)

    assert await resolver.resolve(uuid4(), SystemScope()) == frozenset()
    assert await resolver.resolve(uuid4(), TeamScope(uuid4())) == frozenset()


async def test_deleted_role_detaches_from_users(session) -> None:
    role = Role(name="Temporary", all_permissions=True)
    session.add(role)
    await session.flush()
    user = await create_user(session)
    user.role_id = role.id
    await session.flush()
    await session.delete(role)
    await session.flush()
    await session.refresh(user)

    assert await PermissionResolver(session=session).resolve(user.id, SystemScope()) == frozenset()
