from __future__ import annotations

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def _create_view(client: AsyncClient, headers: dict[str, str], **extra) -> dict:
    response = await client.post(
        "/api/views", json={"name": "Exercise", **extra}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_view_with_admin_team(
    async_client: AsyncClient, admin_headers: dict[str, str]
) -> None:
    view = await _create_view(async_client, admin_headers, createAdminTeam=True)

    assert view["status"] == "Active"
    teams = await async_client.get(f"/api/views/{view['id']}/teams", headers=admin_headers)
    assert [team["name"] for team in teams.json()] == ["Admin"]


async def test_member_without_grants_cannot_create_views(
    async_client: AsyncClient, member_headers: dict[str, str]
) -> None:
    response = await async_client.post(
        "/api/views", json={"name": "Nope"}, headers=member_headers
    )

    assert response.status_code == 403


async def test_membership_controls_visibility(
    async_client: AsyncClient,
    admin_headers: dict[str, str],
    member_headers: dict[str, str],
) -> None:
    member = (await async_client.get("/api/me", headers=member_headers)).json()
    view = await _create_view(async_client, admin_headers)

    hidden = await async_client.get(f"/api/views/{view['id']}", headers=member_headers)
    assert hidden.status_code == 403
    assert (await async_client.get("/api/views", headers=member_headers)).json() == []

    team = await async_client.post(
        f"/api/views/{view['id']}/teams", json={"name": "Crew"}, headers=admin_headers
    )
    assert team.status_code == 201
    added = await async_client.post(
        f"/api/teams/{team.json()['id']}/users/{member['id']}", headers=admin_headers
    )
    assert added.status_code == 201
    assert added.json()["isPrimary"] is True

    visible = await async_client.get(f"/api/views/{view['id']}", headers=member_headers)
    assert visible.status_code == 200
    listed = await async_client.get("/api/views", headers=member_headers)
    assert [item["id"] for item in listed.json()] == [view["id"]]

    # The default team role does not grant ViewView.
    teams = await async_client.get(f"/api/views/{view['id']}/teams", headers=member_headers)
    assert teams.status_code == 403


async def test_duplicate_membership_conflicts(
    async_client: AsyncClient,
    admin_headers: dict[str, str],
    member_headers: dict[str, str],
) -> None:
    member = (await async_client.get("/api/me", headers=member_headers)).json()
    view = await _create_view(async_client, admin_headers)
    team = (
        await async_client.post(
            f"/api/views/{view['id']}/teams", json={"name": "Crew"}, headers=admin_headers
        )
    ).json()
    path = f"/api/teams/{team['id']}/users/{member['id']}"

    assert (await async_client.post(path, headers=admin_headers)).status_code == 201
    assert (await async_client.post(path, headers=admin_headers)).status_code == 409


async def test_delete_view_removes_it(
    async_client: AsyncClient,
    admin_headers: dict[str, str],
    member_headers: dict[str, str],
) -> None:
    member = (await async_client.get("/api/me", headers=member_headers)).json()
    view = await _create_view(async_client, admin_headers, createAdminTeam=True)
    team = (
        await async_client.post(
            f"/api/views/{view['id']}/teams", json={"name": "Crew"}, headers=admin_headers
        )
    ).json()
    await async_client.post(f"/api/teams/{team['id']}/users/{member['id']}", headers=admin_headers)

    forbidden = await async_client.delete(f"/api/views/{view['id']}", headers=member_headers)
    assert forbidden.status_code == 403

    deleted = await async_client.delete(f"/api/views/{view['id']}", headers=admin_headers)
    assert deleted.status_code == 204
    missing = await async_client.get(f"/api/views/{view['id']}", headers=admin_headers)
    assert missing.status_code == 404
    assert (await async_client.get("/api/views", headers=member_headers)).json() == []


async def test_unknown_parent_view_is_not_found(
    async_client: AsyncClient, admin_headers: dict[str, str]
) -> None:
    response = await async_client.post(
        "/api/views",
        json={"name": "Child", "parentViewId": "00000000-0000-0000-0000-000000000001"},
        headers=admin_headers,
    )

    assert response.status_code == 404
