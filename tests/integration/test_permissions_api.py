from __future__ import annotations

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def _permission_id(client: AsyncClient, headers: dict[str, str], name: str) -> str:
    response = await client.get("/api/permissions", headers=headers)
    assert response.status_code == 200
    return next(item["id"] for item in response.json() if item["name"] == name)


async def test_built_in_catalog_is_listed(
    async_client: AsyncClient, admin_headers: dict[str, str]
) -> None:
    response = await async_client.get("/api/permissions", headers=admin_headers)

    assert response.status_code == 200
    by_name = {item["name"]: item for item in response.json()}
    assert by_name["SystemAdmin"]["immutable"] is True
    assert "ManageWebhookSubscriptions" in by_name


async def test_immutable_permission_cannot_change(
    async_client: AsyncClient, admin_headers: dict[str, str]
) -> None:
    permission_id = await _permission_id(async_client, admin_headers, "SystemAdmin")

    update = await async_client.put(
        f"/api/permissions/{permission_id}",
        json={"name": "Renamed"},
        headers=admin_headers,
    )
    delete = await async_client.delete(f"/api/permissions/{permission_id}", headers=admin_headers)

    assert update.status_code == 403
    assert delete.status_code == 403


async def test_custom_permission_lifecycle(
    async_client: AsyncClient, admin_headers: dict[str, str]
) -> None:
    created = await async_client.post(
        "/api/permissions",
        json={"name": "RunReports", "description": "Can run reports"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    body = created.json()
    assert body["immutable"] is False

    duplicate = await async_client.post(
        "/api/permissions", json={"name": "RunReports"}, headers=admin_headers
    )
    assert duplicate.status_code == 409

    renamed = await async_client.put(
        f"/api/permissions/{body['id']}",
        json={"name": "RunAllReports"},
        headers=admin_headers,
    )
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "RunAllReports"

    deleted = await async_client.delete(f"/api/permissions/{body['id']}", headers=admin_headers)
    assert deleted.status_code == 204
    missing = await async_client.get(f"/api/permissions/{body['id']}", headers=admin_headers)
    assert missing.status_code == 404


async def test_member_cannot_manage_catalog(
    async_client: AsyncClient, member_headers: dict[str, str]
) -> None:
    response = await async_client.post(
        "/api/permissions", json={"name": "Sneaky"}, headers=member_headers
    )

    assert response.status_code == 403


async def test_granting_permission_to_user(
    async_client: AsyncClient,
    admin_headers: dict[str, str],
    member_headers: dict[str, str],
) -> None:
    member = (await async_client.get("/api/me", headers=member_headers)).json()
    permission_id = await _permission_id(async_client, admin_headers, "CreateViews")

    granted = await async_client.post(
        f"/api/users/{member['id']}/permissions/{permission_id}", headers=admin_headers
    )

    assert granted.status_code == 204
    mine = await async_client.get("/api/me/permissions", headers=member_headers)
    assert mine.json() == ["CreateViews"]
