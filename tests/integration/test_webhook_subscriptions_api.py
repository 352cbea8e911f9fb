from __future__ import annotations

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

SUBSCRIPTION = {
    "name": "Caster",
    "callbackUri": "https://caster.test/api/webhooks",
    "clientId": "caster-client",
    "clientSecret": "super-secret",
    "eventTypes": ["ViewCreated", "ViewDeleted", "ViewCreated"],
}


async def test_secret_is_never_returned(
    async_client: AsyncClient, admin_headers: dict[str, str]
) -> None:
    created = await async_client.post("/api/webhooks", json=SUBSCRIPTION, headers=admin_headers)

    assert created.status_code == 201
    body = created.json()
    assert body["clientSecret"] == "REDACTED"
    assert sorted(body["eventTypes"]) == ["ViewCreated", "ViewDeleted"]
    assert body["lastError"] is None

    listed = await async_client.get("/api/webhooks", headers=admin_headers)
    assert [item["clientSecret"] for item in listed.json()] == ["REDACTED"]


async def test_replace_and_delete_subscription(
    async_client: AsyncClient, admin_headers: dict[str, str]
) -> None:
    created = (
        await async_client.post("/api/webhooks", json=SUBSCRIPTION, headers=admin_headers)
    ).json()

    replaced = await async_client.put(
        f"/api/webhooks/{created['id']}",
        json={**SUBSCRIPTION, "eventTypes": ["ViewDeleted"]},
        headers=admin_headers,
    )
    assert replaced.status_code == 200
    assert replaced.json()["eventTypes"] == ["ViewDeleted"]

    deleted = await async_client.delete(f"/api/webhooks/{created['id']}", headers=admin_headers)
    assert deleted.status_code == 204
    missing = await async_client.get(f"/api/webhooks/{created['id']}", headers=admin_headers)
    assert missing.status_code == 404


async def test_callback_must_be_http(
    async_client: AsyncClient, admin_headers: dict[str, str]
) -> None:
    response = await async_client.post(
        "/api/webhooks",
        json={**SUBSCRIPTION, "callbackUri": "ftp://caster.test/hook"},
        headers=admin_headers,
    )

    assert response.status_code == 422


async def test_member_cannot_subscribe(
    async_client: AsyncClient, member_headers: dict[str, str]
) -> None:
    create = await async_client.post("/api/webhooks", json=SUBSCRIPTION, headers=member_headers)
    listing = await async_client.get("/api/webhooks", headers=member_headers)

    assert create.status_code == 403
    assert listing.status_code == 403
