from __future__ import annotations

from collections.abc import Callable
from uuid import uuid4

import jwt
import pytest
from httpx import AsyncClient

from tests.utils import JWT_SECRET

pytestmark = pytest.mark.asyncio


async def test_missing_token_is_rejected(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/me")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


async def test_token_signed_with_other_secret_is_rejected(async_client: AsyncClient) -> None:
    token = jwt.encode({"sub": str(uuid4())}, "some-other-secret-value-x", algorithm="HS256")

    response = await async_client.get("/api/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


async def test_token_with_non_uuid_subject_is_rejected(async_client: AsyncClient) -> None:
    token = jwt.encode({"sub": "not-a-uuid"}, JWT_SECRET, algorithm="HS256")

    response = await async_client.get("/api/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


async def test_first_user_becomes_administrator(
    async_client: AsyncClient, auth_headers: Callable[..., dict[str, str]]
) -> None:
    user_id = uuid4()

    response = await async_client.get("/api/me", headers=auth_headers(user_id, "Ada"))

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == str(user_id)
    assert body["name"] == "Ada"
    assert body["isSystemAdmin"] is True
    assert "SystemAdmin" in body["permissions"]


async def test_later_users_have_no_grants(
    async_client: AsyncClient,
    admin_headers: dict[str, str],
    member_headers: dict[str, str],
) -> None:
    response = await async_client.get("/api/me", headers=member_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["isSystemAdmin"] is False
    assert body["permissions"] == []
    mine = await async_client.get("/api/me/permissions", headers=member_headers)
    assert mine.json() == []


async def test_display_name_follows_token(
    async_client: AsyncClient, auth_headers: Callable[..., dict[str, str]]
) -> None:
    user_id = uuid4()
    await async_client.get("/api/me", headers=auth_headers(user_id, "Before"))

    response = await async_client.get("/api/me", headers=auth_headers(user_id, "After"))

    assert response.json()["name"] == "After"
