"""Fixtures that run the full application against a migrated SQLite database."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from uuid import UUID, uuid4

import jwt
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from player_api.db.migrations import run_migrations
from player_api.main import create_app
from player_api.settings import Settings
from tests.utils import JWT_SECRET


@pytest.fixture()
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    run_migrations(settings)
    application = create_app(settings)
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


def mint_token(user_id: UUID, name: str | None = None) -> str:
    claims: dict[str, str] = {"sub": str(user_id)}
    if name is not None:
        claims["name"] = name
    return jwt.encode(claims, JWT_SECRET, algorithm="HS256")


@pytest.fixture()
def auth_headers() -> Callable[..., dict[str, str]]:
    def _build(user_id: UUID | None = None, name: str | None = None) -> dict[str, str]:
        return {"Authorization": f"Bearer {mint_token(user_id or uuid4(), name)}"}

    return _build


@pytest.fixture()
async def admin_headers(
    async_client: AsyncClient, auth_headers: Callable[..., dict[str, str]]
) -> dict[str, str]:
    """Headers for the first user to authenticate, who becomes Administrator."""

    headers = auth_headers(name="Admin")
    response = await async_client.get("/api/me", headers=headers)
    assert response.status_code == 200, response.text
    return headers


@pytest.fixture()
async def member_headers(
    async_client: AsyncClient,
    auth_headers: Callable[..., dict[str, str]],
    admin_headers: dict[str, str],
) -> dict[str, str]:
    """Headers for a second user with no top-level grants."""

    headers = auth_headers(name="Member")
    response = await async_client.get("/api/me", headers=headers)
    assert response.status_code == 200, response.text
    return headers
