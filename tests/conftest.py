"""Shared pytest fixtures for Player API tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

for var in [name for name in os.environ if name.startswith("PLAYER_")]:
    os.environ.pop(var, None)

from player_api.settings import Settings  # noqa: E402
from tests.utils import JWT_SECRET, TOKEN_URL  # noqa: E402


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite file with fast webhook retries."""

    database = (tmp_path / "db" / "player.sqlite").as_posix()
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{database}",
        jwt_secret=JWT_SECRET,
        oauth_token_url=TOKEN_URL,
        webhook_backoff_initial=0.01,
        webhook_backoff_step=0.01,
        webhook_backoff_max=0.05,
        server_cors_origins="http://localhost:4301",
    )
