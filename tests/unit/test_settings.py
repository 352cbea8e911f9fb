from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest
from pydantic import ValidationError

from player_api.settings import Settings


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.api_prefix == "/api"
    assert settings.database_url.startswith("sqlite+aiosqlite:///")
    assert settings.webhook_backoff_initial == timedelta(seconds=5)
    assert settings.webhook_backoff_max == timedelta(seconds=60)
    assert settings.jwt_secret is None
    assert settings.alembic_ini_path.name == "alembic.ini"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    admin_id = uuid4()
    monkeypatch.setenv("PLAYER_API_PREFIX", "v2/")
    monkeypatch.setenv("PLAYER_SERVER_CORS_ORIGINS", "http://a.test, http://b.test,http://a.test")
    monkeypatch.setenv("PLAYER_WEBHOOK_BACKOFF_MAX", "2m")
    monkeypatch.setenv("PLAYER_SEED_SYSTEM_ADMIN_IDS", f'["{admin_id}"]')
    monkeypatch.setenv("PLAYER_LOGGING_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.api_prefix == "/v2"
    assert settings.server_cors_origins == ["http://a.test", "http://b.test"]
    assert settings.webhook_backoff_max == timedelta(minutes=2)
    assert settings.seed_system_admin_ids == [admin_id]
    assert settings.logging_level == "DEBUG"


@pytest.mark.parametrize(
    "overrides",
    [
        {"jwt_secret": "too-short"},
        {"webhook_backoff_initial": "0"},
        {"webhook_backoff_step": "5 parsecs"},
        {"webhook_backoff_initial": "2m", "webhook_backoff_max": "1m"},
        {"database_url": "mysql://player@localhost/player"},
    ],
)
def test_invalid_values_are_rejected(overrides: dict[str, str]) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_jwt_secret_is_hidden() -> None:
    secret = "x" * 40
    settings = Settings(_env_file=None, jwt_secret=secret)

    assert settings.jwt_secret_value == secret
    assert secret not in repr(settings)
