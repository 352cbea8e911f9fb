from __future__ import annotations

from sqlalchemy import create_engine, inspect

import player_api.models  # noqa: F401
from player_api.db import Base
from player_api.db.database import DatabaseConfig, build_sync_url
from player_api.db.migrations import run_migrations
from player_api.settings import Settings


def test_upgrade_creates_every_mapped_table(settings: Settings) -> None:
    run_migrations(settings)

    engine = create_engine(build_sync_url(DatabaseConfig.from_settings(settings)))
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        assert set(Base.metadata.tables) <= tables
        assert "alembic_version" in tables

        primary_fk = [
            fk
            for fk in inspector.get_foreign_keys("view_memberships")
            if fk["constrained_columns"] == ["primary_team_membership_id"]
        ]
        assert [fk["referred_table"] for fk in primary_fk] == ["team_memberships"]
    finally:
        engine.dispose()


def test_upgrade_is_repeatable(settings: Settings) -> None:
    run_migrations(settings)
    run_migrations(settings)
