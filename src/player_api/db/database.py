"""Database engine + session factory (SQLite + PostgreSQL).

Standard behavior:
- One engine per process (created at app startup)
- One session per request (FastAPI dependency)
- Commit on success, rollback on exception
- SQLite: foreign keys on, WAL, busy_timeout; StaticPool for in-memory URLs
- PostgreSQL: pooled connections + pre-ping + recycle
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from player_api.settings import Settings

__all__ = [
    "DatabaseConfig",
    "Database",
    "db",
    "get_db_session",
    "build_sync_url",
    "build_async_url",
    "create_engine_for",
    "create_sessionmaker",
]


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Minimal DB config.

    ``url`` may be sync or async; runtime converts it to the async driver:

      sqlite -> sqlite+aiosqlite
      postgresql -> postgresql+asyncpg
    """

    url: str

    echo: bool = False

    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800  # seconds

    sqlite_journal_mode: str = "WAL"
    sqlite_busy_timeout_ms: int = 30_000

    @classmethod
    def from_settings(cls, settings: Settings) -> DatabaseConfig:
        return cls(
            url=settings.database_url or "sqlite:///./data/db/player.sqlite",
            echo=bool(settings.database_echo),
            pool_size=int(settings.database_pool_size),
            max_overflow=int(settings.database_max_overflow),
            pool_timeout=int(settings.database_pool_timeout),
            sqlite_busy_timeout_ms=int(settings.database_sqlite_busy_timeout_ms),
        )


# ---- URL helpers ------------------------------------------------------------

def _supported_backend(url: URL) -> str:
    backend = url.get_backend_name()
    if backend not in {"sqlite", "postgresql"}:
        raise ValueError("Only SQLite and PostgreSQL are supported.")
    return backend


def _is_sqlite_memory(url: URL) -> bool:
    database = (url.database or "").strip()
    if not database or database == ":memory:":
        return True
    return database.startswith("file:") and (url.query or {}).get("mode") == "memory"


def _ensure_sqlite_parent_dir(url: URL) -> None:
    database = (url.database or "").strip()
    if not database or database == ":memory:" or database.startswith("file:"):
        return
    path = Path(database)
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)


def build_sync_url(cfg: DatabaseConfig) -> str:
    """Return the *sync* SQLAlchemy URL string (for Alembic)."""
    url = make_url(cfg.url)
    if _supported_backend(url) == "sqlite":
        _ensure_sqlite_parent_dir(url)
        url = url.set(drivername="sqlite")
    else:
        url = url.set(drivername="postgresql+psycopg")
    return url.render_as_string(hide_password=False)


def build_async_url(cfg: DatabaseConfig) -> str:
    """Return the *async* SQLAlchemy URL string (for runtime)."""
    url = make_url(cfg.url)
    if _supported_backend(url) == "sqlite":
        url = url.set(drivername="sqlite+aiosqlite")
    else:
        url = url.set(drivername="postgresql+asyncpg")
    return url.render_as_string(hide_password=False)


def _build_engine_kwargs(url: URL, cfg: DatabaseConfig) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"echo": cfg.echo, "pool_pre_ping": True}

    if _supported_backend(url) == "sqlite":
        kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": cfg.sqlite_busy_timeout_ms / 1000.0,
        }
        if _is_sqlite_memory(url):
            kwargs["poolclass"] = StaticPool
        else:
            kwargs.update(pool_size=1, max_overflow=0, pool_timeout=max(1, cfg.pool_timeout))
    else:
        kwargs.update(
            pool_size=cfg.pool_size,
            max_overflow=cfg.max_overflow,
            pool_timeout=cfg.pool_timeout,
            pool_recycle=cfg.pool_recycle,
        )
    return kwargs


def create_engine_for(cfg: DatabaseConfig) -> AsyncEngine:
    """Create an async engine with the per-backend connection tuning applied."""

    async_url = build_async_url(cfg)
    url_obj = make_url(async_url)
    backend = _supported_backend(url_obj)
    if backend == "sqlite":
        _ensure_sqlite_parent_dir(url_obj)

    engine = create_async_engine(async_url, **_build_engine_kwargs(url_obj, cfg))

    if backend == "sqlite":
        journal_mode = "MEMORY" if _is_sqlite_memory(url_obj) else cfg.sqlite_journal_mode
        busy_ms = int(cfg.sqlite_busy_timeout_ms)

        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_on_connect(dbapi_conn, _):
            cur = dbapi_conn.cursor()
            try:
                cur.execute("PRAGMA foreign_keys=ON")
                cur.execute(f"PRAGMA busy_timeout={busy_ms}")
                cur.execute(f"PRAGMA journal_mode={journal_mode}")
            finally:
                cur.close()

    return engine


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


# ---- Database object --------------------------------------------------------

class Database:
    """Holds the process-wide engine + sessionmaker.

    Call `init(cfg)` once on startup.
    Call `await dispose()` on shutdown.
    """

    def __init__(self) -> None:
        self._cfg: DatabaseConfig | None = None
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call db.init(...) at startup.")
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        if self._sessionmaker is None:
            raise RuntimeError("Database not initialized. Call db.init(...) at startup.")
        return self._sessionmaker

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    def init(self, cfg: DatabaseConfig) -> None:
        """Create engine + sessionmaker (idempotent for identical config)."""
        if self._cfg == cfg and self._engine is not None:
            return
        self._cfg = cfg
        self._engine = create_engine_for(cfg)
        self._sessionmaker = create_sessionmaker(self._engine)

    async def dispose(self) -> None:
        """Dispose engine (call on shutdown)."""
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        self._cfg = None


db = Database()


async def close_session(session: AsyncSession) -> None:
    await asyncio.shield(session.close())


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one AsyncSession per request."""
    session = db.sessionmaker()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await close_session(session)
