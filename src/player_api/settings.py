"""Player API settings (pydantic v2 + pydantic-settings)."""

from __future__ import annotations

import json
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any
from uuid import UUID

from pydantic import Field, SecretStr, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from sqlalchemy.engine import make_url

# ---- Defaults ---------------------------------------------------------------

MODULE_DIR = Path(__file__).resolve().parent


def _detect_project_root() -> Path:
    """Pick the directory that holds alembic.ini + migrations."""

    for candidate in (MODULE_DIR.parent.parent, Path.cwd()):
        try:
            absolute = candidate.expanduser().resolve()
        except OSError:
            continue
        if (absolute / "alembic.ini").exists() and (absolute / "migrations").exists():
            return absolute
    return MODULE_DIR.parent.parent


DEFAULT_PROJECT_ROOT = _detect_project_root()
DEFAULT_ALEMBIC_INI = DEFAULT_PROJECT_ROOT / "alembic.ini"
DEFAULT_ALEMBIC_MIGRATIONS = DEFAULT_PROJECT_ROOT / "migrations"
DEFAULT_SQLITE_PATH = Path("./data/db/player.sqlite")
DEFAULT_CORS_ORIGINS = ["http://localhost:4301"]

DEFAULT_TEAM_ROLE = "View Member"
DEFAULT_VIEW_CREATOR_ROLE = "View Admin"

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


# ---- Helpers ----------------------------------------------------------------

def _parse_duration(value: Any, *, field_name: str) -> timedelta:
    """Accept seconds (int/float/str) or '5s'/'1m'/'1h'/'1d'."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            raise ValueError(f"{field_name} must not be blank")
        try:
            seconds = float(s)
        except ValueError:
            unit = s[-1].lower()
            num = s[:-1].strip()
            if unit not in _UNIT_SECONDS or not num:
                raise ValueError(
                    f"{field_name} must be secs or 'Xs','Xm','Xh','Xd'"
                ) from None
            try:
                seconds = float(num) * _UNIT_SECONDS[unit]
            except ValueError as exc:
                raise ValueError(
                    f"{field_name} must be secs or 'Xs','Xm','Xh','Xd'"
                ) from exc
    else:
        raise TypeError(f"{field_name} must be number, duration string, or timedelta")
    if seconds <= 0:
        raise ValueError(f"{field_name} must be > 0 seconds")
    return timedelta(seconds=seconds)


def _list_from_env(value: Any, *, default: list[str]) -> list[str]:
    """JSON array or comma string; strip empties; dedupe preserving order."""
    if value in (None, "", []):
        items = list(default)
    elif isinstance(value, str):
        s = value.strip()
        if s.startswith("["):
            try:
                parsed = json.loads(s)
            except json.JSONDecodeError as exc:
                raise ValueError("Expected a JSON array") from exc
            if not isinstance(parsed, list):
                raise ValueError("Expected a JSON array")
            items = [str(x).strip() for x in parsed if str(x).strip()]
        else:
            items = [seg.strip() for seg in s.split(",") if seg.strip()]
    elif isinstance(value, (list, tuple, set)):
        items = [str(x).strip() for x in value if str(x).strip()]
    else:
        raise TypeError("Expected string or list")

    seen, out = set(), []
    for x in items:
        if x not in seen:
            seen.add(x)
            out.append(x)
    return out


def _resolve_path(value: Path | str | None, *, default: Path) -> Path:
    if value in (None, ""):
        candidate = default
    elif isinstance(value, Path):
        candidate = value
    else:
        candidate = Path(str(value).strip())
    return candidate.expanduser().resolve()


# ---- Settings ---------------------------------------------------------------

class Settings(BaseSettings):
    """FastAPI settings loaded from PLAYER_* environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PLAYER_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    # Core
    app_name: str = "Player API"
    app_version: str = "3.0.0"
    api_docs_enabled: bool = True
    api_prefix: str = "/api"
    logging_level: str = "INFO"

    # Server
    server_cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS)
    )

    # Paths
    alembic_ini_path: Path = Field(default=DEFAULT_ALEMBIC_INI)
    alembic_migrations_dir: Path = Field(default=DEFAULT_ALEMBIC_MIGRATIONS)

    # Database
    database_url: str | None = None
    database_echo: bool = False
    database_pool_size: int = Field(5, ge=1)
    database_max_overflow: int = Field(10, ge=0)
    database_pool_timeout: int = Field(30, gt=0)
    database_sqlite_busy_timeout_ms: int = Field(30_000, ge=0)

    # Authentication (bearer JWT issued by the identity provider)
    jwt_secret: SecretStr | None = None
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = None
    jwt_issuer: str | None = None
    first_user_is_admin: bool = True
    seed_system_admin_ids: Annotated[list[UUID], NoDecode] = Field(default_factory=list)

    # Authorization (outbound client-credentials token endpoint)
    oauth_token_url: str | None = None

    # Roles
    default_team_role: str = DEFAULT_TEAM_ROLE
    default_view_creator_role: str = DEFAULT_VIEW_CREATOR_ROLE

    # Webhooks
    webhook_enabled: bool = True
    webhook_backoff_initial: timedelta = Field(default=timedelta(seconds=5))
    webhook_backoff_step: timedelta = Field(default=timedelta(seconds=5))
    webhook_backoff_max: timedelta = Field(default=timedelta(seconds=60))
    webhook_http_timeout: timedelta = Field(default=timedelta(seconds=30))
    webhook_stall_alert_attempts: int = Field(10, ge=1)

    # ---- Validators ----

    @field_validator("logging_level", mode="before")
    @classmethod
    def _v_log_level(cls, v: Any) -> str:
        s = ("" if v is None else str(v).strip()).upper()
        return s or "INFO"

    @field_validator("server_cors_origins", mode="before")
    @classmethod
    def _v_cors(cls, v: Any) -> list[str]:
        return _list_from_env(v, default=DEFAULT_CORS_ORIGINS)

    @field_validator("seed_system_admin_ids", mode="before")
    @classmethod
    def _v_admin_ids(cls, v: Any) -> list[str]:
        return _list_from_env(v, default=[])

    @field_validator("api_prefix", mode="before")
    @classmethod
    def _v_api_prefix(cls, v: Any) -> str:
        s = ("" if v is None else str(v).strip()).rstrip("/")
        if s and not s.startswith("/"):
            s = f"/{s}"
        return s

    @field_validator(
        "webhook_backoff_initial",
        "webhook_backoff_step",
        "webhook_backoff_max",
        "webhook_http_timeout",
        mode="before",
    )
    @classmethod
    def _v_durations(cls, v: Any, info: ValidationInfo) -> timedelta:
        return _parse_duration(v, field_name=info.field_name)

    @field_validator("jwt_secret", mode="before")
    @classmethod
    def _v_jwt_secret(cls, v: Any) -> SecretStr | None:
        if v is None:
            return None
        raw = v.get_secret_value() if isinstance(v, SecretStr) else str(v or "").strip()
        if raw and len(raw) < 32:
            raise ValueError("PLAYER_JWT_SECRET must be at least 32 characters.")
        return SecretStr(raw) if raw else None

    # ---- Finalize ----

    @model_validator(mode="after")
    def _finalize(self) -> Settings:
        self.alembic_ini_path = _resolve_path(self.alembic_ini_path, default=DEFAULT_ALEMBIC_INI)
        self.alembic_migrations_dir = _resolve_path(
            self.alembic_migrations_dir, default=DEFAULT_ALEMBIC_MIGRATIONS
        )

        if not self.database_url:
            sqlite = _resolve_path(DEFAULT_SQLITE_PATH, default=DEFAULT_SQLITE_PATH)
            self.database_url = f"sqlite+aiosqlite:///{sqlite.as_posix()}"

        url = make_url(self.database_url)
        backend = url.get_backend_name()
        if backend not in {"sqlite", "postgresql"}:
            raise ValueError("PLAYER_DATABASE_URL must point at SQLite or PostgreSQL")

        if self.webhook_backoff_max < self.webhook_backoff_initial:
            raise ValueError("PLAYER_WEBHOOK_BACKOFF_MAX must be >= PLAYER_WEBHOOK_BACKOFF_INITIAL")

        return self

    # ---- Convenience ----

    @property
    def jwt_secret_value(self) -> str | None:
        if self.jwt_secret is None:
            return None
        return self.jwt_secret.get_secret_value()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()


def reload_settings() -> Settings:
    """Clear the settings cache and reload from the environment."""

    get_settings.cache_clear()
    return get_settings()


__all__ = ["Settings", "get_settings", "reload_settings"]
