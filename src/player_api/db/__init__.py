"""DB package exports."""

from .base import NAMING_CONVENTION, Base, TimestampMixin, UUIDPrimaryKeyMixin, metadata, utc_now
from .database import (
    Database,
    DatabaseConfig,
    build_async_url,
    build_sync_url,
    create_engine_for,
    create_sessionmaker,
    db,
    get_db_session,
)
from .types import UTCDateTime, UUIDType

__all__ = [
    "Base",
    "metadata",
    "NAMING_CONVENTION",
    "utc_now",
    "UUIDPrimaryKeyMixin",
    "TimestampMixin",
    "UUIDType",
    "UTCDateTime",
    "Database",
    "DatabaseConfig",
    "db",
    "get_db_session",
    "build_sync_url",
    "build_async_url",
    "create_engine_for",
    "create_sessionmaker",
]
