"""User model."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from player_api.db import Base, TimestampMixin, UUIDPrimaryKeyMixin, UUIDType


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A person known to the API; the id is the identity provider subject."""

    __tablename__ = "users"

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role_id: Mapped[UUID | None] = mapped_column(
        UUIDType(), ForeignKey("roles.id", ondelete="SET NULL"), nullable=True
    )


__all__ = ["User"]
