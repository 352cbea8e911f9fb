"""Views (tenant scopes) and the teams they own."""

from __future__ import annotations

from enum import Enum
from uuid import UUID

from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from player_api.db import Base, TimestampMixin, UUIDPrimaryKeyMixin, UUIDType


class ViewStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class View(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Top-level tenant scope.

    ``parent_view_id`` is a plain lookup key into the same table; no parent or
    child object graph is mapped.
    """

    __tablename__ = "views"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ViewStatus] = mapped_column(
        SAEnum(
            ViewStatus,
            name="view_status",
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=ViewStatus.ACTIVE,
    )
    parent_view_id: Mapped[UUID | None] = mapped_column(
        UUIDType(), ForeignKey("views.id", ondelete="SET NULL"), nullable=True, index=True
    )


class Team(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "teams"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    view_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("views.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role_id: Mapped[UUID | None] = mapped_column(
        UUIDType(), ForeignKey("team_roles.id", ondelete="SET NULL"), nullable=True
    )


__all__ = ["Team", "View", "ViewStatus"]
