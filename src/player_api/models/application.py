"""Applications embedded in views and their per-team instances."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String, false
from sqlalchemy.orm import Mapped, mapped_column

from player_api.db import Base, UUIDPrimaryKeyMixin, UUIDType


class Application(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "applications"

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    embeddable: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    view_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("views.id", ondelete="CASCADE"), nullable=False, index=True
    )


class ApplicationInstance(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "application_instances"

    application_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    team_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


__all__ = ["Application", "ApplicationInstance"]
