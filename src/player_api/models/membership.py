"""Membership graph: users in views and teams."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from player_api.db import Base, UUIDPrimaryKeyMixin, UUIDType


class ViewMembership(UUIDPrimaryKeyMixin, Base):
    """A user's relationship to a view; designates one primary team membership."""

    __tablename__ = "view_memberships"
    __table_args__ = (UniqueConstraint("view_id", "user_id"),)

    view_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("views.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    primary_team_membership_id: Mapped[UUID | None] = mapped_column(
        UUIDType(),
        ForeignKey(
            "team_memberships.id",
            ondelete="RESTRICT",
            use_alter=True,
            name="view_memberships_primary_team_membership_id_fkey",
        ),
        nullable=True,
    )


class TeamMembership(UUIDPrimaryKeyMixin, Base):
    """A user on a team; ``role_id`` overrides the team role for this user only."""

    __tablename__ = "team_memberships"
    __table_args__ = (UniqueConstraint("team_id", "user_id"),)

    team_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    view_membership_id: Mapped[UUID] = mapped_column(
        UUIDType(),
        ForeignKey("view_memberships.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role_id: Mapped[UUID | None] = mapped_column(
        UUIDType(), ForeignKey("team_roles.id", ondelete="SET NULL"), nullable=True
    )


__all__ = ["TeamMembership", "ViewMembership"]
