"""Entitlement store: system and team permission catalogs, roles and grants."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column

from player_api.db import Base, UUIDPrimaryKeyMixin, UUIDType


class _CatalogEntry(UUIDPrimaryKeyMixin):
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    immutable: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )


class _Bundle(UUIDPrimaryKeyMixin):
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    all_permissions: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    immutable: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )


# ---------------------------------------------------------------------------
# System scope
# ---------------------------------------------------------------------------


class Permission(_CatalogEntry, Base):
    """System-scope permission catalog entry."""

    __tablename__ = "permissions"


class Role(_Bundle, Base):
    """Named bundle of system permissions assigned through ``User.role_id``."""

    __tablename__ = "roles"


class RolePermission(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "role_permissions"
    __table_args__ = (UniqueConstraint("role_id", "permission_id"),)

    role_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("roles.id", ondelete="CASCADE"), nullable=False
    )
    permission_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False
    )


class UserPermission(UUIDPrimaryKeyMixin, Base):
    """Direct system-scope grant to a user."""

    __tablename__ = "user_permissions"
    __table_args__ = (UniqueConstraint("user_id", "permission_id"),)

    user_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    permission_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False
    )


# ---------------------------------------------------------------------------
# Team scope
# ---------------------------------------------------------------------------


class TeamPermission(_CatalogEntry, Base):
    """Team-scope permission catalog entry (covers view- and team-level actions)."""

    __tablename__ = "team_permissions"


class TeamRole(_Bundle, Base):
    """Bundle of team permissions assigned to a team or a single membership."""

    __tablename__ = "team_roles"


class TeamRolePermission(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "team_role_permissions"
    __table_args__ = (UniqueConstraint("team_role_id", "team_permission_id"),)

    team_role_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("team_roles.id", ondelete="CASCADE"), nullable=False
    )
    team_permission_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("team_permissions.id", ondelete="CASCADE"), nullable=False
    )


class TeamPermissionAssignment(UUIDPrimaryKeyMixin, Base):
    """Direct team-permission grant to a team."""

    __tablename__ = "team_permission_assignments"
    __table_args__ = (UniqueConstraint("team_id", "team_permission_id"),)

    team_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    team_permission_id: Mapped[UUID] = mapped_column(
        UUIDType(), ForeignKey("team_permissions.id", ondelete="CASCADE"), nullable=False
    )


__all__ = [
    "Permission",
    "Role",
    "RolePermission",
    "TeamPermission",
    "TeamPermissionAssignment",
    "TeamRole",
    "TeamRolePermission",
    "UserPermission",
]
