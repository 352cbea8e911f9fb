"""Schemas for the current-user endpoint."""

from __future__ import annotations

from uuid import UUID

from pydantic import Field

from player_api.common.schema import BaseSchema


class UserOut(BaseSchema):
    id: UUID
    name: str | None = None
    role_id: UUID | None = None


class MeOut(UserOut):
    """The caller, with their top-level permission set."""

    is_system_admin: bool = False
    permissions: list[str] = Field(default_factory=list)


__all__ = ["MeOut", "UserOut"]
