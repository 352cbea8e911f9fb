"""Schemas for teams and memberships."""

from __future__ import annotations

from uuid import UUID

from pydantic import Field

from player_api.common.schema import BaseSchema


class TeamForm(BaseSchema):
    name: str = Field(min_length=1, max_length=255)
    role_id: UUID | None = Field(
        default=None,
        description="Team role; defaults to the configured default team role.",
    )


class TeamOut(BaseSchema):
    id: UUID
    name: str
    view_id: UUID
    role_id: UUID | None = None


class TeamMembershipOut(BaseSchema):
    id: UUID
    team_id: UUID
    user_id: UUID
    view_membership_id: UUID
    role_id: UUID | None = None
    is_primary: bool = False


__all__ = ["TeamForm", "TeamMembershipOut", "TeamOut"]
