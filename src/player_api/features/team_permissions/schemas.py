"""Schemas for team permission claims."""

from __future__ import annotations

from uuid import UUID

from pydantic import Field

from player_api.common.schema import BaseSchema
from player_api.features.authorization.resolver import TeamPermissionsClaim


class TeamPermissionsClaimOut(BaseSchema):
    view_id: UUID
    team_id: UUID
    is_primary: bool
    permission_values: list[str] = Field(default_factory=list)

    @classmethod
    def from_claim(cls, claim: TeamPermissionsClaim) -> TeamPermissionsClaimOut:
        return cls(
            view_id=claim.view_id,
            team_id=claim.team_id,
            is_primary=claim.is_primary,
            permission_values=sorted(claim.permissions),
        )


__all__ = ["TeamPermissionsClaimOut"]
