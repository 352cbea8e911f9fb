"""Schemas for views."""

from __future__ import annotations

from uuid import UUID

from pydantic import Field

from player_api.common.schema import BaseSchema
from player_api.models import ViewStatus


class ViewForm(BaseSchema):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    status: ViewStatus = ViewStatus.ACTIVE
    parent_view_id: UUID | None = None
    create_admin_team: bool = Field(
        default=False,
        description="Also create an 'Admin' team with the caller as its primary member.",
    )


class ViewOut(BaseSchema):
    id: UUID
    name: str
    description: str | None = None
    status: ViewStatus
    parent_view_id: UUID | None = None


__all__ = ["ViewForm", "ViewOut"]
