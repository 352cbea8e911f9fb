"""Schemas for permission catalog entries."""

from __future__ import annotations

from uuid import UUID

from pydantic import Field, field_validator

from player_api.common.schema import BaseSchema


class PermissionForm(BaseSchema):
    """Create/update payload for a system or team permission."""

    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1024)

    @field_validator("name")
    @classmethod
    def _v_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("name must not be blank")
        return cleaned


class PermissionOut(BaseSchema):
    id: UUID
    name: str
    description: str | None = None
    immutable: bool = False


__all__ = ["PermissionForm", "PermissionOut"]
