"""Pydantic schemas for the health module."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from player_api.common.schema import BaseSchema


class HealthComponentStatus(BaseSchema):
    """Represents the health of an individual system component."""

    name: str = Field(..., description="Component identifier.")
    status: Literal["available", "degraded", "unavailable"]
    detail: str | None = None


class HealthCheckResponse(BaseSchema):
    """Top-level payload returned by the `/health` endpoint."""

    status: Literal["ok", "error"]
    timestamp: datetime
    components: list[HealthComponentStatus] = Field(default_factory=list)
