"""Lightweight identity representation produced by the auth pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(slots=True)
class AuthenticatedPrincipal:
    """Identity information available to downstream handlers."""

    user_id: UUID
    name: str | None = None
