"""API router composition for the Player FastAPI application."""

from __future__ import annotations

from fastapi import APIRouter

from player_api.features.health.router import router as health_router
from player_api.features.permissions.router import router as permissions_router
from player_api.features.team_permissions.router import router as team_permissions_router
from player_api.features.teams.router import router as teams_router
from player_api.features.users.router import router as users_router
from player_api.features.views.router import router as views_router
from player_api.features.webhooks.router import router as webhooks_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(users_router)
api_router.include_router(permissions_router)
api_router.include_router(team_permissions_router)
api_router.include_router(views_router)
api_router.include_router(teams_router)
api_router.include_router(webhooks_router)

__all__ = ["api_router"]
