"""FastAPI router for the current user."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from player_api.app.dependencies import get_users_service
from player_api.core.http import PrincipalDep

from .schemas import MeOut
from .service import UsersService

router = APIRouter(tags=["users"])


@router.get("/me", response_model=MeOut, summary="Describe the authenticated caller")
async def read_me(
    principal: PrincipalDep,
    service: Annotated[UsersService, Depends(get_users_service)],
) -> MeOut:
    return await service.get_me(user_id=principal.user_id)
