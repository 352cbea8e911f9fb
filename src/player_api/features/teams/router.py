"""FastAPI router for teams and team memberships."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status

from player_api.app.dependencies import get_teams_service
from player_api.features.users.service import UserNotFoundError

from .schemas import TeamForm, TeamMembershipOut, TeamOut
from .service import MembershipConflictError, TeamNotFoundError, TeamsService

router = APIRouter(tags=["teams"])

ServiceDep = Annotated[TeamsService, Depends(get_teams_service)]


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, MembershipConflictError):
        return HTTPException(status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.get("/views/{view_id}/teams", response_model=list[TeamOut], summary="List a view's teams")
async def list_teams(view_id: UUID, service: ServiceDep) -> list[TeamOut]:
    return await service.list_teams(view_id=view_id)


@router.post(
    "/views/{view_id}/teams",
    response_model=TeamOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a team in a view",
)
async def create_team(view_id: UUID, payload: TeamForm, service: ServiceDep) -> TeamOut:
    try:
        return await service.create_team(view_id=view_id, form=payload)
    except TeamNotFoundError as exc:
        raise _http_error(exc) from exc


@router.post(
    "/teams/{team_id}/users/{user_id}",
    response_model=TeamMembershipOut,
    status_code=status.HTTP_201_CREATED,
    summary="Add a user to a team",
)
async def add_user_to_team(
    team_id: UUID, user_id: UUID, service: ServiceDep
) -> TeamMembershipOut:
    try:
        return await service.add_user_to_team(team_id=team_id, user_id=user_id)
    except (TeamNotFoundError, UserNotFoundError, MembershipConflictError) as exc:
        raise _http_error(exc) from exc


@router.delete(
    "/teams/{team_id}/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a user from a team",
)
async def remove_user_from_team(team_id: UUID, user_id: UUID, service: ServiceDep) -> Response:
    try:
        await service.remove_user_from_team(team_id=team_id, user_id=user_id)
    except (TeamNotFoundError, UserNotFoundError) as exc:
        raise _http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/users/{user_id}/views/{view_id}/team-memberships",
    response_model=list[TeamMembershipOut],
    summary="List a user's team memberships in a view",
)
async def list_user_memberships(
    user_id: UUID, view_id: UUID, service: ServiceDep
) -> list[TeamMembershipOut]:
    return await service.list_user_memberships(user_id=user_id, view_id=view_id)


@router.post(
    "/users/{user_id}/views/{view_id}/teams/{team_id}/primary",
    response_model=TeamMembershipOut,
    summary="Make one of the user's teams their primary team in a view",
)
async def set_primary_team(
    user_id: UUID, view_id: UUID, team_id: UUID, service: ServiceDep
) -> TeamMembershipOut:
    try:
        return await service.set_primary_team(user_id=user_id, view_id=view_id, team_id=team_id)
    except MembershipConflictError as exc:
        raise _http_error(exc) from exc
