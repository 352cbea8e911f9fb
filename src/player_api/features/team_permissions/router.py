"""FastAPI router for the team permission catalog."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from player_api.app.dependencies import get_team_permissions_service
from player_api.features.permissions.router import translate_catalog_errors
from player_api.features.permissions.schemas import PermissionForm, PermissionOut

from .schemas import TeamPermissionsClaimOut
from .service import TeamPermissionsService

router = APIRouter(tags=["team-permissions"])

ServiceDep = Annotated[TeamPermissionsService, Depends(get_team_permissions_service)]


@router.get(
    "/team-permissions",
    response_model=list[PermissionOut],
    summary="List team permissions",
)
async def list_team_permissions(service: ServiceDep) -> list[PermissionOut]:
    return await service.list_all()


@router.get(
    "/me/team-permissions",
    response_model=list[TeamPermissionsClaimOut],
    summary="List my team permission claims",
)
async def list_my_team_permissions(
    service: ServiceDep,
    view_id: Annotated[UUID | None, Query(alias="viewId")] = None,
    team_id: Annotated[UUID | None, Query(alias="teamId")] = None,
    include_all_view_teams: Annotated[bool, Query(alias="includeAllViewTeams")] = False,
) -> list[TeamPermissionsClaimOut]:
    claims = await service.list_mine(
        view_id=view_id,
        team_id=team_id,
        include_all_view_teams=include_all_view_teams,
    )
    return [TeamPermissionsClaimOut.from_claim(claim) for claim in claims]


@router.get(
    "/team-permissions/{permission_id}",
    response_model=PermissionOut,
    summary="Get a team permission",
)
async def get_team_permission(permission_id: UUID, service: ServiceDep) -> PermissionOut:
    return await translate_catalog_errors(service.get(permission_id=permission_id))


@router.post(
    "/team-permissions",
    response_model=PermissionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a team permission",
)
async def create_team_permission(payload: PermissionForm, service: ServiceDep) -> PermissionOut:
    return await translate_catalog_errors(service.create(form=payload))


@router.put(
    "/team-permissions/{permission_id}",
    response_model=PermissionOut,
    summary="Update a team permission",
)
async def update_team_permission(
    permission_id: UUID,
    payload: PermissionForm,
    service: ServiceDep,
) -> PermissionOut:
    return await translate_catalog_errors(
        service.update(permission_id=permission_id, form=payload)
    )


@router.delete(
    "/team-permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a team permission",
)
async def delete_team_permission(permission_id: UUID, service: ServiceDep) -> Response:
    await translate_catalog_errors(service.delete(permission_id=permission_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/team-roles/{team_role_id}/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Add a team permission to a team role",
)
async def add_to_team_role(
    team_role_id: UUID, permission_id: UUID, service: ServiceDep
) -> Response:
    await translate_catalog_errors(
        service.add_to_team_role(team_role_id=team_role_id, permission_id=permission_id)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/team-roles/{team_role_id}/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a team permission from a team role",
)
async def remove_from_team_role(
    team_role_id: UUID, permission_id: UUID, service: ServiceDep
) -> Response:
    await translate_catalog_errors(
        service.remove_from_team_role(team_role_id=team_role_id, permission_id=permission_id)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/teams/{team_id}/team-permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Assign a team permission to a team",
)
async def add_to_team(team_id: UUID, permission_id: UUID, service: ServiceDep) -> Response:
    await translate_catalog_errors(
        service.add_to_team(team_id=team_id, permission_id=permission_id)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/teams/{team_id}/team-permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a team permission assignment",
)
async def remove_from_team(team_id: UUID, permission_id: UUID, service: ServiceDep) -> Response:
    await translate_catalog_errors(
        service.remove_from_team(team_id=team_id, permission_id=permission_id)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
