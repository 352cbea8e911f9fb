"""FastAPI router for the system permission catalog."""

from __future__ import annotations

from collections.abc import Awaitable
from typing import Annotated, TypeVar
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status

from player_api.app.dependencies import get_permissions_service

from .base import PermissionConflictError, PermissionImmutableError, PermissionNotFoundError
from .schemas import PermissionForm, PermissionOut
from .service import PermissionsService

router = APIRouter(tags=["permissions"])

ServiceDep = Annotated[PermissionsService, Depends(get_permissions_service)]

T = TypeVar("T")


async def translate_catalog_errors(call: Awaitable[T]) -> T:
    """Map catalog service errors onto HTTP responses."""

    try:
        return await call
    except PermissionNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionImmutableError as exc:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except PermissionConflictError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@router.get("/permissions", response_model=list[PermissionOut], summary="List permissions")
async def list_permissions(service: ServiceDep) -> list[PermissionOut]:
    return await service.list_all()


@router.get("/me/permissions", response_model=list[str], summary="List my permissions")
async def list_my_permissions(service: ServiceDep) -> list[str]:
    return await service.list_mine()


@router.get(
    "/permissions/{permission_id}",
    response_model=PermissionOut,
    summary="Get a permission",
)
async def get_permission(permission_id: UUID, service: ServiceDep) -> PermissionOut:
    return await translate_catalog_errors(service.get(permission_id=permission_id))


@router.post(
    "/permissions",
    response_model=PermissionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a permission",
)
async def create_permission(payload: PermissionForm, service: ServiceDep) -> PermissionOut:
    return await translate_catalog_errors(service.create(form=payload))


@router.put(
    "/permissions/{permission_id}",
    response_model=PermissionOut,
    summary="Update a permission",
)
async def update_permission(
    permission_id: UUID,
    payload: PermissionForm,
    service: ServiceDep,
) -> PermissionOut:
    return await translate_catalog_errors(
        service.update(permission_id=permission_id, form=payload)
    )


@router.delete(
    "/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a permission",
)
async def delete_permission(permission_id: UUID, service: ServiceDep) -> Response:
    await translate_catalog_errors(service.delete(permission_id=permission_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/roles/{role_id}/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Add a permission to a role",
)
async def add_permission_to_role(
    role_id: UUID, permission_id: UUID, service: ServiceDep
) -> Response:
    await translate_catalog_errors(
        service.add_to_role(role_id=role_id, permission_id=permission_id)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/roles/{role_id}/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a permission from a role",
)
async def remove_permission_from_role(
    role_id: UUID, permission_id: UUID, service: ServiceDep
) -> Response:
    await translate_catalog_errors(
        service.remove_from_role(role_id=role_id, permission_id=permission_id)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/users/{user_id}/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Grant a permission directly to a user",
)
async def add_permission_to_user(
    user_id: UUID, permission_id: UUID, service: ServiceDep
) -> Response:
    await translate_catalog_errors(
        service.add_to_user(user_id=user_id, permission_id=permission_id)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/users/{user_id}/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke a permission granted directly to a user",
)
async def remove_permission_from_user(
    user_id: UUID, permission_id: UUID, service: ServiceDep
) -> Response:
    await translate_catalog_errors(
        service.remove_from_user(user_id=user_id, permission_id=permission_id)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
