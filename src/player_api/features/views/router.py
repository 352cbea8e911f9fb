"""FastAPI router for views."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status

from player_api.app.dependencies import get_views_service

from .schemas import ViewForm, ViewOut
from .service import ViewNotFoundError, ViewsService

router = APIRouter(prefix="/views", tags=["views"])

ServiceDep = Annotated[ViewsService, Depends(get_views_service)]


@router.get("", response_model=list[ViewOut], summary="List views visible to the caller")
async def list_views(service: ServiceDep) -> list[ViewOut]:
    return await service.list_views()


@router.post(
    "",
    response_model=ViewOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a view",
    responses={status.HTTP_403_FORBIDDEN: {"description": "Requires CreateViews."}},
)
async def create_view(payload: ViewForm, service: ServiceDep) -> ViewOut:
    try:
        return await service.create_view(form=payload)
    except ViewNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/{view_id}", response_model=ViewOut, summary="Get a view")
async def get_view(view_id: UUID, service: ServiceDep) -> ViewOut:
    try:
        return await service.get_view(view_id=view_id)
    except ViewNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.delete(
    "/{view_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a view and everything it owns",
)
async def delete_view(view_id: UUID, service: ServiceDep) -> Response:
    try:
        await service.delete_view(view_id=view_id)
    except ViewNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
