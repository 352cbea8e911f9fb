"""Shared catalog-entry management for system and team permissions.

Both catalogs follow the same rules: anyone with ``ManageRoles`` may create
entries, but entries flagged ``immutable`` can be neither renamed, edited nor
deleted. Failed writes leave the row untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, ClassVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from player_api.common.logging import log_context
from player_api.features.authorization.service import AuthorizationService

from .schemas import PermissionForm, PermissionOut

logger = logging.getLogger(__name__)


class PermissionNotFoundError(ValueError):
    """Raised when a permission, role or grant target cannot be located."""


class PermissionImmutableError(PermissionError):
    """Raised when an immutable catalog entry would be changed."""


class PermissionConflictError(ValueError):
    """Raised when a catalog entry name is already taken."""


class CatalogEntryService:
    """CRUD over one permission catalog table.

    Subclasses set :attr:`model`, :attr:`label` and the permissions needed to
    read entries.
    """

    model: ClassVar[Any]
    label: ClassVar[str]
    read_system_permissions: ClassVar[Sequence[str]] = ()
    read_view_permissions: ClassVar[Sequence[str]] = ()
    read_team_permissions: ClassVar[Sequence[str]] = ()
    write_system_permissions: ClassVar[Sequence[str]] = ()

    def __init__(self, *, session: AsyncSession, authorization: AuthorizationService) -> None:
        self._session = session
        self._authz = authorization

    async def list_all(self) -> list[PermissionOut]:
        await self._ensure_read()
        result = await self._session.execute(select(self.model).order_by(self.model.name))
        return [PermissionOut.model_validate(row) for row in result.scalars().all()]

    async def get(self, *, permission_id: UUID) -> PermissionOut:
        await self._ensure_read()
        return PermissionOut.model_validate(await self._require_entry(permission_id))

    async def create(self, *, form: PermissionForm) -> PermissionOut:
        await self._authz.ensure(system_permissions=self.write_system_permissions)
        await self._ensure_name_free(form.name)
        entry = self.model(name=form.name, description=form.description, immutable=False)
        self._session.add(entry)
        await self._session.flush()
        logger.info(
            "permissions.entry.created",
            extra=log_context(catalog=self.label, name=entry.name, user_id=self._authz.user_id),
        )
        return PermissionOut.model_validate(entry)

    async def update(self, *, permission_id: UUID, form: PermissionForm) -> PermissionOut:
        await self._authz.ensure(system_permissions=self.write_system_permissions)
        entry = await self._require_entry(permission_id)
        if entry.immutable:
            raise PermissionImmutableError(f"Cannot update an immutable {self.label}")
        if form.name != entry.name:
            await self._ensure_name_free(form.name)
        entry.name = form.name
        entry.description = form.description
        await self._session.flush()
        return PermissionOut.model_validate(entry)

    async def delete(self, *, permission_id: UUID) -> None:
        await self._authz.ensure(system_permissions=self.write_system_permissions)
        entry = await self._require_entry(permission_id)
        if entry.immutable:
            raise PermissionImmutableError(f"Cannot delete an immutable {self.label}")
        await self._session.delete(entry)
        await self._session.flush()
        logger.info(
            "permissions.entry.deleted",
            extra=log_context(catalog=self.label, name=entry.name, user_id=self._authz.user_id),
        )

    # ------------- helpers ------------------------

    async def _ensure_read(self) -> None:
        await self._authz.ensure(
            system_permissions=self.read_system_permissions,
            view_permissions=self.read_view_permissions,
            team_permissions=self.read_team_permissions,
        )

    async def _require_entry(self, permission_id: UUID) -> Any:
        entry = await self._session.get(self.model, permission_id)
        if entry is None:
            raise PermissionNotFoundError(f"{self.label} {permission_id} not found")
        return entry

    async def _require(self, model: Any, entity_id: UUID, label: str) -> Any:
        row = await self._session.get(model, entity_id)
        if row is None:
            raise PermissionNotFoundError(f"{label} {entity_id} not found")
        return row

    async def _ensure_name_free(self, name: str) -> None:
        taken = await self._session.scalar(select(self.model.id).where(self.model.name == name))
        if taken is not None:
            raise PermissionConflictError(f"A {self.label} named '{name}' already exists")

    async def _add_link(self, link: Any, **keys: UUID) -> bool:
        """Insert a link row unless it exists. Returns True when inserted."""

        existing = await self._session.scalar(
            select(link.id).where(*(getattr(link, key) == value for key, value in keys.items()))
        )
        if existing is not None:
            return False
        self._session.add(link(**keys))
        await self._session.flush()
        return True

    async def _remove_link(self, link: Any, **keys: UUID) -> bool:
        row = await self._session.scalar(
            select(link).where(*(getattr(link, key) == value for key, value in keys.items()))
        )
        if row is None:
            return False
        await self._session.delete(row)
        await self._session.flush()
        return True


__all__ = [
    "CatalogEntryService",
    "PermissionConflictError",
    "PermissionImmutableError",
    "PermissionNotFoundError",
]
