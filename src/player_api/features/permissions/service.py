"""System permission catalog, role bundles and direct user grants."""

from __future__ import annotations

import logging
from uuid import UUID

from player_api.common.logging import log_context
from player_api.core.auth.errors import ForbiddenError
from player_api.features.authorization.catalog import SystemPermissions, ViewPermissions
from player_api.models import Permission, Role, RolePermission, User, UserPermission

from .base import (
    CatalogEntryService,
    PermissionConflictError,
    PermissionImmutableError,
    PermissionNotFoundError,
)

logger = logging.getLogger(__name__)


class PermissionsService(CatalogEntryService):
    model = Permission
    label = "Permission"
    read_system_permissions = (SystemPermissions.VIEW_ROLES,)
    read_view_permissions = (ViewPermissions.VIEW_VIEW,)
    write_system_permissions = (SystemPermissions.MANAGE_ROLES,)

    async def list_mine(self) -> list[str]:
        """The caller's top-level permission names; always allowed."""

        return sorted(await self._authz.get_system_permissions())

    async def add_to_role(self, *, role_id: UUID, permission_id: UUID) -> None:
        await self._authz.ensure(system_permissions=(SystemPermissions.MANAGE_ROLES,))
        role = await self._require(Role, role_id, "Role")
        permission = await self._require_entry(permission_id)
        if await self._add_link(RolePermission, role_id=role_id, permission_id=permission_id):
            logger.warning(
                "permissions.role.granted",
                extra=log_context(
                    role=role.name,
                    permission=permission.name,
                    user_id=self._authz.user_id,
                ),
            )

    async def remove_from_role(self, *, role_id: UUID, permission_id: UUID) -> None:
        await self._authz.ensure(system_permissions=(SystemPermissions.MANAGE_ROLES,))
        role = await self._require(Role, role_id, "Role")
        permission = await self._require_entry(permission_id)
        if await self._remove_link(RolePermission, role_id=role_id, permission_id=permission_id):
            logger.warning(
                "permissions.role.revoked",
                extra=log_context(
                    role=role.name,
                    permission=permission.name,
                    user_id=self._authz.user_id,
                ),
            )

    async def add_to_user(self, *, user_id: UUID, permission_id: UUID) -> None:
        await self._authz.ensure_system_admin()
        await self._require(User, user_id, "User")
        permission = await self._require_entry(permission_id)
        if await self._add_link(UserPermission, user_id=user_id, permission_id=permission_id):
            logger.warning(
                "permissions.user.granted",
                extra=log_context(
                    target_user_id=str(user_id),
                    permission=permission.name,
                    user_id=self._authz.user_id,
                ),
            )

    async def remove_from_user(self, *, user_id: UUID, permission_id: UUID) -> None:
        await self._authz.ensure_system_admin()
        await self._require(User, user_id, "User")
        permission = await self._require_entry(permission_id)
        if permission.name == SystemPermissions.SYSTEM_ADMIN and user_id == self._authz.user_id:
            raise ForbiddenError(
                f"You cannot remove the {SystemPermissions.SYSTEM_ADMIN} permission from yourself."
            )
        if await self._remove_link(UserPermission, user_id=user_id, permission_id=permission_id):
            logger.warning(
                "permissions.user.revoked",
                extra=log_context(
                    target_user_id=str(user_id),
                    permission=permission.name,
                    user_id=self._authz.user_id,
                ),
            )


__all__ = [
    "PermissionConflictError",
    "PermissionImmutableError",
    "PermissionNotFoundError",
    "PermissionsService",
]
