"""Built-in permission catalog and its idempotent database sync."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from player_api.common.logging import log_context
from player_api.models import (
    Permission,
    Role,
    RolePermission,
    TeamPermission,
    TeamRole,
    TeamRolePermission,
    User,
    UserPermission,
)

logger = logging.getLogger(__name__)

# Synthetic marker placed in every resolved team-chain set.
TEAM_MEMBER = "TeamMember"


class SystemPermissions:
    SYSTEM_ADMIN = "SystemAdmin"
    VIEW_VIEWS = "ViewViews"
    CREATE_VIEWS = "CreateViews"
    EDIT_VIEWS = "EditViews"
    MANAGE_VIEWS = "ManageViews"
    VIEW_USERS = "ViewUsers"
    MANAGE_USERS = "ManageUsers"
    VIEW_APPLICATIONS = "ViewApplications"
    MANAGE_APPLICATIONS = "ManageApplications"
    VIEW_ROLES = "ViewRoles"
    MANAGE_ROLES = "ManageRoles"
    VIEW_WEBHOOK_SUBSCRIPTIONS = "ViewWebhookSubscriptions"
    MANAGE_WEBHOOK_SUBSCRIPTIONS = "ManageWebhookSubscriptions"


class ViewPermissions:
    """Team-catalog entries that act on the whole owning view."""

    VIEW_VIEW = "ViewView"
    EDIT_VIEW = "EditView"
    MANAGE_VIEW = "ManageView"
    UPLOAD_VIEW_ISOS = "UploadViewIsos"

    ALL = frozenset({VIEW_VIEW, EDIT_VIEW, MANAGE_VIEW, UPLOAD_VIEW_ISOS})


class TeamPermissions:
    """Team-catalog entries that act on a single team."""

    VIEW_TEAM = "ViewTeam"
    EDIT_TEAM = "EditTeam"
    MANAGE_TEAM = "ManageTeam"
    UPLOAD_TEAM_ISOS = "UploadTeamIsos"
    UPLOAD_VM_FILES = "UploadVmFiles"
    DOWNLOAD_VM_FILES = "DownloadVmFiles"

    ALL = frozenset(
        {VIEW_TEAM, EDIT_TEAM, MANAGE_TEAM, UPLOAD_TEAM_ISOS, UPLOAD_VM_FILES, DOWNLOAD_VM_FILES}
    )


@dataclass(frozen=True, slots=True)
class PermissionDef:
    name: str
    description: str
    immutable: bool = True


@dataclass(frozen=True, slots=True)
class RoleDef:
    name: str
    all_permissions: bool = False
    immutable: bool = False
    permissions: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class BundleKind:
    """Tables making up one kind of permission bundle."""

    catalog: Any
    bundle: Any
    link: Any
    bundle_fk: Any
    permission_fk: Any


SYSTEM_BUNDLES = BundleKind(
    catalog=Permission,
    bundle=Role,
    link=RolePermission,
    bundle_fk=RolePermission.role_id,
    permission_fk=RolePermission.permission_id,
)

TEAM_BUNDLES = BundleKind(
    catalog=TeamPermission,
    bundle=TeamRole,
    link=TeamRolePermission,
    bundle_fk=TeamRolePermission.team_role_id,
    permission_fk=TeamRolePermission.team_permission_id,
)


SYSTEM_PERMISSIONS: tuple[PermissionDef, ...] = (
    PermissionDef(SystemPermissions.SYSTEM_ADMIN, "Full rights across the system"),
    PermissionDef(SystemPermissions.VIEW_VIEWS, "Can view all Views and their Users and Teams"),
    PermissionDef(SystemPermissions.CREATE_VIEWS, "Can create Views"),
    PermissionDef(SystemPermissions.EDIT_VIEWS, "Can edit all Views"),
    PermissionDef(SystemPermissions.MANAGE_VIEWS, "Can manage all Views, Teams and memberships"),
    PermissionDef(SystemPermissions.VIEW_USERS, "Can view all Users"),
    PermissionDef(SystemPermissions.MANAGE_USERS, "Can create, edit and delete Users"),
    PermissionDef(SystemPermissions.VIEW_APPLICATIONS, "Can view Application Templates"),
    PermissionDef(SystemPermissions.MANAGE_APPLICATIONS, "Can manage Application Templates"),
    PermissionDef(SystemPermissions.VIEW_ROLES, "Can view Roles and Permissions"),
    PermissionDef(SystemPermissions.MANAGE_ROLES, "Can manage Roles and Permissions"),
    PermissionDef(
        SystemPermissions.VIEW_WEBHOOK_SUBSCRIPTIONS, "Can view Webhook Subscriptions"
    ),
    PermissionDef(
        SystemPermissions.MANAGE_WEBHOOK_SUBSCRIPTIONS, "Can manage Webhook Subscriptions"
    ),
)

SYSTEM_ROLES: tuple[RoleDef, ...] = (
    RoleDef("Administrator", all_permissions=True, immutable=True),
    RoleDef("Content Developer", permissions=(SystemPermissions.CREATE_VIEWS,)),
)

TEAM_PERMISSIONS: tuple[PermissionDef, ...] = (
    PermissionDef(ViewPermissions.VIEW_VIEW, "Can see every Team and member in the View"),
    PermissionDef(ViewPermissions.EDIT_VIEW, "Can edit the View"),
    PermissionDef(ViewPermissions.MANAGE_VIEW, "Can manage the View, its Teams and members"),
    PermissionDef(TeamPermissions.VIEW_TEAM, "Can see the Team and its members"),
    PermissionDef(TeamPermissions.EDIT_TEAM, "Can edit the Team"),
    PermissionDef(TeamPermissions.MANAGE_TEAM, "Can manage the Team and its members"),
    PermissionDef(
        ViewPermissions.UPLOAD_VIEW_ISOS, "Can upload ISOs usable by the whole View", False
    ),
    PermissionDef(TeamPermissions.UPLOAD_TEAM_ISOS, "Can upload ISOs usable by the Team", False),
    PermissionDef(TeamPermissions.UPLOAD_VM_FILES, "Can upload files to VMs", False),
    PermissionDef(TeamPermissions.DOWNLOAD_VM_FILES, "Can download files from VMs", False),
)

TEAM_ROLES: tuple[RoleDef, ...] = (
    RoleDef("View Admin", all_permissions=True, immutable=True),
    RoleDef(
        "View Member",
        permissions=(
            TeamPermissions.VIEW_TEAM,
            TeamPermissions.EDIT_TEAM,
            TeamPermissions.UPLOAD_TEAM_ISOS,
            TeamPermissions.UPLOAD_VM_FILES,
        ),
    ),
    RoleDef("Observer", permissions=(ViewPermissions.VIEW_VIEW, TeamPermissions.VIEW_TEAM)),
)

ADMINISTRATOR_ROLE = "Administrator"


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


async def _sync_entries(
    session: AsyncSession,
    *,
    model: type[Permission] | type[TeamPermission],
    definitions: Sequence[PermissionDef],
) -> dict[str, UUID]:
    result = await session.execute(select(model))
    existing = {entry.name: entry for entry in result.scalars().all()}
    created = 0
    for definition in definitions:
        current = existing.get(definition.name)
        if current is None:
            current = model(
                name=definition.name,
                description=definition.description,
                immutable=definition.immutable,
            )
            session.add(current)
            existing[definition.name] = current
            created += 1
        elif definition.immutable and not current.immutable:
            current.immutable = True
    await session.flush()
    logger.debug(
        "catalog.permissions.sync.success",
        extra=log_context(table=model.__tablename__, created=created),
    )
    return {name: entry.id for name, entry in existing.items()}


async def _sync_bundles(
    session: AsyncSession,
    *,
    kind: BundleKind,
    definitions: Iterable[RoleDef],
    permission_ids: dict[str, UUID],
) -> None:
    for definition in definitions:
        bundle = await session.scalar(
            select(kind.bundle).where(kind.bundle.name == definition.name)
        )
        if bundle is not None:
            continue
        bundle = kind.bundle(
            name=definition.name,
            all_permissions=definition.all_permissions,
            immutable=definition.immutable,
        )
        session.add(bundle)
        await session.flush()
        session.add_all(
            kind.link(
                **{
                    kind.bundle_fk.key: bundle.id,
                    kind.permission_fk.key: permission_ids[permission_name],
                }
            )
            for permission_name in definition.permissions
        )
        logger.info("catalog.role.created", extra=log_context(role=definition.name))
    await session.flush()


async def grant_system_admin(session: AsyncSession, *, user_ids: Iterable[UUID]) -> None:
    """Give each existing user a direct ``SystemAdmin`` grant if missing."""

    permission_id = await session.scalar(
        select(Permission.id).where(Permission.name == SystemPermissions.SYSTEM_ADMIN)
    )
    if permission_id is None:
        return
    for user_id in user_ids:
        if await session.get(User, user_id) is None:
            continue
        existing = await session.scalar(
            select(UserPermission.id).where(
                UserPermission.user_id == user_id,
                UserPermission.permission_id == permission_id,
            )
        )
        if existing is None:
            session.add(UserPermission(user_id=user_id, permission_id=permission_id))
            logger.info("catalog.system_admin.granted", extra=log_context(user_id=user_id))
    await session.flush()


async def sync_catalog(
    session: AsyncSession,
    *,
    system_admin_ids: Iterable[UUID] = (),
) -> None:
    """Ensure the built-in permissions and roles exist.

    Existing rows are never removed or renamed; entries created by operators
    are left alone. Built-in roles are only populated when first created.
    """

    logger.debug("catalog.sync.start")
    system_ids = await _sync_entries(session, model=Permission, definitions=SYSTEM_PERMISSIONS)
    team_ids = await _sync_entries(session, model=TeamPermission, definitions=TEAM_PERMISSIONS)
    await _sync_bundles(
        session,
        kind=SYSTEM_BUNDLES,
        definitions=SYSTEM_ROLES,
        permission_ids=system_ids,
    )
    await _sync_bundles(
        session,
        kind=TEAM_BUNDLES,
        definitions=TEAM_ROLES,
        permission_ids=team_ids,
    )
    await grant_system_admin(session, user_ids=system_admin_ids)
    logger.debug("catalog.sync.success")


__all__ = [
    "ADMINISTRATOR_ROLE",
    "SYSTEM_BUNDLES",
    "SYSTEM_PERMISSIONS",
    "SYSTEM_ROLES",
    "TEAM_BUNDLES",
    "TEAM_MEMBER",
    "TEAM_PERMISSIONS",
    "TEAM_ROLES",
    "BundleKind",
    "PermissionDef",
    "RoleDef",
    "SystemPermissions",
    "TeamPermissions",
    "ViewPermissions",
    "grant_system_admin",
    "sync_catalog",
]
