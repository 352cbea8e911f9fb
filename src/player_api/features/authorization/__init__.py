"""Permission resolution and authorization decisions."""

from .catalog import TEAM_MEMBER, SystemPermissions, TeamPermissions, ViewPermissions
from .resolver import (
    PermissionResolver,
    Scope,
    SystemScope,
    TeamPermissionsClaim,
    TeamScope,
    ViewScope,
)
from .service import AuthorizationService

__all__ = [
    "AuthorizationService",
    "PermissionResolver",
    "Scope",
    "SystemPermissions",
    "SystemScope",
    "TEAM_MEMBER",
    "TeamPermissions",
    "TeamPermissionsClaim",
    "TeamScope",
    "ViewPermissions",
    "ViewScope",
]
