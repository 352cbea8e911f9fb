"""Central exports for Player SQLAlchemy models."""

from .application import Application, ApplicationInstance
from .membership import TeamMembership, ViewMembership
from .permissions import (
    Permission,
    Role,
    RolePermission,
    TeamPermission,
    TeamPermissionAssignment,
    TeamRole,
    TeamRolePermission,
    UserPermission,
)
from .user import User
from .view import Team, View, ViewStatus
from .webhook import EventType, PendingEvent, WebhookSubscription, WebhookSubscriptionEventType

__all__ = [
    "Application",
    "ApplicationInstance",
    "EventType",
    "PendingEvent",
    "Permission",
    "Role",
    "RolePermission",
    "Team",
    "TeamMembership",
    "TeamPermission",
    "TeamPermissionAssignment",
    "TeamRole",
    "TeamRolePermission",
    "User",
    "UserPermission",
    "View",
    "ViewMembership",
    "ViewStatus",
    "WebhookSubscription",
    "WebhookSubscriptionEventType",
]
