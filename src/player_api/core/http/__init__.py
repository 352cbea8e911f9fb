"""HTTP-facing dependencies."""

from .dependencies import (
    AuthorizationDep,
    PrincipalDep,
    PublisherDep,
    SessionDep,
    SettingsDep,
    get_authorization_service,
    get_current_principal,
    get_event_publisher,
)

__all__ = [
    "AuthorizationDep",
    "PrincipalDep",
    "PublisherDep",
    "SessionDep",
    "SettingsDep",
    "get_authorization_service",
    "get_current_principal",
    "get_event_publisher",
]
