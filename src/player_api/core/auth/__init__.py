"""Authentication primitives."""

from .errors import AuthenticationError, ForbiddenError
from .principal import AuthenticatedPrincipal

__all__ = ["AuthenticatedPrincipal", "AuthenticationError", "ForbiddenError"]
