"""Shared auth/permission error types."""


class AuthenticationError(Exception):
    """Raised when a request cannot be authenticated."""


class ForbiddenError(PermissionError):
    """Raised when the caller is not allowed to perform an operation."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)
