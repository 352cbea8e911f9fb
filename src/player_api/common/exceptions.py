"""Centralized FastAPI exception handlers with structured logging."""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from player_api.common.logging import log_context
from player_api.core.auth.errors import AuthenticationError, ForbiddenError

_UNHANDLED_LOGGER = logging.getLogger("player_api.errors")
_HTTP_LOGGER = logging.getLogger("player_api.http")
_AUTHZ_LOGGER = logging.getLogger("player_api.authorization")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected exceptions.

    Registered as the ``Exception`` handler. Any unhandled error results in a
    JSON 500 response and an ERROR log with the stack trace.
    """
    _UNHANDLED_LOGGER.exception(
        "unhandled_exception",
        extra=log_context(
            path=str(request.url.path),
            method=request.method,
            exception_type=type(exc).__name__,
            detail=str(exc),
        ),
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException instances.

    4xx responses are returned without logging; 5xx responses are logged at
    ERROR level with structured metadata.
    """
    if exc.status_code >= 500:
        _HTTP_LOGGER.error(
            "http_exception",
            extra=log_context(
                path=str(request.url.path),
                method=request.method,
                status_code=exc.status_code,
                detail=exc.detail,
            ),
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def forbidden_exception_handler(request: Request, exc: ForbiddenError) -> JSONResponse:
    """Map authorization denials that escape a router to HTTP 403."""

    _AUTHZ_LOGGER.info(
        "authorization.denied",
        extra=log_context(path=str(request.url.path), method=request.method),
    )
    return JSONResponse(status_code=403, content={"detail": str(exc) or "Forbidden"})


async def authentication_exception_handler(
    request: Request, exc: AuthenticationError
) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"detail": str(exc) or "Authentication required"},
        headers={"WWW-Authenticate": "Bearer"},
    )


__all__ = [
    "authentication_exception_handler",
    "forbidden_exception_handler",
    "http_exception_handler",
    "unhandled_exception_handler",
]
