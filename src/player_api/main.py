"""Player FastAPI application entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException

from .api.v1 import api_router
from .app.lifecycles import create_application_lifespan
from .common.exceptions import (
    authentication_exception_handler,
    forbidden_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from .common.logging import setup_logging
from .common.middleware import register_middleware
from .core.auth import AuthenticationError, ForbiddenError
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Return a configured FastAPI application."""

    settings = settings or get_settings()
    setup_logging(settings)

    docs_enabled = settings.api_docs_enabled
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url=f"{settings.api_prefix}/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url=f"{settings.api_prefix}/openapi.json" if docs_enabled else None,
        lifespan=create_application_lifespan(settings=settings),
    )
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    if settings.jwt_secret is None:
        logger.warning("auth.jwt_secret.missing", extra={"detail": "all requests will be 401"})

    app.add_exception_handler(AuthenticationError, authentication_exception_handler)
    app.add_exception_handler(ForbiddenError, forbidden_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    register_middleware(app, settings=settings)
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


__all__ = ["create_app"]

app = create_app()
