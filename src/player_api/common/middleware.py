"""Request correlation and CORS middleware."""

from __future__ import annotations

import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from player_api.settings import Settings

from .logging import bind_request_context, clear_request_context, log_context

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_REQUEST_ID_LENGTH = 128

_REQUEST_LOGGER = logging.getLogger("player_api.request")


def _request_id(request: Request) -> str:
    """Reuse a caller-supplied id when it is printable and short, else mint one."""

    supplied = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if supplied and len(supplied) <= _MAX_REQUEST_ID_LENGTH and supplied.isprintable():
        return supplied
    return uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a correlation id for the request and log one line when it ends."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = _request_id(request)
        request.state.correlation_id = correlation_id
        bind_request_context(correlation_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            _REQUEST_LOGGER.error(
                "request.error",
                extra=self._context(request, started, status_code=None),
            )
            raise
        else:
            event = "request.failed" if response.status_code >= 500 else "request.complete"
            level = logging.WARNING if response.status_code >= 500 else logging.INFO
            _REQUEST_LOGGER.log(
                level,
                event,
                extra=self._context(request, started, status_code=response.status_code),
            )
        finally:
            clear_request_context()

        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response

    @staticmethod
    def _context(request: Request, started: float, *, status_code: int | None) -> dict:
        return log_context(
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=round((time.perf_counter() - started) * 1000.0, 2),
        )


def register_middleware(app: FastAPI, *, settings: Settings) -> None:
    origins = list(settings.server_cors_origins)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=[REQUEST_ID_HEADER],
        )
    # Outermost: added last so it also wraps CORS responses.
    app.add_middleware(RequestContextMiddleware)


__all__ = ["REQUEST_ID_HEADER", "RequestContextMiddleware", "register_middleware"]
