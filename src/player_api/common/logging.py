"""Console logging for the Player API.

Records are written one per line::

    <utc time> <LEVEL> <logger> [cid=<correlation id>] <event> key=value ...

The correlation id comes from the request being served (see
:func:`bind_request_context`), and the trailing pairs are whatever the caller
passed through ``extra=``. Build those payloads with :func:`log_context` so
identifiers render the same way in every module.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from player_api.settings import Settings

_CORRELATION_ID: ContextVar[str | None] = ContextVar(
    "player_api_correlation_id",
    default=None,
)

# Every attribute a bare LogRecord carries, plus the ones formatting adds.
_RECORD_FIELDS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "correlation_id",
    "taskName",
    "color_message",
}

_HANDLER_NAME = "player_api.console"

# Third-party loggers that should render through the root handler.
_ROUTED_LOGGERS = (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "alembic",
    "alembic.runtime.migration",
    "sqlalchemy",
    "httpx",
)

_ID_FIELDS = ("view_id", "team_id", "user_id", "subscription_id", "event_id")


class ConsoleLogFormatter(logging.Formatter):
    """Single-line formatter with the correlation id and ``extra`` pairs."""

    _time_format = "%Y-%m-%dT%H:%M:%S"

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-5s %(name)s [cid=%(correlation_id)s] %(message)s",
            datefmt=self._time_format,
        )

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=UTC)
        return f"{stamp.strftime(datefmt or self._time_format)}.{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = _CORRELATION_ID.get() or "-"
        line = super().format(record)
        pairs = " ".join(
            f"{key}={_render(value)}"
            for key, value in vars(record).items()
            if key not in _RECORD_FIELDS and not key.startswith("_")
        )
        return f"{line} {pairs}" if pairs else line


def setup_logging(settings: Settings) -> None:
    """Install the console handler on the root logger.

    Calling this again only updates the level, so the CLI and the app factory
    can both call it. ``PLAYER_LOGGING_LEVEL`` picks the level.
    """

    root = logging.getLogger()
    level = logging.getLevelName(settings.logging_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)

    if any(handler.get_name() == _HANDLER_NAME for handler in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(ConsoleLogFormatter())
    root.handlers = [handler]

    for name in _ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers.clear()
        routed.propagate = True
    # The sender logs each callback itself.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def bind_request_context(correlation_id: str | None) -> None:
    _CORRELATION_ID.set(correlation_id)


def clear_request_context() -> None:
    _CORRELATION_ID.set(None)


def log_context(**fields: Any) -> dict[str, Any]:
    """Build an ``extra`` payload.

    Identifier fields are stringified and dropped when ``None``; anything else
    is passed through as given::

        logger.warning(
            "webhook.delivery.failed",
            extra=log_context(subscription_id=sub.id, event_id=evt.id, attempt=3),
        )
    """

    context: dict[str, Any] = {}
    for key, value in fields.items():
        if key in _ID_FIELDS:
            if value is not None:
                context[key] = str(value)
        else:
            context[key] = value
    return context


def _render(value: Any) -> str:
    return "null" if value is None else str(value)


__all__ = [
    "ConsoleLogFormatter",
    "bind_request_context",
    "clear_request_context",
    "log_context",
    "setup_logging",
]
