"""Logging configuration.

Events are structlog key/value records. Account and request context is bound
through ``structlog.contextvars`` by the services and the API middleware, so
an event logged deep inside a settlement still carries ``user_id`` and
``request_id``. Credentials never reach the output: ``redact_secrets`` masks
them whatever the renderer.
"""

import logging
import sys

import structlog

from refcredit.settings import settings

# Event keys whose values must never be written out
SECRET_KEYS = frozenset({"password", "password_hash", "access_token", "token", "authorization"})
REDACTED = "***"

# stdlib loggers that only speak up at WARNING unless we run at DEBUG
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "passlib", "multipart")


def redact_secrets(logger, method_name: str, event_dict: dict) -> dict:
    """structlog processor masking credential values."""
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def resolve_level(name: str | None = None) -> int:
    """Numeric level for ``name`` (defaults to settings); unknown names mean INFO."""
    level = getattr(logging, (name or settings.log_level).upper(), None)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level: str | None = None) -> None:
    """Configure structured logging.

    Args:
        level: Override for ``settings.log_level``
    """
    log_level = resolve_level(level)

    if settings.log_format == "json":
        renderers = [
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            redact_secrets,
            *renderers,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # SQLAlchemy and uvicorn go through stdlib logging
    logging.basicConfig(format="%(name)s %(levelname)s %(message)s", stream=sys.stdout, level=log_level)
    quiet_level = log_level if log_level <= logging.DEBUG else max(log_level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)
