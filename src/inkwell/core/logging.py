"""Structured logging configuration using structlog.

Every entry carries the service name, environment and (inside a request)
the request id bound by ``RequestIDMiddleware``. Credentials never reach the
output: keys such as ``password`` or ``refresh_token`` are masked.
"""
import logging
import os
import sys

import structlog
from structlog.types import EventDict, Processor

from inkwell.core.config import settings

REDACTED = "***"
SENSITIVE_KEYS = frozenset(
    {
        "password",
        "new_password",
        "current_password",
        "access_token",
        "refresh_token",
        "token",
        "authorization",
        "aws_secret_access_key",
    }
)

# Chatty third-party loggers capped at WARNING
NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "aiosqlite", "sqlalchemy.engine")


def add_app_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["service"] = settings.otel_service_name
    event_dict["environment"] = settings.environment
    return event_dict


def redact_secrets(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential values passed as log fields."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def _running_under_pytest() -> bool:
    return bool(os.environ.get("PYTEST_CURRENT_TEST") or "pytest" in sys.modules)


def _renderer() -> list[Processor]:
    if settings.log_format == "json" or settings.is_production or _running_under_pytest():
        return [structlog.processors.JSONRenderer()]
    # ConsoleRenderer needs exc_info pre-formatted; JSONRenderer handles it itself
    return [structlog.processors.format_exc_info, structlog.dev.ConsoleRenderer()]


def configure_logging() -> None:
    """Configure structlog and the stdlib root logger."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_app_context,
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        *_renderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    logger: structlog.BoundLogger = structlog.get_logger(name)
    return logger
