"""
Structured logging configuration using structlog.
"""
import logging
import sys
from typing import Any, Dict, MutableMapping

import structlog

from app.core.config import settings

# Event keys whose values must never reach the log stream
SENSITIVE_KEYS = frozenset({
    "otp",
    "password",
    "token",
    "access_token",
    "verification_token",
    "magic_link",
    "authorization",
})

REDACTED = "[redacted]"


def redact_secrets(logger: Any, method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Replace credential-like values in an event."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def add_service_context(logger: Any, method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    event_dict.setdefault("service", "xentro-api")
    event_dict.setdefault("environment", settings.ENVIRONMENT)
    return event_dict


def setup_logging() -> None:
    """
    Configure structured logging for the application.

    Development gets colored console output; every other environment emits
    one JSON object per line.
    """
    level = logging.DEBUG if settings.DEBUG else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    # SQL echo is controlled by DEBUG through the engine, not the root level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.DEBUG else logging.WARNING)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
    ]

    if settings.is_development:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [
            add_service_context,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def log_request_details(
    request_id: str,
    method: str,
    path: str,
    client_ip: str | None = None,
) -> Dict[str, Any]:
    """Context for the request_started event."""
    context = {
        "request_id": request_id,
        "method": method,
        "path": path,
    }
    if client_ip:
        context["client_ip"] = client_ip
    return context


def log_error_details(error: Exception, **kwargs: Any) -> Dict[str, Any]:
    """Context for a failed request; domain errors contribute their code and status."""
    return {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **kwargs,
    }
