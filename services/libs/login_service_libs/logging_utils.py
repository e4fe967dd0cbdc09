"""
Structured logging for the custom login service, built on structlog.

- Per-request context (correlation id, route, method) carried in contextvars
- Credential fields redacted before rendering
- Console output in development, JSON in production or with LOG_FORMAT=json
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars
from structlog.typing import EventDict, Processor

REDACTED = "***"

# Form and settings keys whose values must never reach a log line
SENSITIVE_KEYS = frozenset(
    {
        "pwd",
        "pass1",
        "pass2",
        "password",
        "new_password",
        "rp_key",
        "key",
        "secret",
        "g-recaptcha-response",
        "captcha_response",
        "session_secret_key",
        "captcha_secret_key",
    }
)


def _redact(values: dict[str, Any]) -> dict[str, Any]:
    return {
        k: REDACTED if k.lower() in SENSITIVE_KEYS else _redact_value(v)
        for k, v in values.items()
    }


def _redact_value(value: Any) -> Any:
    return _redact(value) if isinstance(value, dict) else value


def redact_sensitive_fields(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential values, including those nested in ``extra``."""
    return _redact(event_dict)


def _service_context(service_name: str, environment: str) -> Processor:
    def add_service_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", service_name)
        event_dict.setdefault("deployment.environment", environment)
        return event_dict

    return add_service_context


def configure_service_logging(
    service_name: str,
    environment: str | None = None,
    log_level: str = "INFO",
) -> None:
    """
    Configure structlog and the stdlib root logger for the service.

    Args:
        service_name: Name reported as ``service.name`` on every line
        environment: Deployment environment (defaults to the ENVIRONMENT env var)
        log_level: Root log level name

    LOG_FORMAT ("json" or "console") overrides the environment-based choice.
    """
    if environment is None:
        environment = os.getenv("ENVIRONMENT", "development")

    log_format = os.getenv("LOG_FORMAT", "").lower()
    use_json = log_format == "json" or (not log_format and environment == "production")

    shared_processors: list[Processor] = [
        merge_contextvars,
        _service_context(service_name, environment),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        redact_sensitive_fields,
    ]

    if use_json:
        renderer: list[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    logging.basicConfig(
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )

    structlog.configure(
        processors=[*shared_processors, *renderer],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_service_logger(name: str | None = None) -> Any:
    """Return a structlog logger, bound to ``logger_name`` when a name is given."""
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger_name=name)
    return logger


def bind_request_context(correlation_id: str, route: str, method: str) -> None:
    """Bind per-request fields so every log line of the request carries them.

    Clears whatever the previous request on this task left behind.
    """
    clear_contextvars()
    bind_contextvars(correlation_id=correlation_id, route=route, method=method)
