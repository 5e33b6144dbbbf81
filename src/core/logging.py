"""Pydantic Logfire setup and logging helpers.

Modules log through the standard library (``logging.getLogger(__name__)``) with
event-style messages and structured ``extra`` fields; once configure_logfire()
has run, those records are shipped through Logfire alongside the request and
service spans.

    logger.info("recurrence_recreation_succeeded", extra={"task_id": task.id})
    log_with_context(logger, "warning", "employee_login_failed", employee_id="42")
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import settings


def configure_logfire() -> None:
    """Configure Logfire and route standard library logging through it.

    Nothing is sent unless LOGFIRE_TOKEN is set; SQL tracing is opt-in.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="taskboard",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logging.basicConfig(handlers=[logfire.LogfireLoggingHandler()], level=logging.INFO)

    if settings.trace_sql:
        logfire.instrument_sqlite3()

    logging.getLogger(__name__).info("logfire_configured", extra={"trace_sql": settings.trace_sql})


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every request handled by the API."""
    logfire.instrument_fastapi(app)


def span(name: str) -> logfire.LogfireSpan:
    """Open a Logfire span around a service call, named ``<module>.<function>``."""
    return logfire.span(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log ``message`` at ``level`` with keyword arguments as structured fields.

    Args:
        logger: Logger instance to use
        level: Log level ("debug", "info", "warning", "error", "critical")
        message: Event name or message
        **context: Structured fields (task_id, employee_id, step, ...)
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=context)
