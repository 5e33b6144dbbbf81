"""taskboard - household task dashboard with recurring tasks."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.db_client import close_connection, init_db
from src.core.logging import configure_logfire, instrument_fastapi
from src.domain.task import Task
from src.interface.api_router import router as api_router
from src.interface.error_handlers import register_error_handlers
from src.services import recurrence_service


logger = logging.getLogger(__name__)


def validate_startup_configuration() -> None:
    """Validate required credentials, failing fast with a clear message."""
    logger.info("startup_validation_begin")

    try:
        settings.require_credential("admin_password", "Administrator password")
        if settings.is_production and settings.secret_key == "change-me":
            raise ValueError("SECRET_KEY must be changed in production")
        logger.info("startup_validation_complete", extra={"status": "ok"})
    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\n❌ Startup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)


async def log_new_instance(source: Task, new_task: Task) -> None:
    """Record every recreated instance in the application log."""
    logger.info(
        "recurring_instance_created",
        extra={"source_task_id": source.id, "new_task_id": new_task.id, "due_date": new_task.due_date},
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so validation logs are captured
    configure_logfire()
    validate_startup_configuration()

    await init_db()
    logger.info("Database initialized")

    recurrence_service.add_listener(log_new_instance)
    yield
    recurrence_service.remove_listener(log_new_instance)
    await close_connection()


app = FastAPI(
    title="taskboard",
    description="Household task dashboard with recurring tasks",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

register_error_handlers(app)
app.include_router(api_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)
