"""Map domain exceptions to JSON error responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.core.errors import (
    AuthenticationError,
    DuplicateRecordError,
    PermissionDeniedError,
    RecordNotFoundError,
    StoreError,
    classify_error_with_response,
)


logger = logging.getLogger(__name__)


def _status_for(exc: Exception) -> int:
    if isinstance(exc, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, PermissionDeniedError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, RecordNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, DuplicateRecordError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, StoreError):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_422_UNPROCESSABLE_ENTITY


async def handle_domain_error(request: Request, exc: Exception) -> JSONResponse:
    """Render an exception through classify_error_with_response."""
    error = classify_error_with_response(exc)
    status_code = _status_for(exc)
    log = logger.error if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.warning
    log("api_error", extra={"path": request.url.path, "code": error.code, "error": str(exc)})
    return JSONResponse(status_code=status_code, content=error.model_dump(mode="json"))


def register_error_handlers(app: FastAPI) -> None:
    """Install handlers for every exception family the services raise."""
    for exc_type in (AuthenticationError, PermissionDeniedError, StoreError, ValueError):
        app.add_exception_handler(exc_type, handle_domain_error)
