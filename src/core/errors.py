"""Exception types and error classification utilities."""

from enum import Enum

from pydantic import BaseModel


class RecurrenceError(ValueError):
    """Base class for errors raised while computing a recurrence."""


class InvalidDateError(RecurrenceError):
    """Due date could not be parsed as a calendar date."""


class MissingRecurrenceDaysError(RecurrenceError):
    """Custom recurrence without any selected weekday."""


class UnknownRecurrenceTypeError(RecurrenceError):
    """Recurrence type tag outside the recognized values."""


class StoreError(RuntimeError):
    """Base class for failures reported by the task/employee store."""


class DatabaseError(StoreError):
    """Generic database failure."""


class RecordNotFoundError(DatabaseError):
    """Requested record does not exist."""


class DuplicateRecordError(DatabaseError):
    """Insert violated a uniqueness constraint."""


class AuthenticationError(Exception):
    """Login credentials were rejected or the session is invalid."""


class PermissionDeniedError(Exception):
    """Authenticated user is not allowed to perform the action."""


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Recurrence errors
    ERR_INVALID_DATE = "ERR_INVALID_DATE"
    ERR_MISSING_RECURRENCE_DAYS = "ERR_MISSING_RECURRENCE_DAYS"
    ERR_UNKNOWN_RECURRENCE_TYPE = "ERR_UNKNOWN_RECURRENCE_TYPE"

    # Store errors
    ERR_RECORD_NOT_FOUND = "ERR_RECORD_NOT_FOUND"
    ERR_DUPLICATE_RECORD = "ERR_DUPLICATE_RECORD"
    ERR_STORE_FAILURE = "ERR_STORE_FAILURE"

    # Session errors
    ERR_AUTHENTICATION_FAILED = "ERR_AUTHENTICATION_FAILED"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"

    # Input errors
    ERR_INVALID_INPUT = "ERR_INVALID_INPUT"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    if isinstance(exception, InvalidDateError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_DATE,
            message="The task due date is not a valid calendar date.",
            suggestion="Use the YYYY-MM-DD format, e.g. 2024-01-31.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, MissingRecurrenceDaysError):
        return ErrorResponse(
            code=ErrorCode.ERR_MISSING_RECURRENCE_DAYS,
            message="Custom recurrence needs at least one weekday.",
            suggestion="Select the weekdays the task repeats on, or pick another recurrence.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, UnknownRecurrenceTypeError):
        return ErrorResponse(
            code=ErrorCode.ERR_UNKNOWN_RECURRENCE_TYPE,
            message="Unknown recurrence type.",
            suggestion="Use one of: none, daily, weekly, monthly, custom.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, RecordNotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_RECORD_NOT_FOUND,
            message="I couldn't find that record.",
            suggestion="Refresh the list, it may have been deleted.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, DuplicateRecordError):
        return ErrorResponse(
            code=ErrorCode.ERR_DUPLICATE_RECORD,
            message="This record already exists.",
            suggestion="Refresh the list before trying again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, StoreError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORE_FAILURE,
            message="The task store could not complete the operation.",
            suggestion="Please try again. If the problem persists, contact the administrator.",
            severity=ErrorSeverity.HIGH,
        )

    if isinstance(exception, AuthenticationError):
        return ErrorResponse(
            code=ErrorCode.ERR_AUTHENTICATION_FAILED,
            message=str(exception) or "Authentication failed.",
            suggestion="Check your password and try again.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, PermissionDeniedError | PermissionError):
        return ErrorResponse(
            code=ErrorCode.ERR_PERMISSION_DENIED,
            message="You don't have permission for this action.",
            suggestion="Ask the administrator if you think this is an error.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, ValueError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_INPUT,
            message=str(exception),
            suggestion="Check the submitted values and try again.",
            severity=ErrorSeverity.LOW,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact the administrator.",
        severity=ErrorSeverity.MEDIUM,
    )
