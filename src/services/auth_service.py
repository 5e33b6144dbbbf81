"""Login and session handling for the admin, employee, and kiosk views."""

import logging
import secrets
from enum import StrEnum

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from pydantic import BaseModel, ValidationError

from src.core.config import constants, settings
from src.core.errors import AuthenticationError, RecordNotFoundError
from src.core.logging import span
from src.domain.employee import phone_digits
from src.services import employee_service


logger = logging.getLogger(__name__)

ADMIN_DISPLAY_NAME = "Administrator"
KIOSK_USER_ID = "kiosk"
KIOSK_DISPLAY_NAME = "Central Panel"


class SessionRole(StrEnum):
    """Which view a session unlocks."""

    ADMIN = "admin"
    EMPLOYEE = "employee"
    KIOSK = "kiosk"


class Session(BaseModel):
    """Authenticated user carried in the signed session cookie."""

    user_id: str
    name: str
    role: SessionRole
    photo: str | None = None


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(str(settings.secret_key), salt="taskboard-session")


def login_admin(*, password: str) -> Session:
    """Validate the administrator password.

    Uses constant-time comparison for security (prevents timing attacks).

    Raises:
        AuthenticationError: If no admin password is configured or it does not match
    """
    expected = settings.admin_password
    if not expected or not secrets.compare_digest(password.encode(), expected.encode()):
        logger.warning("admin_login_failed")
        raise AuthenticationError("Incorrect administrator password")

    logger.info("admin_login_succeeded")
    return Session(
        user_id=settings.admin_employee_id or "admin",
        name=ADMIN_DISPLAY_NAME,
        role=SessionRole.ADMIN,
    )


async def login_employee(*, employee_id: str, password: str) -> Session:
    """Validate an employee login; the password is the last digits of their phone.

    Raises:
        AuthenticationError: If the employee is unknown, has no usable phone, or the password is wrong
    """
    with span("auth_service.login_employee"):
        try:
            employee = await employee_service.get_employee(employee_id=employee_id)
        except RecordNotFoundError as e:
            raise AuthenticationError("Unknown employee") from e

        digits = phone_digits(employee.phone)
        if len(digits) < constants.EMPLOYEE_PASSWORD_DIGITS:
            logger.warning("employee_login_no_phone", extra={"employee_id": employee_id})
            raise AuthenticationError("No phone number registered. Ask the administrator to set it up.")

        expected = digits[-constants.EMPLOYEE_PASSWORD_DIGITS :]
        if not secrets.compare_digest(password.strip().encode(), expected.encode()):
            logger.warning("employee_login_failed", extra={"employee_id": employee_id})
            raise AuthenticationError("Incorrect password")

        logger.info("employee_login_succeeded", extra={"employee_id": employee_id})
        return Session(user_id=employee.id, name=employee.name, role=SessionRole.EMPLOYEE, photo=employee.photo)


def login_kiosk() -> Session:
    """Open the shared central panel.

    Raises:
        AuthenticationError: If the kiosk view is disabled
    """
    if not settings.kiosk_enabled:
        raise AuthenticationError("Kiosk mode is disabled")
    return Session(user_id=KIOSK_USER_ID, name=KIOSK_DISPLAY_NAME, role=SessionRole.KIOSK)


def issue_session_token(session: Session) -> str:
    """Sign a session for storage in a cookie."""
    return _serializer().dumps(session.model_dump(mode="json"))


def load_session(token: str | None) -> Session:
    """Verify a session cookie and return the session it carries.

    Raises:
        AuthenticationError: If the token is missing, tampered with, or expired
    """
    if not token:
        raise AuthenticationError("Not logged in")
    try:
        data = _serializer().loads(token, max_age=constants.SESSION_MAX_AGE_SECONDS)
        return Session.model_validate(data)
    except (BadSignature, SignatureExpired, ValidationError) as e:
        logger.warning("session_invalid", extra={"error": type(e).__name__})
        raise AuthenticationError("Session expired, please log in again") from e
