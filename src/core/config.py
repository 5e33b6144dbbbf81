"""Configuration management for taskboard."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="data/taskboard.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="production", description="Deployment environment name reported to Logfire")
    trace_sql: bool = Field(default=False, description="Trace SQLite queries through Logfire")

    # Authentication Configuration
    admin_password: str | None = Field(default=None, description="Administrator login password")
    admin_employee_id: str | None = Field(
        default=None, description="Employee ID recorded as creator for tasks created by the administrator"
    )
    secret_key: str = Field(default="change-me", description="Secret used to sign session cookies")
    is_production: bool = Field(default=False, description="Send cookies with the Secure flag")
    kiosk_enabled: bool = Field(default=True, description="Allow the shared kiosk panel login")

    # Dashboard Configuration
    upcoming_window_days: int = Field(default=7, description="Look-ahead window for upcoming tasks (in days)")

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Sessions
    SESSION_COOKIE_NAME: str = "taskboard_session"
    SESSION_MAX_AGE_SECONDS: int = 86400 * 30  # Kiosk tablets stay logged in for a month

    # Employee login uses the trailing digits of the registered phone number
    EMPLOYEE_PASSWORD_DIGITS: int = 4

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 500  # Page size when walking a whole collection


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
