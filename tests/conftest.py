"""Pytest configuration and shared fixtures."""

import pytest

from src.core.config import Settings


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway database file."""
    return Settings(
        sqlite_db_path=str(tmp_path / "taskboard.db"),
        admin_password="admin-secret",
        admin_employee_id=None,
        secret_key="test_secret_key",
        kiosk_enabled=True,
    )
