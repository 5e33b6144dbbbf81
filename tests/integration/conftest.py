"""Pytest configuration and fixtures for integration tests."""

import pytest

from src.core import db_client
from src.core.config import settings
from src.services import recurrence_service


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch):
    """Fresh SQLite database file with the schema applied."""
    db_path = tmp_path / "taskboard.db"
    monkeypatch.setattr(settings, "sqlite_db_path", str(db_path))
    monkeypatch.setattr(recurrence_service, "_listeners", [])

    await db_client.init_db()
    yield db_path
    await db_client.close_connection()
