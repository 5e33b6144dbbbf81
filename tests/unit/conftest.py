"""Pytest configuration and fixtures for unit tests."""

import pytest

from src.services import recurrence_service
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches src.core.db_client functions to use InMemoryDBClient."""

    # Patch all db_client functions
    monkeypatch.setattr("src.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("src.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("src.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("src.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("src.core.db_client.get_first_record", in_memory_db.get_first_record)

    return in_memory_db


@pytest.fixture(autouse=True)
def isolated_listeners(monkeypatch):
    """Give every test its own empty listener registry."""
    monkeypatch.setattr(recurrence_service, "_listeners", [])


@pytest.fixture
def sample_task_data():
    """Returns sample task data for testing."""
    return {
        "description": "Water the plants",
        "assigned_to": "emp1",
        "type": "routine",
        "due_date": "2024-01-01",
        "recurrence_type": "weekly",
    }


@pytest.fixture
def sample_employee_data():
    """Returns sample employee data for testing."""
    return {
        "name": "Maria Silva",
        "role": "Housekeeper",
        "phone": "+55 (11) 98765-4321",
        "address": "Rua das Flores 10",
        "admission_date": "2023-03-01",
    }
