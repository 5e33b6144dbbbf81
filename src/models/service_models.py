"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation.
"""

from enum import StrEnum

from pydantic import BaseModel

from src.domain.task import Task


class RecreationOutcome(StrEnum):
    """What happened when a completed recurring task was recreated."""

    CREATED = "created"
    SKIPPED = "skipped"  # Task does not recur
    DUPLICATE = "duplicate"  # Next instance already created for this completion
    INCOMPLETE = "incomplete"  # Claimed, but the next instance was never fully written
    FAILED = "failed"


class RecreationResult(BaseModel):
    """Outcome of spawning the next instance of a recurring task."""

    source_task_id: str
    outcome: RecreationOutcome
    next_due_date: str | None = None
    new_task: Task | None = None
    error_code: str | None = None
    error: str | None = None


class StatusChangeResult(BaseModel):
    """Task after a status change plus the recreation it triggered, if any."""

    task: Task
    recurrence: RecreationResult | None = None


class DashboardSummary(BaseModel):
    """Counts shown on the dashboard for a given day."""

    today: str
    total_tasks: int
    by_status: dict[str, int]
    overdue: list[Task]
    due_today: list[Task]
    upcoming: list[Task]
    employee_count: int
