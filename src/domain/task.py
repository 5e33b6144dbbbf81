"""Task domain models and enums."""

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class TaskType(StrEnum):
    """Informational task category; does not affect recurrence."""

    ROUTINE = "routine"
    ONE_OFF = "one_off"


class RecurrenceType(StrEnum):
    """How a task repeats."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


def decode_weekdays(value: Any) -> list[int] | None:
    """Normalize stored weekday sets (JSON text in SQLite, lists in memory)."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = json.loads(value)
    return sorted({int(day) for day in value})


class TaskProof(BaseModel):
    """Completion evidence attached when a task is completed."""

    photo_url: str | None = Field(default=None, description="Photo reference")
    audio_url: str | None = Field(default=None, description="Audio recording reference")
    comment: str | None = Field(default=None, description="Free text left on completion")
    completed_at: str | None = Field(default=None, description="Completion timestamp (ISO format)")

    def is_empty(self) -> bool:
        """Return True when no evidence is recorded."""
        return not any((self.photo_url, self.audio_url, self.comment, self.completed_at))


# Store columns holding completion evidence; cleared on every new instance
PROOF_FIELDS = ("photo_url", "audio_url", "comment", "completed_at")


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    description: str = Field(..., description="Task instructions")
    assigned_to: str | None = Field(default=None, description="Single assigned employee ID")
    is_shared: bool = Field(default=False, description="Visible to and completable by any employee")
    assignee_ids: list[str] = Field(
        default_factory=list,
        description="Multi-assignee employee IDs (from task_assignees, not stored on the row)",
    )
    type: TaskType = Field(default=TaskType.ONE_OFF, description="routine or one_off")
    due_date: str = Field(..., description="Due date (YYYY-MM-DD)")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Current lifecycle status")
    recurrence_type: RecurrenceType = Field(default=RecurrenceType.NONE, description="Recurrence rule tag")
    recurrence_day: int | None = Field(default=None, description="Weekday (weekly) or day of month (monthly)")
    recurrence_days: list[int] | None = Field(default=None, description="Weekdays for custom recurrence")
    response: str | None = Field(default=None, description="Free text reply from the assignee")
    photo_url: str | None = None
    audio_url: str | None = None
    comment: str | None = None
    completed_at: str | None = None
    created_by: str | None = Field(default=None, description="Creator employee ID")
    created_by_name: str | None = Field(default=None, description="Creator display name")

    @field_validator("recurrence_days", mode="before")
    @classmethod
    def validate_recurrence_days(cls, v: Any) -> list[int] | None:
        """Decode JSON-encoded weekday lists coming from SQLite."""
        return decode_weekdays(v)

    @field_validator("is_shared", mode="before")
    @classmethod
    def validate_is_shared(cls, v: Any) -> bool:
        """SQLite stores booleans as 0/1; missing means not shared."""
        return bool(v)

    @property
    def proof(self) -> TaskProof:
        """Completion evidence currently attached to the task."""
        return TaskProof(
            photo_url=self.photo_url,
            audio_url=self.audio_url,
            comment=self.comment,
            completed_at=self.completed_at,
        )
