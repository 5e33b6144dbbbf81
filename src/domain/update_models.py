"""Update models for database operations."""

from pydantic import BaseModel, field_validator

from src.core.recurrence import parse_due_date
from src.domain.employee import BankDetails, Documents, validate_employee_name
from src.domain.task import RecurrenceType, TaskProof, TaskStatus, TaskType, decode_weekdays


class TaskUpdate(BaseModel):
    """Partial update payload for task fields and recurrence rule."""

    description: str | None = None
    assigned_to: str | None = None
    is_shared: bool | None = None
    assignee_ids: list[str] | None = None
    type: TaskType | None = None
    due_date: str | None = None
    recurrence_type: RecurrenceType | None = None
    recurrence_day: int | None = None
    recurrence_days: list[int] | None = None

    @field_validator("due_date")
    @classmethod
    def validate_due_date(cls, v: str | None) -> str | None:
        """Normalize the due date to YYYY-MM-DD."""
        return parse_due_date(v).isoformat() if v is not None else None

    @field_validator("recurrence_days", mode="before")
    @classmethod
    def validate_recurrence_days(cls, v: object) -> list[int] | None:
        """Deduplicate and sort weekdays."""
        return decode_weekdays(v)


class TaskStatusUpdate(BaseModel):
    """Status change, optionally carrying completion proof."""

    status: TaskStatus
    proof: TaskProof | None = None


class TaskResponseUpdate(BaseModel):
    """Free text reply from the assignee."""

    response: str


class EmployeeUpdate(BaseModel):
    """Partial update payload for an employee."""

    name: str | None = None
    role: str | None = None
    phone: str | None = None
    photo: str | None = None
    address: str | None = None
    admission_date: str | None = None
    bank_details: BankDetails | None = None
    documents: Documents | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        """Validate name is usable."""
        return validate_employee_name(v) if v is not None else None
