"""Pydantic models for creating records in database."""

from typing import Self

from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.recurrence import parse_due_date, rule_from_fields
from src.domain.employee import BankDetails, Documents, validate_employee_name
from src.domain.task import RecurrenceType, TaskStatus, TaskType, decode_weekdays


class TaskCreate(BaseModel):
    """Pydantic model for creating a task record."""

    description: str = Field(..., min_length=1, description="Task instructions")
    assigned_to: str | None = Field(default=None, description="Single assigned employee ID")
    is_shared: bool = Field(default=False, description="Task is for all employees")
    assignee_ids: list[str] = Field(default_factory=list, description="Multiple assigned employee IDs")
    type: TaskType = Field(default=TaskType.ONE_OFF)
    due_date: str = Field(..., description="Due date (YYYY-MM-DD)")
    recurrence_type: RecurrenceType = Field(default=RecurrenceType.NONE)
    recurrence_day: int | None = None
    recurrence_days: list[int] | None = None
    response: str | None = None
    created_by: str | None = None
    created_by_name: str | None = None

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        """Reject whitespace-only descriptions."""
        v = v.strip()
        if not v:
            raise ValueError("Description cannot be empty")
        return v

    @field_validator("due_date")
    @classmethod
    def validate_due_date(cls, v: str) -> str:
        """Normalize the due date to YYYY-MM-DD."""
        return parse_due_date(v).isoformat()

    @field_validator("recurrence_days", mode="before")
    @classmethod
    def validate_recurrence_days(cls, v: object) -> list[int] | None:
        """Deduplicate and sort weekdays."""
        return decode_weekdays(v)

    @field_validator("assignee_ids")
    @classmethod
    def validate_assignee_ids(cls, v: list[str]) -> list[str]:
        """Deduplicate assignees preserving order."""
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def validate_assignment_and_rule(self) -> Self:
        """Check assignment exclusivity and that the recurrence rule is well formed."""
        if self.is_shared and (self.assigned_to or self.assignee_ids):
            raise ValueError("Shared tasks cannot also have specific assignees")
        if self.assigned_to and self.assignee_ids:
            raise ValueError("Use either assigned_to or assignee_ids, not both")

        rule_from_fields(self.recurrence_type, self.recurrence_day, self.recurrence_days)

        if self.recurrence_type == RecurrenceType.MONTHLY and self.recurrence_day is None:
            # Anchor the lineage so a short month does not shift later occurrences
            self.recurrence_day = parse_due_date(self.due_date).day
        if self.recurrence_type != RecurrenceType.CUSTOM:
            self.recurrence_days = None
        return self

    def to_record(self) -> dict[str, object]:
        """Columns to store on the task row (assignees live in task_assignees).

        Every task starts out pending; completion only happens through a status change.
        """
        return {**self.model_dump(exclude={"assignee_ids"}, exclude_none=True), "status": TaskStatus.PENDING}


class EmployeeCreate(BaseModel):
    """Pydantic model for creating an employee record."""

    name: str = Field(..., description="Display name")
    role: str = Field(default="")
    phone: str = Field(default="")
    photo: str | None = None
    address: str = Field(default="")
    admission_date: str | None = None
    bank_details: BankDetails = Field(default_factory=BankDetails)
    documents: Documents = Field(default_factory=Documents)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is usable."""
        return validate_employee_name(v)

    @field_validator("admission_date")
    @classmethod
    def validate_admission_date(cls, v: str | None) -> str | None:
        """Normalize the admission date to YYYY-MM-DD."""
        return parse_due_date(v).isoformat() if v else None
