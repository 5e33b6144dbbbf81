"""Recurrence rules and next-due-date calculation for recurring tasks.

All arithmetic is on calendar dates. Nothing here reads the clock: the current
due date is always supplied by the caller.
"""

from datetime import date, datetime, time
from typing import Annotated, Literal

from croniter import croniter
from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field

from src.core.errors import (
    InvalidDateError,
    MissingRecurrenceDaysError,
    RecurrenceError,
    UnknownRecurrenceTypeError,
)
from src.domain.task import RecurrenceType


WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

MAX_WEEKDAY = 6
MAX_DAY_OF_MONTH = 31


class NoRecurrence(BaseModel):
    """Task does not repeat."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"


class DailyRecurrence(BaseModel):
    """Repeat every calendar day."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["daily"] = "daily"


class WeeklyRecurrence(BaseModel):
    """Repeat every seven days; ``day`` records the intended weekday (0=Sunday)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["weekly"] = "weekly"
    day: int | None = Field(default=None, ge=0, le=MAX_WEEKDAY)


class MonthlyRecurrence(BaseModel):
    """Repeat on ``day`` of every month, clamped to the month length."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["monthly"] = "monthly"
    day: int | None = Field(default=None, ge=1, le=MAX_DAY_OF_MONTH)


class CustomRecurrence(BaseModel):
    """Repeat on an explicit set of weekdays (0=Sunday..6=Saturday)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["custom"] = "custom"
    days: tuple[int, ...] = Field(..., min_length=1)


RecurrenceRule = Annotated[
    NoRecurrence | DailyRecurrence | WeeklyRecurrence | MonthlyRecurrence | CustomRecurrence,
    Field(discriminator="kind"),
]


def parse_due_date(value: str | date | datetime) -> date:
    """Parse a stored due date into a calendar date.

    Accepts ``YYYY-MM-DD`` strings and full ISO timestamps; for timestamps only
    the calendar date part is kept, without any timezone conversion.

    Raises:
        InvalidDateError: If the value is not a valid calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidDateError(f"Invalid due date: {value!r}")

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError as e:
        raise InvalidDateError(f"Invalid due date: {value!r}") from e


def format_due_date(value: date) -> str:
    """Format a calendar date for storage (YYYY-MM-DD)."""
    return value.isoformat()


def js_weekday(value: date) -> int:
    """Weekday index with 0=Sunday..6=Saturday."""
    return (value.weekday() + 1) % 7


def rule_from_fields(
    recurrence_type: RecurrenceType | str,
    recurrence_day: int | None = None,
    recurrence_days: list[int] | tuple[int, ...] | set[int] | None = None,
) -> NoRecurrence | DailyRecurrence | WeeklyRecurrence | MonthlyRecurrence | CustomRecurrence:
    """Build a typed rule from the loosely typed task fields.

    ``recurrence_day`` values outside the valid range for the rule are ignored,
    matching how stored rules have always been read.

    Raises:
        UnknownRecurrenceTypeError: If the type tag is not recognized
        MissingRecurrenceDaysError: If a custom rule has no weekdays
        RecurrenceError: If a custom weekday is outside 0..6
    """
    try:
        kind = RecurrenceType(recurrence_type)
    except ValueError as e:
        raise UnknownRecurrenceTypeError(f"Unknown recurrence type: {recurrence_type!r}") from e

    match kind:
        case RecurrenceType.NONE:
            return NoRecurrence()
        case RecurrenceType.DAILY:
            return DailyRecurrence()
        case RecurrenceType.WEEKLY:
            valid = recurrence_day is not None and 0 <= recurrence_day <= MAX_WEEKDAY
            return WeeklyRecurrence(day=recurrence_day if valid else None)
        case RecurrenceType.MONTHLY:
            valid = recurrence_day is not None and 1 <= recurrence_day <= MAX_DAY_OF_MONTH
            return MonthlyRecurrence(day=recurrence_day if valid else None)
        case RecurrenceType.CUSTOM:
            if not recurrence_days:
                raise MissingRecurrenceDaysError("Custom recurrence requires at least one weekday")
            days = sorted({int(day) for day in recurrence_days})
            invalid = [day for day in days if not 0 <= day <= MAX_WEEKDAY]
            if invalid:
                raise RecurrenceError(f"Weekday out of range (0-6): {invalid}")
            return CustomRecurrence(days=tuple(days))


def to_cron(rule: RecurrenceRule) -> str | None:
    """Express a rule as a midnight CRON schedule, when one exists.

    Plain weekly rules without a recorded weekday repeat relative to the due
    date, so they have no fixed CRON form.
    """
    match rule:
        case DailyRecurrence():
            return "0 0 * * *"
        case WeeklyRecurrence(day=int() as day):
            return f"0 0 * * {day}"
        case MonthlyRecurrence(day=int() as day):
            return f"0 0 {day} * *"
        case CustomRecurrence(days=days):
            return f"0 0 * * {','.join(str(day) for day in days)}"
        case _:
            return None


def next_occurrence(current: date, rule: RecurrenceRule) -> date | None:
    """Return the calendar date after ``current`` on which ``rule`` fires next."""
    match rule:
        case NoRecurrence():
            return None
        case DailyRecurrence():
            return current + relativedelta(days=1)
        case WeeklyRecurrence():
            return current + relativedelta(weeks=1)
        case MonthlyRecurrence(day=day):
            # An absolute day in relativedelta is clamped to the target month length
            return current + relativedelta(months=1, day=day or current.day)
        case CustomRecurrence():
            cron = croniter(to_cron(rule), datetime.combine(current, time.min))
            return cron.get_next(datetime).date()
    raise UnknownRecurrenceTypeError(f"Unknown recurrence rule: {rule!r}")


def next_due_date(
    current_due_date: str | date | datetime,
    recurrence_type: RecurrenceType | str,
    recurrence_day: int | None = None,
    recurrence_days: list[int] | tuple[int, ...] | set[int] | None = None,
) -> str | None:
    """Calculate the next due date for a recurring task.

    Args:
        current_due_date: The current due date of the task
        recurrence_type: none, daily, weekly, monthly or custom
        recurrence_day: Weekday (0-6, weekly) or day of month (1-31, monthly)
        recurrence_days: Weekdays for custom recurrence (0=Sunday)

    Returns:
        The next due date as YYYY-MM-DD, or None if the task does not recur

    Raises:
        InvalidDateError: If the current due date cannot be parsed
        MissingRecurrenceDaysError: If a custom rule has no weekdays
        UnknownRecurrenceTypeError: If the recurrence type is not recognized
    """
    rule = rule_from_fields(recurrence_type, recurrence_day, recurrence_days)
    if isinstance(rule, NoRecurrence):
        return None

    next_date = next_occurrence(parse_due_date(current_due_date), rule)
    return format_due_date(next_date) if next_date else None


def should_recreate(recurrence_type: RecurrenceType | str | None) -> bool:
    """Return True if completing a task with this type spawns a new instance."""
    return bool(recurrence_type) and recurrence_type != RecurrenceType.NONE


def _ordinal_suffix(day: int) -> str:
    if day in (1, 21, 31):
        return "st"
    if day in (2, 22):
        return "nd"
    if day in (3, 23):
        return "rd"
    return "th"


def describe_rule(rule: RecurrenceRule) -> str:
    """Convert a rule to human-readable text (e.g. "every Monday, Wednesday")."""
    cron_expr = to_cron(rule)
    if cron_expr is None:
        if isinstance(rule, WeeklyRecurrence | MonthlyRecurrence):
            return rule.kind
        return "does not repeat"

    _minute, _hour, day_of_month, _month, day_of_week = cron_expr.split()

    if day_of_week == "*" and day_of_month == "*":
        return "daily"

    if day_of_month != "*":
        dom = int(day_of_month)
        return f"monthly on the {dom}{_ordinal_suffix(dom)}"

    days = [WEEKDAY_NAMES[int(d)] for d in day_of_week.split(",")]
    return f"every {', '.join(days)}"
