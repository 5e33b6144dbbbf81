"""Dashboard statistics for a given day."""

import logging
from collections import Counter
from datetime import date, timedelta

from src.core.config import settings
from src.core.logging import span
from src.core.recurrence import parse_due_date
from src.domain.task import TaskStatus
from src.models.service_models import DashboardSummary
from src.services import employee_service, task_service


logger = logging.getLogger(__name__)


async def get_dashboard_summary(
    *,
    today: date,
    employee_id: str | None = None,
    window_days: int | None = None,
) -> DashboardSummary:
    """Summarize tasks relative to ``today``.

    Args:
        today: Reference day; passed in so the summary is reproducible
        employee_id: Restrict to the tasks this employee sees
        window_days: Look-ahead window for upcoming tasks (defaults to settings)

    Returns:
        DashboardSummary with status counts and overdue/today/upcoming lists
    """
    with span("dashboard_service.get_dashboard_summary"):
        window = settings.upcoming_window_days if window_days is None else window_days
        horizon = today + timedelta(days=window)

        if employee_id:
            tasks = await task_service.get_tasks_for_employee(employee_id=employee_id)
        else:
            tasks = await task_service.get_tasks()

        by_status = Counter(task.status.value for task in tasks)
        open_tasks = [task for task in tasks if task.status != TaskStatus.COMPLETED]

        overdue, due_today, upcoming = [], [], []
        for task in open_tasks:
            due = parse_due_date(task.due_date)
            if due < today:
                overdue.append(task)
            elif due == today:
                due_today.append(task)
            elif due <= horizon:
                upcoming.append(task)

        employees = await employee_service.list_employees()

        logger.debug(
            "Dashboard summary computed",
            extra={"today": today.isoformat(), "tasks": len(tasks), "overdue": len(overdue)},
        )
        return DashboardSummary(
            today=today.isoformat(),
            total_tasks=len(tasks),
            by_status={status.value: by_status.get(status.value, 0) for status in TaskStatus},
            overdue=overdue,
            due_today=due_today,
            upcoming=upcoming,
            employee_count=len(employees),
        )
