from src.services import (
    auth_service,
    dashboard_service,
    employee_service,
    recurrence_service,
    task_service,
    task_store,
)


__all__ = [
    "auth_service",
    "dashboard_service",
    "employee_service",
    "recurrence_service",
    "task_service",
    "task_store",
]
